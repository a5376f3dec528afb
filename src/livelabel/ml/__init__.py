"""ONNX model loading, preprocessing, and inference scheduling."""
