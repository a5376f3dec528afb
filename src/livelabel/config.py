"""Environment-based configuration for LiveLabel."""

from __future__ import annotations

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from LIVELABEL_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="LIVELABEL_",
        case_sensitive=False,
        protected_namespaces=(),
    )

    # Presentation
    tick_interval: float = Field(default=0.25, gt=0)
    confidence_threshold: float = Field(default=0.25, ge=0.0, le=1.0)
    result_window: int = Field(default=5, ge=1)

    # Classifier output size (entries returned per frame, before windowing)
    top_k: int = Field(default=10, ge=1)

    # ML device
    device: Literal["cpu", "cuda", "openvino"] = "cpu"

    # Model selection
    classification_model: str = "resnet50"
    models_dir: str = "models"

    # ONNX Runtime threading
    intra_op_threads: int = Field(default=0, ge=0)
    inter_op_threads: int = Field(default=1, ge=1)

    # GPU memory cap for the CUDA provider
    gpu_mem_limit: int = Field(default=2_147_483_648, ge=0)

    # Capture
    camera_index: int = Field(default=0, ge=0)
    portrait: bool = True
    camera_intrinsics: list[float] | None = None

    # Runtime
    show_preview: bool = True
    log_level: str = "INFO"

    @field_validator("camera_intrinsics")
    @classmethod
    def _check_intrinsics(cls, value: list[float] | None) -> list[float] | None:
        if value is not None and len(value) != 9:
            raise ValueError("camera_intrinsics must hold 9 values (3x3, row-major)")
        return value


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()
