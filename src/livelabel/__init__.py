"""LiveLabel: live camera image classification with a throttled label overlay."""

__version__ = "0.1.0"
