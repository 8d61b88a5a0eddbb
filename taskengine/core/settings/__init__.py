"""Engine configuration."""

from .settings import EngineSettings, RejectionPolicy, setup_logging

__all__ = ["EngineSettings", "RejectionPolicy", "setup_logging"]
