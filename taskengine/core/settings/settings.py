"""Engine settings with environment variable support.

Values come from ``TASKENGINE_*`` environment variables, an optional
``.env`` file, or explicit keyword arguments.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class RejectionPolicy(str, Enum):
    """What a declined approval does to the task."""

    CONTINUE = "continue"      # feed the decline back to the model
    TERMINATE = "terminate"    # fail the task


class EngineSettings(BaseSettings):
    """Settings shared by every task the engine runs."""

    max_iterations: int = Field(default=10, description="Model/tool round-trips per task")
    approval_timeout_seconds: Optional[float] = Field(
        default=None, description="Seconds to wait for an approval decision (None waits forever)"
    )
    rejection_policy: RejectionPolicy = Field(default=RejectionPolicy.CONTINUE)
    allow_shell_operators: bool = Field(
        default=False, description="Permit ;, &&, |, backticks and $() in commands"
    )
    auto_approve: List[str] = Field(
        default_factory=list, description="Tool names or side-effect classes that skip approval"
    )
    command_timeout_seconds: int = Field(default=30, description="Default command timeout")
    max_output_chars: int = Field(default=30000, description="Tool output truncation bound")
    log_level: str = Field(default="INFO")
    workspace_root: Optional[Path] = Field(default=None)

    model_config = SettingsConfigDict(
        env_prefix="TASKENGINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("max_iterations", "command_timeout_seconds", "max_output_chars")
    @classmethod
    def validate_positive_integers(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Value must be positive")
        return v

    @field_validator("approval_timeout_seconds")
    @classmethod
    def validate_approval_timeout(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError("Approval timeout must be positive or None")
        return v


def setup_logging(settings: EngineSettings) -> None:
    """Configure root logging for hosts that have not done so themselves."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.debug(f"Logging configured at {settings.log_level}")
