"""Strict Pydantic models carried by engine errors."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from taskengine.core.models import StrictBaseModel


class ErrorContextData(StrictBaseModel):
    """Where and while doing what an error was raised."""

    error_type: str = Field(..., description="Type of error")
    error_location: str = Field(..., description="Location in code where error occurred")
    component: str = Field(..., description="Component that raised the error")
    operation: str = Field(..., description="Operation being performed")
    task_id: Optional[str] = Field(default=None, description="Task the error belongs to, if any")
    timestamp: datetime = Field(default_factory=datetime.now, description="When error occurred")


class ValidationErrorDetail(StrictBaseModel):
    """Single validation failure."""

    location: str = Field(..., description="Field or location of validation error")
    message: str = Field(..., description="Validation error message")
    error_type: str = Field(..., description="Type of validation error")


class StateErrorContext(StrictBaseModel):
    """Rejected state-machine transition."""

    state_name: str = Field(..., description="Identifier of the stateful object")
    state_type: str = Field(..., description="Type of the stateful object")
    transition_from: str = Field(..., description="Current state")
    transition_to: str = Field(..., description="Requested state")


class ConfigurationErrorContext(StrictBaseModel):
    """Invalid configuration entry."""

    config_key: str = Field(..., description="Configuration key that failed")
    config_section: str = Field(..., description="Configuration section")
    expected_type: str = Field(..., description="Expected type of configuration")
    actual_value: str = Field(..., description="Actual value provided")
