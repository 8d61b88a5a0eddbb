"""Strict Pydantic base models.

Every record the engine hands out (task snapshots, turns, tool results,
events, platform value objects) derives from one of these two classes so
validation behaves the same everywhere.
"""

from pydantic import BaseModel, ConfigDict


class StrictBaseModel(BaseModel):
    """Immutable base model with strict validation.

    - strict=True: no type coercion, inputs must match exact types
    - extra="forbid": unknown fields are rejected
    - validate_assignment=True: assignments are validated
    - frozen=True: instances cannot be mutated after construction
    """

    model_config = ConfigDict(
        strict=True,
        extra="forbid",
        validate_assignment=True,
        frozen=True,
        validate_default=True,
        use_enum_values=False,    # Preserve enum objects for their methods
        arbitrary_types_allowed=False,
    )


class MutableStrictBaseModel(BaseModel):
    """Mutable version of StrictBaseModel.

    Use this ONLY when mutability is explicitly required.
    """

    model_config = ConfigDict(
        strict=True,
        extra="forbid",
        validate_assignment=True,
        frozen=False,
        validate_default=True,
        use_enum_values=False,
        arbitrary_types_allowed=False,
    )


__all__ = [
    "StrictBaseModel",
    "MutableStrictBaseModel",
]
