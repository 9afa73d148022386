"""
Base Schema Classes for Pydantic Models

RULE: Operator input MUST inherit from BaseCreateSchema. Values handed to the
pure resolvers MUST inherit from SnapshotSchema so that nothing can mutate
them mid-resolution.
"""

from pydantic import BaseModel, ConfigDict


class BaseCreateSchema(BaseModel):
    """
    Base class for create/input schemas.

    These schemas accept string UUIDs from operators and convert to UUID objects.
    """
    model_config = ConfigDict(
        # Allow extra fields to be ignored (forward compatibility)
        extra='ignore',
    )


class SnapshotSchema(BaseModel):
    """
    Base class for immutable value objects.

    Catalog snapshots, stock maps and resolution results are frozen: any
    attempt to assign to a field raises a ValidationError.
    """
    model_config = ConfigDict(
        frozen=True,
        from_attributes=True,
    )
