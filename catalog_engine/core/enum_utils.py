"""
Enum Utilities for VARCHAR-based Type and Status Fields

ARCHITECTURE STANDARD:
━━━━━━━━━━━━━━━━━━━━━━
• Database: VARCHAR(50) - NOT PostgreSQL ENUM
• SQLAlchemy: String(50) with Mapped[str]
• Pydantic: Python Enum for validation of snapshots and inputs
• Case: All enum values stored in UPPERCASE

DATA FLOW:
━━━━━━━━━━
INPUT (snapshot / service call):
    Pydantic Enum → .value → String → Database
    Example: BOMModifierType.MULTIPLY → "MULTIPLY" → VARCHAR

OUTPUT (repository building a snapshot):
    Database → String → to_enum() → Enum
    Example: VARCHAR "MULTIPLY" → BOMModifierType.MULTIPLY

CASE NORMALIZATION:
━━━━━━━━━━━━━━━━━━━
All enum-like string values are stored in UPPERCASE.
Use normalize_to_uppercase() or create_uppercase_validator()
to accept lowercase input such as "set_quantity" or "production_consume".
"""

from enum import Enum
from typing import Any, Optional, TypeVar, Type, Set


T = TypeVar('T', bound=Enum)


def get_enum_value(value: Any) -> str:
    """
    Safely get string value from an enum or string.

    Examples:
        >>> get_enum_value(BOMModifierType.MULTIPLY)
        'MULTIPLY'
        >>> get_enum_value("MULTIPLY")
        'MULTIPLY'
        >>> get_enum_value(None)
        None
    """
    if value is None:
        return None
    if isinstance(value, Enum):
        return value.value
    return str(value)


def to_enum(value: Any, enum_class: Type[T]) -> Optional[T]:
    """
    Convert a database string to an enum instance.

    Lowercase input is accepted. Returns None if the value is not a member.

    Examples:
        >>> to_enum("SET", BOMModifierType)
        BOMModifierType.SET
        >>> to_enum("set_quantity", BOMOverrideType)
        BOMOverrideType.SET_QUANTITY
        >>> to_enum("INVALID", BOMModifierType)
        None
    """
    if value is None:
        return None
    if isinstance(value, enum_class):
        return value
    if isinstance(value, str):
        value = value.upper()
    try:
        return enum_class(value)
    except (ValueError, KeyError):
        return None


def enum_values(enum_class: Type[Enum]) -> list:
    """Get all values from an enum class."""
    return [e.value for e in enum_class]


def enum_comment(enum_class: Type[Enum]) -> str:
    """
    Generate a comment string for VARCHAR column.

    Examples:
        >>> enum_comment(BOMModifierType)
        'MULTIPLY, ADD, SET'
    """
    return ", ".join(enum_values(enum_class))


# =============================================================================
# COMPARISON HELPERS
# =============================================================================

def status_in(db_value: str, *enum_values: Enum) -> bool:
    """
    Check if database value matches any of the given enums.

    Examples:
        >>> status_in(batch.status, ProductionBatchStatus.DRAFT, ProductionBatchStatus.SCHEDULED)
        True
    """
    if db_value is None:
        return False
    return db_value in [e.value for e in enum_values]


# =============================================================================
# CASE NORMALIZATION FOR PYDANTIC SCHEMAS
# =============================================================================

def normalize_to_uppercase(value: Any, valid_values: Set[str]) -> Any:
    """
    Normalize a string value to UPPERCASE if it's a valid enum value.

    Examples:
        >>> normalize_to_uppercase('multiply', {'MULTIPLY', 'ADD', 'SET'})
        'MULTIPLY'
        >>> normalize_to_uppercase('invalid', {'MULTIPLY', 'ADD', 'SET'})
        'invalid'  # Returned as-is for Pydantic to raise validation error
    """
    if value is None:
        return value
    if isinstance(value, str):
        upper_v = value.upper()
        if upper_v in valid_values:
            return upper_v
    return value


def create_uppercase_validator(field_name: str, valid_values: Set[str]) -> classmethod:
    """
    Create a Pydantic field_validator that normalizes values to UPPERCASE.

    Usage:
        class MySchema(BaseModel):
            status: ProductionBatchStatus

            normalize_status = create_uppercase_validator('status', VALID_BATCH_STATUSES)
    """
    from pydantic import field_validator

    @field_validator(field_name, mode='before')
    @classmethod
    def validate(cls, v):
        return normalize_to_uppercase(v, valid_values)

    return validate


# =============================================================================
# PRE-DEFINED VALID VALUE SETS
# =============================================================================

# Stock ledger
VALID_STOCK_MOVEMENT_TYPES = {
    "PURCHASE", "SALE", "ADJUSTMENT", "PRODUCTION_CONSUME",
    "PRODUCTION_OUTPUT", "RETURN", "DAMAGE"
}

# Production
VALID_BATCH_STATUSES = {
    "DRAFT", "SCHEDULED", "IN_PROGRESS", "COMPLETED", "CANCELLED"
}
