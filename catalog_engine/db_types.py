"""Database-agnostic type definitions for SQLAlchemy models.

This module provides type definitions that work with both SQLite and PostgreSQL.
"""
from sqlalchemy import Numeric
from sqlalchemy.dialects.postgresql import UUID as PG_UUID

# UUID type that works with both databases
UUIDType = PG_UUID

# Currency amounts (base price, option modifiers, variant price overrides)
MoneyType = Numeric(12, 2)

# BOM quantities, stock quantities and unit costs of raw materials
QuantityType = Numeric(12, 4)
