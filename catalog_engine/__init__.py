"""Variant & Bill-of-Materials resolution engine."""

__version__ = "1.0.0"
