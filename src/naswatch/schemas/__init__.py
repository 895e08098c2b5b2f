"""Bundled JSON Schemas for configuration and verdict reports."""

from naswatch.schemas.validator import available_schemas, load_schema, validate_data

__all__ = ["available_schemas", "load_schema", "validate_data"]
