"""Schema loading and validation from package data."""

from __future__ import annotations

import json
from functools import cache
from importlib.resources import files
from typing import Any

from jsonschema.validators import Draft202012Validator

SCHEMA_PACKAGE = "naswatch.schemas"
SCHEMA_SUFFIX = ".schema.json"


def available_schemas() -> tuple[str, ...]:
    """Canonical names (without suffix) of every bundled schema."""
    names = [
        item.name[: -len(SCHEMA_SUFFIX)]
        for item in files(SCHEMA_PACKAGE).iterdir()
        if item.name.endswith(SCHEMA_SUFFIX)
    ]
    return tuple(sorted(names))


@cache
def load_schema(name: str) -> dict[str, Any]:
    """Load a bundled schema by canonical name.

    Raises:
        KeyError: If no schema with that name is bundled
        ValueError: If the bundled file is not valid JSON
    """
    canonical = name.removesuffix(SCHEMA_SUFFIX)
    if canonical not in available_schemas():
        raise KeyError(
            f"Schema '{canonical}' not found in naswatch package data. "
            f"Available: {', '.join(available_schemas())}"
        )
    text = (files(SCHEMA_PACKAGE) / f"{canonical}{SCHEMA_SUFFIX}").read_text(encoding="utf-8")
    try:
        schema: dict[str, Any] = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Schema '{canonical}' contains invalid JSON: {exc}") from exc
    return schema


def validate_data(data: Any, schema_name: str) -> list[str]:
    """Validate data against a bundled schema.

    Returns:
        Sorted error messages, empty when the data is valid
    """
    validator = Draft202012Validator(load_schema(schema_name))
    messages = []
    for error in validator.iter_errors(data):
        if error.path:
            location = ".".join(str(p) for p in error.path)
            messages.append(f"{location}: {error.message}")
        else:
            messages.append(error.message)
    return sorted(messages)
