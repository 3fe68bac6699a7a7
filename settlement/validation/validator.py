"""JSON Schema checks for raw auction and bid records and reconcile requests."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator
from jsonschema.exceptions import best_match

SCHEMA_DIR = Path(__file__).resolve().parent.parent / "schemas"


def _compile(schema_path: Path) -> Draft202012Validator:
    schema = json.loads(schema_path.read_text())
    Draft202012Validator.check_schema(schema)
    return Draft202012Validator(schema, format_checker=Draft202012Validator.FORMAT_CHECKER)


class SchemaRegistry:
    """Validators for every schema file in ``schema_dir``, keyed by file stem."""

    def __init__(self, schema_dir: Path = SCHEMA_DIR) -> None:
        self._validators = {
            path.stem: _compile(path) for path in sorted(schema_dir.glob("*.json"))
        }

    def names(self) -> list[str]:
        return sorted(self._validators)

    def validate(self, schema_name: str, payload: Any) -> None:
        """Raise the most relevant ``ValidationError`` if ``payload`` does not conform."""
        if schema_name not in self._validators:
            raise ValueError(f"unknown schema {schema_name}")
        error = best_match(self._validators[schema_name].iter_errors(payload))
        if error is not None:
            raise error


@lru_cache(maxsize=1)
def get_schema_registry() -> SchemaRegistry:
    return SchemaRegistry()
