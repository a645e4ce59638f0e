"""JSON Schema validation for catalog imports and ledger snapshots.

Provides:
- Automatic $ref resolution across the bundled schemas
- Cached validators
- Error reporting with the JSON path of each problem
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, List

import yaml
from jsonschema import Draft202012Validator
from referencing import Registry, Resource
from referencing.jsonschema import DRAFT202012

from sneakerchain.errors import ValidationError

SCHEMAS_DIR = Path(__file__).resolve().parent / "schemas"

CATALOG_SCHEMA = "sneaker-catalog.schema.json"
SNAPSHOT_SCHEMA = "ledger-snapshot.schema.json"


def load_json(path: Path) -> Any:
    return json.loads(Path(path).read_text(encoding="utf-8"))


def load_yaml(path: Path) -> Any:
    return yaml.safe_load(Path(path).read_text(encoding="utf-8"))


def load_document(path: Path) -> Any:
    """Load a JSON or YAML document, chosen by file suffix."""
    path = Path(path)
    if path.suffix.lower() in (".yaml", ".yml"):
        return load_yaml(path)
    return load_json(path)


@lru_cache(maxsize=1)
def _schema_registry() -> Registry:
    """Registry of all bundled schemas, keyed by their $id."""
    resources = []
    for schema_path in sorted(SCHEMAS_DIR.glob("*.schema.json")):
        schema = load_json(schema_path)
        schema_id = schema.get("$id") or f"https://schemas.sneakerchain.io/{schema_path.name}"
        resources.append((schema_id, Resource.from_contents(schema, default_specification=DRAFT202012)))
    return Registry().with_resources(resources)


@lru_cache(maxsize=None)
def schema_validator(schema_name: str) -> Draft202012Validator:
    """Create a validator for a bundled schema file."""
    schema = load_json(SCHEMAS_DIR / schema_name)
    return Draft202012Validator(schema, registry=_schema_registry())


def validate_against_schema(obj: Any, schema_name: str) -> List[str]:
    """Validate an object against a bundled schema.

    Returns:
        List of validation error messages (empty if valid)
    """
    validator = schema_validator(schema_name)
    return [
        f"{error.json_path}: {error.message}"
        for error in sorted(validator.iter_errors(obj), key=lambda e: [str(p) for p in e.path])
    ]


def require_valid(obj: Any, schema_name: str) -> None:
    """Raise ValidationError naming the first schema violation."""
    errors = validate_against_schema(obj, schema_name)
    if errors:
        raise ValidationError(schema_name, errors[0], errors)
