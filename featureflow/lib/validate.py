"""
Schema checks for featureflow's JSON state.

Artifact indexes and the session file are validated against the packaged
schemas on every read and before every write. A file that cannot be read
at all is a persistence problem; a file that reads but does not match its
schema is a ValidationError naming the file and the offending field.
"""

import json
from pathlib import Path

import jsonschema

from featureflow.lib.errors import FeatureflowError, PersistenceFailure


class ValidationError(FeatureflowError):
    """Stored or about-to-be-stored data does not match its schema."""

    kind = "ValidationError"

    def __init__(self, schema_name: str, message: str, field: str | None = None, source=None):
        self.schema_name = schema_name
        self.field = field
        self.source = source
        super().__init__(
            f"[{schema_name}] {message}"
            + (f" at {field}" if field else "")
            + (f" in {source}" if source else "")
        )


# Schemas never change at runtime
_schema_cache: dict[str, dict] = {}

SCHEMAS_DIR = Path(__file__).parent.parent / "schemas"


def _load_schema(schema_name: str) -> dict:
    if schema_name not in _schema_cache:
        schema_path = SCHEMAS_DIR / f"{schema_name}.schema.json"
        try:
            _schema_cache[schema_name] = json.loads(schema_path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            raise ValueError(f"No packaged schema named {schema_name!r}") from None
    return _schema_cache[schema_name]


def _field(error: jsonschema.ValidationError) -> str:
    return ".".join(str(p) for p in error.absolute_path) or "(root)"


def validate(data: dict, schema_name: str, source=None) -> None:
    """Check data against a packaged schema ("artifact_index" or "session").

    Raises:
        ValidationError: naming the first field that does not match
    """
    try:
        jsonschema.validate(instance=data, schema=_load_schema(schema_name))
    except jsonschema.ValidationError as e:
        raise ValidationError(schema_name, e.message, _field(e), source) from None


def validate_file(filepath: Path, schema_name: str) -> dict:
    """Read a stored JSON file and return it once it matches its schema.

    Raises:
        PersistenceFailure: if the file exists but cannot be read
        ValidationError: if it is not JSON or does not match the schema
    """
    try:
        text = filepath.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ValidationError(schema_name, "file is missing", source=filepath) from None
    except OSError as e:
        raise PersistenceFailure(filepath, f"cannot read: {e}") from e

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValidationError(schema_name, f"not valid JSON ({e})", source=filepath) from None

    validate(data, schema_name, filepath)
    return data


def validate_before_write(data: dict, schema_name: str, filepath: Path) -> None:
    """Refuse to persist data that would fail validate_file on the next read.

    Raises:
        ValidationError: if data doesn't match the schema
    """
    try:
        jsonschema.validate(instance=data, schema=_load_schema(schema_name))
    except jsonschema.ValidationError as e:
        raise ValidationError(
            schema_name, f"refusing to write: {e.message}", _field(e), filepath
        ) from None
