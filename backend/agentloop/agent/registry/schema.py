"""
JSON-schema argument checks for remote capabilities.

Remote services describe their arguments with JSON schema (draft 2020-12 is
assumed when the schema does not say otherwise). Every violation found is
folded into a single ValidationError.
"""

from typing import Any, Dict

from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError
from jsonschema.validators import validator_for

from ..exceptions import ValidationError

MAX_REPORTED_ERRORS = 5


def _location(error) -> str:
    return "/".join(str(part) for part in error.path) or "<root>"


def validate_against_schema(capability: str, schema: Dict[str, Any], arguments: Any) -> Dict[str, Any]:
    """Return the arguments if they fit the schema, else raise ValidationError."""
    if arguments is None:
        arguments = {}
    if not isinstance(arguments, dict):
        raise ValidationError(f"Arguments for '{capability}' must be an object", capability=capability)
    if not schema:
        return arguments

    validator_cls = validator_for(schema, default=Draft202012Validator)
    try:
        validator_cls.check_schema(schema)
    except SchemaError as e:
        raise ValidationError(
            f"Capability '{capability}' publishes an invalid argument schema: {e.message}", capability=capability
        ) from e

    errors = sorted(validator_cls(schema).iter_errors(arguments), key=lambda err: [str(part) for part in err.path])
    if errors:
        details = [f"{_location(err)}: {err.message}" for err in errors[:MAX_REPORTED_ERRORS]]
        if len(errors) > MAX_REPORTED_ERRORS:
            details.append(f"... {len(errors) - MAX_REPORTED_ERRORS} additional errors omitted")
        raise ValidationError(
            f"Invalid arguments for '{capability}': " + "; ".join(details), capability=capability
        )
    return arguments
