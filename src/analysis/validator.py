"""Validation of parsed model output against the result schema."""

from typing import Any

from pydantic import ValidationError

from src.api.schemas import RESULT_MODELS, SchemaVersion
from src.errors import SchemaValidationError
from src.utils.logger import get_logger

logger = get_logger(__name__)


def _describe(exc: ValidationError) -> str:
    """Summarize a pydantic validation error as ``field: message`` pairs."""
    parts = []
    for err in exc.errors()[:5]:
        location = ".".join(str(p) for p in err["loc"]) or "<root>"
        parts.append(f"{location}: {err['msg']}")
    return "; ".join(parts)


def validate_result(
    data: dict[str, Any], schema_version: str = SchemaVersion.V2
) -> dict[str, Any]:
    """Check a parsed model reply for required fields and types.

    Args:
        data: Object parsed from the model reply.
        schema_version: Result schema the prompt asked for.

    Returns:
        ``data`` unchanged, so callers return exactly what the model sent.

    Raises:
        SchemaValidationError: If a field is missing or has the wrong type.
    """
    model = RESULT_MODELS[SchemaVersion(schema_version)]
    try:
        model.model_validate(data)
    except ValidationError as exc:
        details = _describe(exc)
        logger.warning("Model reply does not match schema %s: %s", schema_version, details)
        raise SchemaValidationError(
            f"Model reply does not match the {schema_version} result schema: {details}"
        ) from exc
    return data
