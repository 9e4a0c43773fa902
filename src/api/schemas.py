"""Pydantic schemas for analysis results and the API responses.

Analysis results are versioned. ``v1`` is the flat ingredient/impact map,
``v2`` the structured per-ingredient classification with product labels.
"""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class SchemaVersion(StrEnum):
    """Supported analysis result schema versions."""

    V1 = "v1"
    V2 = "v2"


class IngredientType(StrEnum):
    """Origin of an ingredient."""

    ARTIFICIAL = "Artificial"
    NATURAL = "Natural"
    SYNTHETIC = "Synthetic"


class ProcessingLevel(StrEnum):
    """Processing level of an ingredient or of the whole product."""

    PROCESSED = "Processed"
    UNPROCESSED = "Unprocessed"


class SafetyLevel(StrEnum):
    """Usage level relative to the FSSAI limit."""

    ABOVE_SAFE_LIMIT = "Above Safe Limit"
    BELOW_SAFE_LIMIT = "Below Safe Limit"
    LIMIT_NOT_SPECIFIED = "Limit Not Specified"


class ProductLabel(StrEnum):
    """Labels that may be attached to a product as a whole."""

    CONTAINS_ARTIFICIAL = "Contains Artificial Substances"
    CONTAINS_SYNTHETIC = "Contains Synthetic Substances"
    UNHEALTHY = "Unhealthy"
    POTENTIALLY_HARMFUL = "Potentially Harmful"
    PROCESSED = "Processed"
    UNPROCESSED = "Unprocessed"


class SuggestedAlternative(BaseModel):
    """A healthier product suggested in place of the scanned one."""

    name: str
    brand: str
    category: str
    buy_link: str


class IngredientAnalysis(BaseModel):
    """Classification of a single ingredient."""

    name: str = Field(min_length=1)
    type: IngredientType
    processing_level: ProcessingLevel
    safety_level: SafetyLevel
    health_impact: str


class AnalysisResultV1(BaseModel):
    """Flat analysis result: a verdict plus ingredient-to-impact maps."""

    is_healthy: str = Field(min_length=1)
    unhealthy_ingredients: dict[str, str]
    health_impacts: dict[str, str]
    suggested_alternatives: list[SuggestedAlternative] = Field(default_factory=list)


class AnalysisResultV2(BaseModel):
    """Structured analysis result with per-ingredient classification."""

    ingredients_analyzed: list[IngredientAnalysis]
    product_labels: list[ProductLabel]
    total_alerts: int = Field(ge=0)
    suggested_alternatives: list[SuggestedAlternative]


RESULT_MODELS: dict[SchemaVersion, type[BaseModel]] = {
    SchemaVersion.V1: AnalysisResultV1,
    SchemaVersion.V2: AnalysisResultV2,
}


class ErrorResponse(BaseModel):
    """Body returned for every failed request."""

    error: str


class CallerResponse(BaseModel):
    """Identity of the authenticated caller."""

    uid: str | None = None
    phone_number: str | None = None


class AnalysesResponse(BaseModel):
    """Stored analyses of the calling user, newest first."""

    analyses: list[dict[str, Any]]


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    tesseract_available: bool
    schema_version: str
    storage_enabled: bool
    auth_enabled: bool
