"""Process-scoped components and request dependencies for the API.

The OCR engine, completion client, MongoDB collection and Firebase verifier
are built once on first use and shared by all requests.
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header

from src.analysis.completion import CompletionClient
from src.analysis.pipeline import AnalysisPipeline, CallerIdentity
from src.errors import AuthError
from src.ocr.tesseract_engine import TesseractEngine
from src.storage.mongo_store import AnalysisStore
from src.utils.config import AppConfig, load_config
from src.utils.logger import get_logger

from .auth import FirebaseTokenVerifier, parse_bearer_token

logger = get_logger(__name__)


@dataclass
class Components:
    """Shared handles used while serving requests."""

    config: AppConfig
    pipeline: AnalysisPipeline
    store: AnalysisStore | None
    verifier: FirebaseTokenVerifier | None


def build_components(config: AppConfig) -> Components:
    """Create all shared components from a configuration.

    Args:
        config: Application configuration.

    Returns:
        Components wired together into an analysis pipeline.
    """
    store = AnalysisStore(config.storage) if config.storage.enabled else None
    verifier = FirebaseTokenVerifier(config.auth) if config.auth.enabled else None
    pipeline = AnalysisPipeline(
        ocr_engine=TesseractEngine(config.ocr, config.preprocessing),
        completion=CompletionClient(config.completion),
        store=store,
        schema_version=config.analysis.schema_version,
        failure_policy=config.storage.failure_policy,
    )
    logger.info(
        "Components ready: model=%s schema=%s storage=%s auth=%s",
        config.completion.model,
        config.analysis.schema_version,
        "on" if store else "off",
        "on" if verifier else "off",
    )
    return Components(config=config, pipeline=pipeline, store=store, verifier=verifier)


@lru_cache(maxsize=1)
def get_components() -> Components:
    """Return the process-wide components, building them on first call."""
    return build_components(load_config())


def get_caller(
    components: Annotated[Components, Depends(get_components)],
    authorization: Annotated[str | None, Header()] = None,
) -> CallerIdentity:
    """Resolve the caller from the bearer token.

    With authentication disabled every caller is anonymous.

    Raises:
        AuthError: If the token is missing or invalid.
    """
    if components.verifier is None:
        return CallerIdentity()

    token = parse_bearer_token(authorization)
    if token is None:
        raise AuthError("No token")
    return components.verifier.verify(token)
