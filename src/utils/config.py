"""Configuration management for the ingredient scanning service.

Loads and validates YAML configuration with sensible defaults for OCR,
preprocessing, the completion API, storage and authentication. Secrets and
deployment settings are taken from environment variables on top of the file.
"""

import logging
import os
from pathlib import Path
from typing import Literal

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class OCRConfig(BaseModel):
    """Configuration for Tesseract OCR engine."""

    tesseract_cmd: str | None = None
    default_lang: str = "eng"
    psm: int = 3


class PreprocessingConfig(BaseModel):
    """Configuration for label photo preprocessing before OCR."""

    enabled: bool = True
    min_width: int = 1000
    denoise_enabled: bool = True
    binarize_enabled: bool = False


class CompletionConfig(BaseModel):
    """Configuration for the chat-completion API."""

    api_key: str | None = None
    base_url: str = "https://api.deepseek.com"
    model: str = "deepseek-chat"
    system_prompt: str = (
        "You are a health assistant that analyses packaged food ingredients "
        "and answers only with JSON."
    )


class AnalysisConfig(BaseModel):
    """Configuration for the analysis result contract."""

    schema_version: Literal["v1", "v2"] = "v2"


class StorageConfig(BaseModel):
    """Configuration for MongoDB persistence of analysis results."""

    enabled: bool = False
    mongo_uri: str = "mongodb://localhost:27017"
    database: str = "ingredient_scanner"
    collection: str = "analysis_results"
    failure_policy: Literal["fail", "log"] = "fail"


class AuthConfig(BaseModel):
    """Configuration for Firebase bearer token verification."""

    enabled: bool = False
    credentials_path: str = "serviceAccountKey.json"


class ServerConfig(BaseModel):
    """Configuration for the HTTP server."""

    host: str = "0.0.0.0"
    port: int = 5000


class AppConfig(BaseModel):
    """Top-level application configuration."""

    ocr: OCRConfig = Field(default_factory=OCRConfig)
    preprocessing: PreprocessingConfig = Field(default_factory=PreprocessingConfig)
    completion: CompletionConfig = Field(default_factory=CompletionConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    log_level: str = "INFO"


def apply_env_overrides(config: AppConfig) -> AppConfig:
    """Overlay environment variables onto a loaded configuration.

    ``MONGO_URI`` also switches storage on, since a connection string is
    only set where a database is available.

    Args:
        config: Configuration loaded from file or defaults.

    Returns:
        The same configuration object, updated in place.
    """
    env = os.environ

    if env.get("DEEPSEEK_API_KEY"):
        config.completion.api_key = env["DEEPSEEK_API_KEY"]
    if env.get("DEEPSEEK_BASE_URL"):
        config.completion.base_url = env["DEEPSEEK_BASE_URL"]
    if env.get("COMPLETION_MODEL"):
        config.completion.model = env["COMPLETION_MODEL"]
    if env.get("MONGO_URI"):
        config.storage.mongo_uri = env["MONGO_URI"]
        config.storage.enabled = True
    if env.get("FIREBASE_CREDENTIALS"):
        config.auth.credentials_path = env["FIREBASE_CREDENTIALS"]
    if env.get("PORT"):
        config.server.port = int(env["PORT"])
    if env.get("LOG_LEVEL"):
        config.log_level = env["LOG_LEVEL"]

    return config


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file and the environment.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.

    Returns:
        Validated application configuration.
    """
    load_dotenv()

    if path is None:
        path = Path("configs/config.yaml")

    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        config = AppConfig(**raw)
    else:
        logger.info("No config file found at %s, using defaults", path)
        config = AppConfig()

    return apply_env_overrides(config)
