"""Configuration management for the structured extraction service.

Loads and validates YAML configuration with defaults for the external
layout processors and for the placeholder values used when the layout
service does not report a measurement.
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class ProcessorConfig(BaseModel):
    """Configuration for the external layout/OCR processors."""

    endpoint: str | None = None
    primary_processor_id: str = ""
    ocr_processor_id: str | None = None
    form_parser_processor_id: str | None = None
    timeout_seconds: float = 120.0
    retry_attempts: int = 3
    retry_backoff_seconds: float = 1.0
    max_file_size_mb: int = 50


class ExtractionConfig(BaseModel):
    """Defaults applied when the layout service omits a value.

    These are placeholders rather than measurements; they only exist so
    that downstream consumers always receive a number.
    """

    table_confidence: float = 0.9
    cell_confidence: float = 0.8
    math_confidence: float = 0.8
    checkbox_confidence: float = 0.8
    image_confidence: float = 0.8
    default_document_confidence: float = 0.95
    low_confidence_threshold: float = 0.7
    page_width: float = 612.0
    page_height: float = 792.0
    page_margin: float = 72.0


class AppConfig(BaseModel):
    """Top-level application configuration."""

    processors: ProcessorConfig = Field(default_factory=ProcessorConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    log_level: str = "INFO"


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = Path("configs/config.yaml")

    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        return AppConfig(**raw)

    logger.info("No config file found at %s, using defaults", path)
    return AppConfig()
