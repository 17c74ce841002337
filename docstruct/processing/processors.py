"""Adapters for the external layout processors.

A processor takes raw document bytes and returns the layout service's
document structure. ``HttpLayoutProcessor`` talks to a Document AI style
REST endpoint; ``JsonLayoutProcessor`` reads output that was already
produced and stored as JSON.
"""

import base64
import json
from pathlib import Path
from typing import Protocol

import httpx
from pydantic import ValidationError

from docstruct.layout.schemas import LayoutDocument
from docstruct.utils.config import ProcessorConfig
from docstruct.utils.logger import get_logger

from .errors import ErrorKind, ProcessingError, classify_error, from_status_code

logger = get_logger(__name__)

PDF_MAGIC = b"%PDF"
MIN_FILE_SIZE = 1024


class LayoutProcessor(Protocol):
    """Anything that turns document bytes into a layout document."""

    name: str

    def process(self, content: bytes, mime_type: str = "application/pdf") -> LayoutDocument:
        ...

    def close(self) -> None:
        ...


def parse_layout(payload: dict) -> LayoutDocument:
    """Validate a layout payload, accepting both bare and wrapped documents.

    Args:
        payload: Either a document dict or ``{"document": {...}}``.

    Returns:
        The validated layout document.

    Raises:
        ProcessingError: If the payload does not match the layout schema.
    """
    if isinstance(payload, dict) and isinstance(payload.get("document"), dict):
        payload = payload["document"]
    try:
        return LayoutDocument.model_validate(payload)
    except ValidationError as exc:
        raise ProcessingError(
            ErrorKind.INVALID_DOCUMENT,
            "Processor returned a malformed layout document",
            details={"errors": exc.errors(include_url=False)},
        ) from exc


def validate_upload(content: bytes, filename: str, max_size_mb: int = 50) -> None:
    """Check that an uploaded file looks like a processable PDF.

    Args:
        content: Raw file bytes.
        filename: Original file name.
        max_size_mb: Largest accepted file, in megabytes.

    Raises:
        ProcessingError: ``INVALID_DOCUMENT`` describing the first failed check.
    """
    if Path(filename).suffix.lower() != ".pdf":
        raise ProcessingError(ErrorKind.INVALID_DOCUMENT, "Only PDF files are allowed")
    if not content.startswith(PDF_MAGIC):
        raise ProcessingError(ErrorKind.INVALID_DOCUMENT, "Invalid PDF file format")
    if len(content) > max_size_mb * 1024 * 1024:
        raise ProcessingError(
            ErrorKind.INVALID_DOCUMENT,
            f"File size must be less than {max_size_mb}MB",
        )
    if len(content) < MIN_FILE_SIZE:
        raise ProcessingError(
            ErrorKind.INVALID_DOCUMENT, "File is too small or corrupted"
        )


class JsonLayoutProcessor:
    """Processor over stored layout JSON; ``content`` is the JSON itself."""

    def __init__(self, name: str = "local") -> None:
        self.name = name

    def process(self, content: bytes, mime_type: str = "application/json") -> LayoutDocument:
        try:
            payload = json.loads(content)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ProcessingError(
                ErrorKind.INVALID_DOCUMENT, f"Layout JSON could not be parsed: {exc}"
            ) from exc
        return parse_layout(payload)

    def close(self) -> None:
        """Nothing to release."""


class HttpLayoutProcessor:
    """Calls a Document AI style ``processors/{id}:process`` endpoint.

    Args:
        endpoint: Base URL, e.g. ``https://host/v1/projects/p/locations/us``.
        processor_id: Processor to invoke.
        timeout_seconds: Request timeout.
        client: Optional preconfigured ``httpx.Client``.
    """

    def __init__(
        self,
        endpoint: str,
        processor_id: str,
        timeout_seconds: float = 120.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.name = processor_id
        self.url = f"{endpoint.rstrip('/')}/processors/{processor_id}:process"
        self.client = client or httpx.Client(timeout=timeout_seconds)

    def process(self, content: bytes, mime_type: str = "application/pdf") -> LayoutDocument:
        """Send the document and validate the returned layout.

        Raises:
            ProcessingError: On transport failures, error responses or a
                malformed body.
        """
        body = {
            "rawDocument": {
                "content": base64.b64encode(content).decode("ascii"),
                "mimeType": mime_type,
            }
        }
        logger.info("Sending %d bytes to processor %s", len(content), self.name)
        try:
            response = self.client.post(self.url, json=body)
        except httpx.HTTPError as exc:
            raise classify_error(exc) from exc

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if response.is_error:
            raise self._error_from_response(response, payload)
        return parse_layout(payload)

    def close(self) -> None:
        """Close the HTTP client and its connection pool."""
        self.client.close()

    def _error_from_response(
        self, response: httpx.Response, payload: dict
    ) -> ProcessingError:
        error = payload.get("error") if isinstance(payload, dict) else None
        if isinstance(error, dict) and isinstance(error.get("code"), int):
            # google.rpc.Status body; the textual status is the most specific
            status = error.get("status")
            message = error.get("message")
            if status in ErrorKind.__members__:
                return ProcessingError(ErrorKind(status), message)
            if error["code"] < 100:
                return from_status_code(error["code"], message)
        http_error = httpx.HTTPStatusError(
            f"Processor {self.name} returned HTTP {response.status_code}",
            request=response.request,
            response=response,
        )
        return classify_error(http_error)


def build_processors(
    config: ProcessorConfig,
) -> tuple[LayoutProcessor, LayoutProcessor | None, LayoutProcessor | None]:
    """Create the primary, OCR and form-parser processors from config.

    Args:
        config: Processor configuration.

    Returns:
        ``(primary, ocr, form_parser)``; the optional ones are ``None``
        when not configured.

    Raises:
        ValueError: If no endpoint or primary processor is configured.
    """
    if not config.endpoint or not config.primary_processor_id:
        raise ValueError("A processor endpoint and primary processor id are required")

    client = httpx.Client(timeout=config.timeout_seconds)

    def _make(processor_id: str | None) -> HttpLayoutProcessor | None:
        if not processor_id:
            return None
        return HttpLayoutProcessor(
            config.endpoint, processor_id, config.timeout_seconds, client=client
        )

    return (
        _make(config.primary_processor_id),
        _make(config.ocr_processor_id),
        _make(config.form_parser_processor_id),
    )
