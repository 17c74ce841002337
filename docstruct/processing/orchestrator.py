"""Multi-processor orchestration.

Runs the primary layout processor, then optionally a specialized OCR
processor when the first pass reads poorly and a form parser when forms
were requested. Secondary results only ever improve the primary one.
"""

import time
from collections.abc import Callable

from docstruct.extraction.schemas import ProcessedDocument, QualityLevel
from docstruct.utils.config import AppConfig
from docstruct.utils.logger import get_logger

from .errors import ProcessingError, call_with_retry
from .pipeline import ExtractionPipeline
from .processors import LayoutProcessor, build_processors

logger = get_logger(__name__)

RetryCallback = Callable[[ProcessingError], None]


class ProcessorOrchestrator:
    """Chooses which processors to call and merges their results.

    Args:
        pipeline: Pipeline used to normalize every processor's output.
        primary: Processor that always runs.
        ocr: Optional processor used when the primary result is poor.
        form_parser: Optional processor used when forms are requested.
        retry_attempts: Attempts per processor call.
        retry_backoff_seconds: Base exponential backoff between attempts.
    """

    def __init__(
        self,
        pipeline: ExtractionPipeline,
        primary: LayoutProcessor,
        ocr: LayoutProcessor | None = None,
        form_parser: LayoutProcessor | None = None,
        retry_attempts: int = 3,
        retry_backoff_seconds: float = 1.0,
    ) -> None:
        self.pipeline = pipeline
        self.primary = primary
        self.ocr = ocr
        self.form_parser = form_parser
        self.retry_attempts = retry_attempts
        self.retry_backoff_seconds = retry_backoff_seconds

    def __enter__(self) -> "ProcessorOrchestrator":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Release every processor's connections."""
        for processor in (self.primary, self.ocr, self.form_parser):
            if processor is not None:
                processor.close()

    def run(
        self,
        content: bytes,
        mime_type: str = "application/pdf",
        enable_form_parsing: bool = False,
        on_retry: RetryCallback | None = None,
    ) -> ProcessedDocument:
        """Process a document through every applicable processor.

        Args:
            content: Raw document bytes.
            mime_type: MIME type sent to the processors.
            enable_form_parsing: Whether to run the form parser.
            on_retry: Called with the error before each retried call.

        Returns:
            The merged result. ``processing_time_ms`` covers all calls.

        Raises:
            ProcessingError: If the primary processor fails.
        """
        start_time = time.time()

        result = self._call(self.primary, content, mime_type, on_retry)

        quality = result.ocr_quality
        if quality and quality.overall_quality == QualityLevel.POOR and self.ocr:
            logger.info("Primary result is poor quality, trying %s", self.ocr.name)
            try:
                ocr_result = self._call(self.ocr, content, mime_type, on_retry)
                result = self._adopt_ocr(result, ocr_result)
            except Exception as exc:
                logger.warning("OCR processor %s failed: %s", self.ocr.name, exc)

        if enable_form_parsing and self.form_parser:
            try:
                form_result = self._call(self.form_parser, content, mime_type, on_retry)
                if form_result.forms:
                    result = result.model_copy(update={"forms": form_result.forms})
                    logger.info("Adopted %d form pages", len(form_result.forms))
            except Exception as exc:
                logger.warning(
                    "Form parser %s failed: %s", self.form_parser.name, exc
                )

        return result.model_copy(
            update={"processing_time_ms": (time.time() - start_time) * 1000}
        )

    def _call(
        self,
        processor: LayoutProcessor,
        content: bytes,
        mime_type: str,
        on_retry: RetryCallback | None,
    ) -> ProcessedDocument:
        document = call_with_retry(
            lambda: processor.process(content, mime_type),
            attempts=self.retry_attempts,
            backoff_seconds=self.retry_backoff_seconds,
            on_retry=on_retry,
            label=f"Processor {processor.name}",
        )
        return self.pipeline.process(document)

    def _adopt_ocr(
        self, result: ProcessedDocument, ocr_result: ProcessedDocument
    ) -> ProcessedDocument:
        if ocr_result.ocr_quality is None:
            return result
        current = result.ocr_quality.average_confidence
        candidate = ocr_result.ocr_quality.average_confidence
        if candidate <= current:
            logger.info(
                "Keeping primary result (confidence %.2f >= %.2f)", current, candidate
            )
            return result
        logger.info("Adopting OCR result (confidence %.2f > %.2f)", candidate, current)
        return result.model_copy(
            update={
                "text": ocr_result.text,
                "confidence": ocr_result.confidence,
                "ocr_quality": ocr_result.ocr_quality,
            }
        )


def build_orchestrator(config: AppConfig) -> ProcessorOrchestrator:
    """Wire an orchestrator to the HTTP processors named in ``config``.

    Raises:
        ValueError: If no processor endpoint is configured.
    """
    primary, ocr, form_parser = build_processors(config.processors)
    return ProcessorOrchestrator(
        ExtractionPipeline(config.extraction),
        primary,
        ocr=ocr,
        form_parser=form_parser,
        retry_attempts=config.processors.retry_attempts,
        retry_backoff_seconds=config.processors.retry_backoff_seconds,
    )
