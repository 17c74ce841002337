"""Runs one queued job through the orchestrator, keeping its status current.

The API only registers jobs; whichever worker owns the document bytes calls
``run_job`` to process one and record its progress in the shared queue.
"""

from docstruct.extraction.schemas import ProcessedDocument
from docstruct.processing.orchestrator import ProcessorOrchestrator
from docstruct.utils.logger import get_logger

from .queue import PriorityJobQueue

logger = get_logger(__name__)


def run_job(
    queue: PriorityJobQueue,
    job_id: str,
    orchestrator: ProcessorOrchestrator,
    content: bytes,
    mime_type: str = "application/pdf",
    enable_form_parsing: bool = False,
) -> ProcessedDocument:
    """Process the document for ``job_id``.

    The job is marked processing, then completed on success. On failure
    it is marked failed with the error message and the error re-raised.
    Each retried processor call increments the job's retry count.

    Args:
        queue: Queue holding the job.
        job_id: Id returned by ``queue.enqueue``.
        orchestrator: Orchestrator that performs the extraction.
        content: Raw document bytes.
        mime_type: MIME type of ``content``.
        enable_form_parsing: Whether to run the form parser.

    Returns:
        The processed document.
    """
    queue.mark_processing(job_id)
    queue.update_progress(job_id, 0)

    try:
        result = orchestrator.run(
            content,
            mime_type=mime_type,
            enable_form_parsing=enable_form_parsing,
            on_retry=lambda _error: queue.record_retry(job_id),
        )
    except Exception as exc:
        logger.error("Job %s failed: %s", job_id, exc)
        queue.mark_failed(job_id, str(exc))
        raise

    queue.update_progress(job_id, 100)
    queue.mark_completed(job_id)
    return result
