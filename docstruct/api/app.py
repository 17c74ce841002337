"""FastAPI application for the document structuring service.

Exposes job registration and status lookups backed by the priority queue,
plus a synchronous extraction endpoint.
"""

from pathlib import Path
from typing import Annotated, Any

from fastapi import FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware

from docstruct import __version__
from docstruct.extraction.schemas import ProcessedDocument
from docstruct.jobs.queue import PriorityJobQueue, ProcessingQueueItem
from docstruct.processing.errors import ErrorKind, ProcessingError
from docstruct.processing.orchestrator import ProcessorOrchestrator, build_orchestrator
from docstruct.processing.pipeline import ExtractionPipeline
from docstruct.processing.processors import JsonLayoutProcessor, validate_upload
from docstruct.utils.config import load_config
from docstruct.utils.logger import get_logger

from .schemas import EnqueueRequest, EnqueueResponse, HealthResponse

logger = get_logger(__name__)

_CLIENT_ERROR_KINDS = {
    ErrorKind.INVALID_DOCUMENT: 422,
    ErrorKind.INVALID_ARGUMENT: 400,
    ErrorKind.PERMISSION_DENIED: 403,
    ErrorKind.AUTHENTICATION_ERROR: 401,
}


def _get_orchestrator() -> ProcessorOrchestrator:
    """Build an orchestrator over the configured remote processors.

    Raises:
        HTTPException: 503 when no processor endpoint is configured.
    """
    try:
        return build_orchestrator(load_config())
    except ValueError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc


def _run_orchestrator(content: bytes, enable_form_parsing: bool) -> ProcessedDocument:
    orchestrator = _get_orchestrator()
    try:
        return orchestrator.run(content, enable_form_parsing=enable_form_parsing)
    finally:
        orchestrator.close()


def _http_error(exc: ProcessingError) -> HTTPException:
    if exc.kind in _CLIENT_ERROR_KINDS:
        status_code = _CLIENT_ERROR_KINDS[exc.kind]
    elif exc.retryable:
        status_code = 503
    else:
        status_code = 500
    return HTTPException(
        status_code=status_code, detail={"kind": exc.kind, "message": exc.message}
    )


def create_app(queue: PriorityJobQueue | None = None) -> FastAPI:
    """Create the API application.

    Args:
        queue: Job queue to serve; a fresh one by default.
    """
    app = FastAPI(
        title="Document Structuring API",
        description="Turn layout-analysis output into structured documents",
        version=__version__,
    )
    app.state.queue = queue or PriorityJobQueue()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", response_model=HealthResponse)
    async def health_check(request: Request) -> HealthResponse:
        """Return service health status."""
        processors = load_config().processors
        return HealthResponse(
            status="healthy",
            version=__version__,
            processor_configured=bool(
                processors.endpoint and processors.primary_processor_id
            ),
            queued_jobs=len(request.app.state.queue),
        )

    @app.post("/jobs", response_model=EnqueueResponse, status_code=201)
    async def enqueue_job(body: EnqueueRequest, request: Request) -> EnqueueResponse:
        """Register an extraction job and return its id."""
        job_id = request.app.state.queue.enqueue(
            body.user_id, body.filename, body.priority
        )
        return EnqueueResponse(job_id=job_id)

    @app.get("/jobs/{job_id}", response_model=ProcessingQueueItem)
    async def job_status(job_id: str, request: Request) -> ProcessingQueueItem:
        """Return the current state of a job."""
        item = request.app.state.queue.get_status(job_id)
        if item is None:
            raise HTTPException(status_code=404, detail=f"Job not found: {job_id}")
        return item

    @app.post("/extract")
    async def extract_document(
        file: Annotated[UploadFile, File(...)],
        forms: Annotated[bool, Query()] = False,
    ) -> dict[str, Any]:
        """Extract a structured document from an upload.

        ``.json`` uploads are treated as stored layout output and run
        through the pipeline directly. PDFs are sent to the configured
        processors.
        """
        content = await file.read()
        filename = file.filename or "document"

        try:
            if Path(filename).suffix.lower() == ".json":
                layout = JsonLayoutProcessor().process(content)
                result = ExtractionPipeline(load_config().extraction).process(layout)
            else:
                config = load_config()
                validate_upload(content, filename, config.processors.max_file_size_mb)
                # Processor calls block on HTTP and retry backoff.
                result = await run_in_threadpool(_run_orchestrator, content, forms)
        except HTTPException:
            raise
        except ProcessingError as exc:
            logger.error("Extraction of %s failed: %s", filename, exc)
            raise _http_error(exc) from exc
        except Exception as exc:
            logger.error("Extraction of %s failed: %s", filename, exc)
            raise HTTPException(status_code=500, detail=str(exc)) from exc

        return result.to_dict()

    return app


app = create_app()
