"""Pydantic request/response schemas for the FastAPI endpoints."""

from pydantic import BaseModel

from docstruct.jobs.queue import Priority


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    processor_configured: bool
    queued_jobs: int


class EnqueueRequest(BaseModel):
    """Request schema for registering an extraction job."""

    user_id: str
    filename: str
    priority: Priority = Priority.NORMAL


class EnqueueResponse(BaseModel):
    job_id: str
