"""Shared dependencies for API routes."""

from fastapi import Header

from services.pipeline.context import RequestContext
from services.pipeline.orchestrator import ResumePipeline, build_pipeline

_pipeline: ResumePipeline | None = None


def get_pipeline() -> ResumePipeline:
    global _pipeline
    if _pipeline is None:
        _pipeline = build_pipeline()
    return _pipeline


def get_request_context(
    x_user_id: str | None = Header(default=None),
    x_request_id: str | None = Header(default=None),
) -> RequestContext:
    if x_request_id:
        return RequestContext(actor_id=x_user_id, request_id=x_request_id)
    return RequestContext(actor_id=x_user_id)
