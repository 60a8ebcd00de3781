"""Per-request context handed explicitly to pipeline entry points."""

import uuid
from dataclasses import dataclass, field


@dataclass(frozen=True)
class RequestContext:
    """Who is calling and which request this is, for attribution and logs.

    Authentication and role checks happen before the pipeline is invoked;
    ``actor_id`` is whatever identity that layer established.
    """
    actor_id: str | None = None
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
