# memdav/monitoring/context.py
"""
Per-request logging context.

The request middleware binds a RequestContext once per request; log() and
structlog events emitted while the request is handled pick it up.
"""
import contextvars
from dataclasses import asdict, dataclass
from typing import Optional

import structlog


@dataclass(frozen=True)
class RequestContext:
    """Identity of the request being served."""
    request_id: Optional[str] = None
    method: Optional[str] = None
    remote_addr: Optional[str] = None


_EMPTY = RequestContext()

_current: contextvars.ContextVar[RequestContext] = contextvars.ContextVar("memdav_request", default=_EMPTY)


def bind_request(request_id: str, method: str, remote_addr: str) -> RequestContext:
    """Make a request current for the running task and bind it for structlog."""
    ctx = RequestContext(request_id=request_id, method=method, remote_addr=remote_addr)
    _current.set(ctx)
    structlog.contextvars.bind_contextvars(**asdict(ctx))
    return ctx


def current_request() -> RequestContext:
    """The request bound in this context, or an empty RequestContext."""
    return _current.get()
