# memdav/api/pipeline.py
"""
Request pipeline: applies the access policy, then hands the request to the
WebDAV engine.

Outcomes:
- CHALLENGE: 401 with a Basic challenge for the memdav realm
- DENY: empty 200, the engine never sees the request
- SERVE_FILE: the fixed file from disk instead of the stored resource
- ALLOW: the engine handles the request
"""
import os

from starlette.requests import Request
from starlette.responses import FileResponse, PlainTextResponse, Response
from starlette.types import ASGIApp, Receive, Scope, Send

from memdav.api.policy import REALM, AccessPolicy, Outcome, parse_basic_auth
from memdav.monitoring.logger import log


class RequestPipeline:
    """
    ASGI application gating every request through an AccessPolicy.

    Args:
        policy: Immutable policy evaluated per request
        engine: ASGI application serving allowed requests
    """

    def __init__(self, policy: AccessPolicy, engine: ASGIApp):
        self.policy = policy
        self.engine = engine

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.engine(scope, receive, send)
            return

        request = Request(scope, receive)
        presented = parse_basic_auth(request.headers.get("authorization"))
        decision = self.policy.decide(request.method, presented)

        if decision.outcome is Outcome.ALLOW:
            await self.engine(scope, receive, send)
            return

        if decision.outcome is Outcome.CHALLENGE:
            log("INFO", f"Authentication required: {decision.reason}", component="pipeline",
                path=request.url.path)
            response = self.challenge()
        elif decision.outcome is Outcome.SERVE_FILE:
            response = self.serve_file()
        else:
            log("INFO", f"Request dropped: {decision.reason}", component="pipeline",
                path=request.url.path)
            response = self.silent_denial()
        await response(scope, receive, send)

    @staticmethod
    def challenge() -> Response:
        return PlainTextResponse(
            "Unauthorized",
            status_code=401,
            headers={"WWW-Authenticate": f'Basic realm="{REALM}"'},
        )

    @staticmethod
    def silent_denial() -> Response:
        # Nothing is written for the request, the server completes it as-is
        return Response(status_code=200)

    def serve_file(self) -> Response:
        path = self.policy.serve_file
        if not os.path.isfile(path):
            log("WARNING", f"Serve file is not readable: {path}", component="pipeline")
            return PlainTextResponse("Not Found", status_code=404)
        return FileResponse(path)
