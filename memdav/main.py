# memdav/main.py
"""
memdav entry point: command line parsing, the ASGI app and process startup.
"""
import argparse
import asyncio
import sys
from typing import List, Optional
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from memdav import __version__
from memdav.api.pipeline import RequestPipeline
from memdav.api.policy import AccessPolicy
from memdav.config import Settings
from memdav.errors import ConfigurationError
from memdav.file_access.base_fs import FileSystem
from memdav.file_access.protocols.webdav_protocol import WebDAVHandler
from memdav.file_access.registry import build_filesystem
from memdav.monitoring.context import bind_request
from memdav.monitoring.logger import configure_logging, log
from memdav.server.listeners import listeners_from_settings
from memdav.server.supervisor import ListenerSupervisor


def _remote_addr(request: Request) -> str:
    # Unix socket peers have no address
    if request.client is None:
        return "@"
    return f"{request.client.host}:{request.client.port}"


def create_app(settings: Settings, filesystem: Optional[FileSystem] = None) -> FastAPI:
    """
    Build the ASGI app: every path goes through the request pipeline.

    Args:
        settings: Startup configuration
        filesystem: Store to serve; built from settings when omitted
    """
    if filesystem is None:
        filesystem = build_filesystem(settings)

    app = FastAPI(title="memdav", version=__version__, docs_url=None, redoc_url=None, openapi_url=None)

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        request_id = str(uuid4())
        request.state.request_id = request_id
        remote_addr = _remote_addr(request)
        bind_request(request_id, request.method, remote_addr)
        target = request.url.path + (f"?{request.url.query}" if request.url.query else "")
        log("INFO", f"[{remote_addr}] {request.method} {target}", component="main")
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        request_id = getattr(request.state, "request_id", None)
        log("ERROR", f"Unhandled exception: {exc}", component="main", request_id=request_id, exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal Server Error",
                "request_id": request_id,
            },
        )

    pipeline = RequestPipeline(AccessPolicy.from_settings(settings), WebDAVHandler(filesystem))
    app.mount("/", pipeline)
    return app


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="memdav", description="Serve files over WebDAV.")
    parser.add_argument("--listen-http", metavar="ADDRESS", help="listen for HTTP on host:port")
    parser.add_argument("--listen-https", metavar="ADDRESS", help="listen for HTTPS on host:port")
    parser.add_argument("--listen-unix", metavar="PATH", help="listen for HTTP on a unix socket")
    parser.add_argument("--cert", metavar="FILE", help="TLS certificate for --listen-https")
    parser.add_argument("--key", metavar="FILE", help="TLS private key for --listen-https")
    parser.add_argument("--dir", metavar="DIRECTORY", help="store files in a directory instead of memory")
    parser.add_argument("--serve-file", metavar="PATH", help="answer every GET with this file")
    parser.add_argument("--no-delete", action="store_true", default=None, help="ignore DELETE requests")
    parser.add_argument("--no-save", action="store_true", default=None, help="store zeros instead of written data")
    parser.add_argument("--read-only", action="store_true", default=None, help="ignore requests that modify files")
    parser.add_argument("--username", help="username for HTTP Basic authentication")
    parser.add_argument("--password", help="password for HTTP Basic authentication")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING or ERROR")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


_FLAG_FIELDS = {
    "listen_http": "LISTEN_HTTP",
    "listen_https": "LISTEN_HTTPS",
    "listen_unix": "LISTEN_UNIX",
    "cert": "CERT_FILE",
    "key": "KEY_FILE",
    "dir": "DIR",
    "serve_file": "SERVE_FILE",
    "no_delete": "NO_DELETE",
    "no_save": "NO_SAVE",
    "read_only": "READ_ONLY",
    "username": "USERNAME",
    "password": "PASSWORD",
    "log_level": "LOG_LEVEL",
}


def parse_args(argv: Optional[List[str]] = None) -> Settings:
    """Parse command line flags on top of environment configuration."""
    args = build_parser().parse_args(argv)
    overrides = {
        field: getattr(args, flag)
        for flag, field in _FLAG_FIELDS.items()
        if getattr(args, flag) is not None
    }
    return Settings(**overrides)


def main(argv: Optional[List[str]] = None) -> None:
    """
    Start memdav. Never returns normally: startup errors exit with status 1
    and a listener failure terminates the process.
    """
    settings = parse_args(argv)
    configure_logging(settings.LOG_LEVEL)
    try:
        specs = listeners_from_settings(settings)
        filesystem = build_filesystem(settings)
    except ConfigurationError as exc:
        log("CRITICAL", str(exc), component="main")
        raise SystemExit(1) from exc

    app = create_app(settings, filesystem)
    asyncio.run(ListenerSupervisor(specs, app).run())


def run() -> None:
    main(sys.argv[1:])


if __name__ == "__main__":
    run()
