# memdav/server/supervisor.py
"""
Listener supervisor.

Runs one uvicorn server per configured transport, all serving the same ASGI
application. Every listener ends by reporting exactly one failure; the
first failure reported terminates the whole process. Sibling listeners are
not stopped first, they go down with the process.
"""
import asyncio
import os
from dataclasses import dataclass
from typing import Callable, List, Optional

import uvicorn
from starlette.types import ASGIApp

from memdav.errors import ConfigurationError, ListenerStopped
from memdav.monitoring.logger import log
from memdav.server.listeners import ListenerSpec, bind_socket, describe

# Exit status used when a listener fails
FAILURE_EXIT_CODE = 1


@dataclass(frozen=True)
class ListenerFailure:
    spec: ListenerSpec
    error: BaseException

    def __str__(self) -> str:
        return f"{self.spec.transport.label} listener on {self.spec.address} failed: {self.error}"


class FailureChannel:
    """
    Single-value channel; the first report wins and later ones are dropped.
    """

    def __init__(self):
        self._future: Optional[asyncio.Future] = None

    def _get_future(self) -> asyncio.Future:
        if self._future is None:
            self._future = asyncio.get_running_loop().create_future()
        return self._future

    def report(self, failure: ListenerFailure) -> bool:
        """Record a failure. Returns False if one was already recorded."""
        future = self._get_future()
        if future.done():
            return False
        future.set_result(failure)
        return True

    async def wait(self) -> ListenerFailure:
        return await self._get_future()


class ListenerSupervisor:
    """
    Start every listener and terminate the process on the first failure.

    Args:
        specs: Listeners to run; at least one is required
        app: ASGI application shared by all listeners
        terminate: Called with the exit status after the first failure
        server_factory: Builds a server from a uvicorn.Config
    """

    def __init__(
        self,
        specs: List[ListenerSpec],
        app: ASGIApp,
        terminate: Callable[[int], None] = os._exit,
        server_factory: Callable[[uvicorn.Config], uvicorn.Server] = uvicorn.Server,
    ):
        self.specs = list(specs)
        self.app = app
        self.terminate = terminate
        self.server_factory = server_factory
        self.failures = FailureChannel()
        self.tasks: List[asyncio.Task] = []

    def _config(self, spec: ListenerSpec) -> uvicorn.Config:
        return uvicorn.Config(
            self.app,
            lifespan="off",
            log_config=None,
            access_log=False,
            proxy_headers=False,
            server_header=False,
            ssl_certfile=spec.cert_file if spec.is_tls else None,
            ssl_keyfile=spec.key_file if spec.is_tls else None,
        )

    async def _serve(self, spec: ListenerSpec) -> None:
        try:
            config = self._config(spec)
            # Loads the TLS certificate and key; a bad pair fails the bind
            config.load()
            sock = bind_socket(spec)
            log("INFO", f"Listening for {spec.transport.label} requests on {describe(sock)}",
                component="supervisor")
            await self.server_factory(config).serve(sockets=[sock])
            error: BaseException = ListenerStopped(f"{spec.transport.label} listener stopped serving")
        except Exception as exc:
            error = exc
        self.failures.report(ListenerFailure(spec, error))

    async def run(self) -> ListenerFailure:
        """
        Start all listeners and block until the first one fails.

        Returns:
            The first failure, once ``terminate`` has been called

        Raises:
            ConfigurationError: If no listener is configured
        """
        if not self.specs:
            raise ConfigurationError("No listener configured")

        self.tasks = [
            asyncio.create_task(self._serve(spec), name=f"listener-{spec.transport.value}")
            for spec in self.specs
        ]
        failure = await self.failures.wait()
        log("CRITICAL", str(failure), component="supervisor",
            transport=failure.spec.transport.value, error_type=type(failure.error).__name__)
        self.terminate(FAILURE_EXIT_CODE)
        return failure
