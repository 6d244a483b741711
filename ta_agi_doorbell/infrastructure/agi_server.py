"""FastAGI Server — asyncio TCP listener, one AgiConnection per Asterisk session.

Invariants:
    - Every session is served in its own task; a slow or failing session never blocks others
    - Environment parsed before the request handler runs; handler receives a typed AgiRequest
    - Peer EOF or a read exceeding read_timeout → AgiConnectionClosedError;
      non-200 replies → AgiCommandError
    - The connection is always closed when the handler returns or fails
    - stop() closes every live session so shutdown never waits on a silent peer

Design Decisions:
    - Minimal in-house FastAGI: only GET FULL VARIABLE and VERBOSE are needed
    - HANGUP notices are consumed while waiting for a response and recorded on the connection
"""

import asyncio
import contextlib
import logging
from typing import Awaitable, Callable

from ta_agi_doorbell.core.domain_types import DEFAULT_READ_TIMEOUT_SECONDS
from ta_agi_doorbell.core.errors import (
    AgiCommandError,
    AgiConnectionClosedError,
    DoorbellError,
)
from ta_agi_doorbell.infrastructure.agi_protocol import (
    HANGUP_LINE,
    AgiRequest,
    AgiResponse,
    GetFullVariable,
    Verbose,
    build_request,
    parse_environment,
    parse_response,
    parse_status_line,
)

logger = logging.getLogger(__name__)

ENVIRONMENT_MAX_LINES = 256


class AgiConnection:
    """One FastAGI session. Implements the AgiSession boundary protocol."""

    def __init__(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter,
        read_timeout: float | None = DEFAULT_READ_TIMEOUT_SECONDS,
    ):
        self._reader = reader
        self._writer = writer
        self._read_timeout = read_timeout
        self.hung_up = False
        peer = writer.get_extra_info("peername")
        self.peer = f"{peer[0]}:{peer[1]}" if peer else "unknown"

    async def read_environment(self) -> dict[str, str]:
        lines = []
        for _ in range(ENVIRONMENT_MAX_LINES):
            line = await self._readline()
            lines.append(line)
            if not line.strip():
                break
        return parse_environment(lines)

    async def send_command(self, command: GetFullVariable | Verbose) -> AgiResponse:
        line = command.to_line()
        logger.debug(f"AGI >> {line.rstrip()}", extra={"peer": self.peer})
        try:
            self._writer.write(line.encode("utf-8"))
            await self._writer.drain()
        except ConnectionError as e:
            raise AgiConnectionClosedError() from e
        response = parse_response(await self._read_response_lines())
        logger.debug(f"AGI << {response.raw[0]}", extra={"peer": self.peer})
        return response

    async def get_full_variable(self, expression: str) -> str | None:
        """Evaluate `expression` on the caller's channel. None if the result is unset."""
        response = await self.send_command(GetFullVariable(expression))
        if not response.ok:
            raise AgiCommandError(response.status, response.raw[0])
        if response.result != "1":
            return None
        return response.value

    async def verbose(self, message: str, level: int = 1) -> None:
        response = await self.send_command(Verbose(message, level))
        if not response.ok:
            raise AgiCommandError(response.status, response.raw[0])

    def abort(self) -> None:
        """Close the transport without waiting. A pending read then sees EOF."""
        self._writer.close()

    async def close(self) -> None:
        self._writer.close()
        with contextlib.suppress(ConnectionError):
            await self._writer.wait_closed()

    async def _readline(self) -> str:
        try:
            async with asyncio.timeout(self._read_timeout):
                raw = await self._reader.readline()
        except ConnectionError as e:
            raise AgiConnectionClosedError() from e
        except TimeoutError as e:
            logger.info(
                f"No data from peer within {self._read_timeout:g}s",
                extra={"peer": self.peer},
            )
            raise AgiConnectionClosedError() from e
        if not raw:
            raise AgiConnectionClosedError()
        return raw.decode("utf-8", errors="replace")

    async def _read_response_lines(self) -> list[str]:
        while True:
            line = await self._readline()
            stripped = line.strip()
            if stripped == HANGUP_LINE:
                self.hung_up = True
                logger.info("Caller hung up", extra={"peer": self.peer})
                continue
            if stripped:
                break
        lines = [line]
        status, continues, _ = parse_status_line(line)
        # 520-style multi-line replies end with "<status> <text>"
        while continues:
            line = await self._readline()
            lines.append(line)
            continues = not line.startswith(f"{status} ")
        return lines


RequestHandler = Callable[[AgiConnection, AgiRequest], Awaitable[None]]


class AgiServer:
    """Accepts FastAGI sessions and hands each parsed request to `handler`."""

    def __init__(
        self, handler: RequestHandler, host: str, port: int,
        read_timeout: float | None = DEFAULT_READ_TIMEOUT_SECONDS,
    ):
        self._handler = handler
        self._host = host
        self._port = port
        self._read_timeout = read_timeout
        self._server: asyncio.base_events.Server | None = None
        self._connections: set[AgiConnection] = set()

    async def start(self) -> None:
        self._server = await asyncio.start_server(
            self._handle_client, self._host, self._port,
        )
        logger.info(f"FastAGI server listening on {self._host}:{self.bound_port}")

    @property
    def bound_port(self) -> int:
        if not self._server or not self._server.sockets:
            return self._port
        return self._server.sockets[0].getsockname()[1]

    @property
    def active_sessions(self) -> int:
        return len(self._connections)

    async def stop(self) -> None:
        if self._server:
            self._server.close()
            for connection in list(self._connections):
                connection.abort()
            await self._server.wait_closed()
            self._server = None
            logger.info("FastAGI server stopped")

    async def _handle_client(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter,
    ) -> None:
        connection = AgiConnection(reader, writer, self._read_timeout)
        self._connections.add(connection)
        logger.debug("AGI session opened", extra={"peer": connection.peer})
        try:
            env = await connection.read_environment()
            request = build_request(env)
            await self._handler(connection, request)
        except AgiConnectionClosedError:
            logger.info(
                "AGI session closed before the request completed",
                extra={"peer": connection.peer},
            )
        except DoorbellError as e:
            logger.warning(
                f"AGI session failed: {e.message}",
                extra={**e.to_log_extra(), "peer": connection.peer},
            )
        except Exception as e:
            logger.error(
                f"Unhandled exception in AGI session: {e}",
                exc_info=True, extra={"peer": connection.peer},
            )
        finally:
            self._connections.discard(connection)
            await connection.close()
            logger.debug("AGI session closed", extra={"peer": connection.peer})
