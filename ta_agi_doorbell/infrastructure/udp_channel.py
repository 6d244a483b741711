"""UDP Channel — one ephemeral datagram endpoint per actuation.

Invariants:
    - Bound to 0.0.0.0:0 (ephemeral port); bind failures surface as OSError to the caller
    - send() raises OSError on any transport failure, including errors asyncio reports
      through error_received() during or after an earlier sendto()
    - Channels are never pooled or shared; close() is idempotent
"""

from __future__ import annotations

import asyncio
import logging

logger = logging.getLogger(__name__)


class _UDPProtocol(asyncio.DatagramProtocol):
    def __init__(self) -> None:
        self.error: Exception | None = None

    def error_received(self, exc: Exception) -> None:
        self.error = exc

    def datagram_received(self, data: bytes, addr):  # noqa: ANN001
        # CMIs do not answer CoE frames
        logger.debug("Ignoring %d byte datagram from %s", len(data), addr)


class UdpChannel:
    def __init__(self, transport: asyncio.DatagramTransport, protocol: _UDPProtocol) -> None:
        self._transport: asyncio.DatagramTransport | None = transport
        self._protocol = protocol

    async def send(self, data: bytes, addr: tuple[str, int]) -> None:
        if self._transport is None or self._transport.is_closing():
            raise OSError("UDP channel is closed")
        # errors reported after the previous sendto surface on this send
        self._raise_pending()
        self._transport.sendto(data, addr)
        self._raise_pending()

    def _raise_pending(self) -> None:
        error = self._protocol.error
        if error is None:
            return
        self._protocol.error = None
        if isinstance(error, OSError):
            raise error
        raise OSError(str(error)) from error

    def close(self) -> None:
        if self._transport:
            self._transport.close()
            self._transport = None


class UdpChannelFactory:
    def __init__(self, bind_host: str = "0.0.0.0", bind_port: int = 0) -> None:
        self._local = (bind_host, bind_port)

    async def open(self) -> UdpChannel:
        loop = asyncio.get_running_loop()
        transport, protocol = await loop.create_datagram_endpoint(
            _UDPProtocol, local_addr=self._local,
        )
        return UdpChannel(transport, protocol)
