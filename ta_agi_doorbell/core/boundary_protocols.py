"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - Every socket operation is reached through one of these Protocol types
    - Implementations provided by infrastructure (or test fakes) via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, fakes need no inheritance
"""

from typing import Awaitable, Callable, Protocol


class DatagramChannel(Protocol):
    """Connectionless outbound channel, used for exactly one actuation."""
    async def send(self, data: bytes, addr: tuple[str, int]) -> None: ...
    def close(self) -> None: ...


class ChannelFactory(Protocol):
    """Opens a fresh DatagramChannel bound to an ephemeral local port."""
    async def open(self) -> DatagramChannel: ...


class AgiSession(Protocol):
    """What a pipeline stage may do with the caller's AGI session."""
    async def get_full_variable(self, expression: str) -> str | None: ...
    async def verbose(self, message: str, level: int = 1) -> None: ...


Sleep = Callable[[float], Awaitable[None]]
