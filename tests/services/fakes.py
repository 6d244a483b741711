"""Test Doubles — recording channel, scripted AGI session and recording sleep.

Invariants:
    - RecordingChannelFactory records every datagram across every channel it opened
    - ScriptedSession answers get_full_variable from a callable or a fixed value
    - RecordingSleep never actually waits unless given an event to block on

Design Decisions:
    - Flat fake classes (no inheritance): satisfy the boundary Protocols structurally
"""

import asyncio

from ta_agi_doorbell.core.digest import expected_digest


# -- Datagram channel ----------------------------------------------------------


class RecordingChannel:
    def __init__(self, factory: "RecordingChannelFactory", channel_id: int):
        self._factory = factory
        self.channel_id = channel_id
        self.closed = False

    async def send(self, data: bytes, addr: tuple[str, int]) -> None:
        if self.closed:
            raise OSError("channel closed")
        self._factory.attempts += 1
        if self._factory.attempts in self._factory.fail_on_send:
            raise OSError(101, "Network is unreachable")
        self._factory.sent.append((self.channel_id, data, addr))

    def close(self) -> None:
        self.closed = True


class RecordingChannelFactory:
    """Channel factory that records sends. `fail_on_send` holds 1-based attempt numbers."""

    def __init__(self, fail_open: bool = False, fail_on_send: tuple[int, ...] = ()):
        self.fail_open = fail_open
        self.fail_on_send = set(fail_on_send)
        self.attempts = 0
        self.channels: list[RecordingChannel] = []
        self.sent: list[tuple[int, bytes, tuple[str, int]]] = []

    async def open(self) -> RecordingChannel:
        if self.fail_open:
            raise OSError(98, "Address already in use")
        channel = RecordingChannel(self, len(self.channels))
        self.channels.append(channel)
        return channel


# -- Sleep ---------------------------------------------------------------------


class RecordingSleep:
    """Records requested durations. Blocks on `gate` when one is set."""

    def __init__(self, gate: asyncio.Event | None = None):
        self.calls: list[float] = []
        self.gate = gate
        self.entered = asyncio.Event()

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        self.entered.set()
        if self.gate is not None:
            await self.gate.wait()
        await asyncio.sleep(0)


# -- AGI session ---------------------------------------------------------------


class ScriptedSession:
    """AgiSession fake. `answer(expression)` computes the variable reply."""

    def __init__(self, answer=None):
        self._answer = answer
        self.expressions: list[str] = []
        self.verbose_messages: list[str] = []

    async def get_full_variable(self, expression: str) -> str | None:
        self.expressions.append(expression)
        if callable(self._answer):
            return self._answer(expression)
        return self._answer

    async def verbose(self, message: str, level: int = 1) -> None:
        self.verbose_messages.append(message)


def nonce_from_expression(expression: str) -> str:
    """Extract the nonce from `${SHA1(${VAR}:<nonce>)}`."""
    return expression.rsplit(":", 1)[1].rstrip(")}")


def digest_answer(secret: str):
    """Reply the way Asterisk's SHA1() would with `secret` set on the channel."""
    def answer(expression: str) -> str:
        return expected_digest(secret, nonce_from_expression(expression)).hex()
    return answer
