"""Pulse Controller — drives the ON, hold, OFF sequence for one actuator.

Invariants:
    - One fresh channel per actuation, closed in every outcome, never shared
    - State machine: IDLE → CHANNEL_OPEN → PULSE_ON → HOLDING → PULSE_OFF → DONE,
      FAILED reachable from any step and terminal
    - Bind failure → ChannelBindError; ON send failure → SendError;
      OFF send failure → ClosePulseSendError (door may still be open)
    - No retries: a failed actuation must be re-requested by the caller
    - Success only after the OFF frame was sent
    - The close pulse is always attempted, even when the calling session is cancelled
      (each actuation runs in its own shielded task; drain() awaits them on shutdown)
    - No coordination between actuations: overlapping pulses on one door are allowed
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable

from ta_agi_doorbell.core.actuator_registry import ActuatorMapping
from ta_agi_doorbell.core.boundary_protocols import (
    ChannelFactory,
    DatagramChannel,
    Sleep,
)
from ta_agi_doorbell.core.domain_types import (
    DEFAULT_HOLD_SECONDS,
    PulseState,
    PulseValue,
)
from ta_agi_doorbell.core.errors import (
    ChannelBindError,
    ClosePulseSendError,
    DoorbellError,
    SendError,
)
from ta_agi_doorbell.infrastructure.coe_codec import encode_digital

logger = logging.getLogger(__name__)

Encoder = Callable[[int, int, PulseValue], bytes]


@dataclass
class PulseReport:
    """Visited states of one actuation — the last entry is the current state."""

    actuator: str
    states: list[PulseState] = field(default_factory=lambda: [PulseState.IDLE])

    @property
    def state(self) -> PulseState:
        return self.states[-1]

    def advance(self, state: PulseState) -> None:
        self.states.append(state)


class PulseController:
    def __init__(
        self,
        channel_factory: ChannelFactory,
        hold_seconds: float = DEFAULT_HOLD_SECONDS,
        sleep: Sleep = asyncio.sleep,
        encode: Encoder = encode_digital,
    ):
        self._channel_factory = channel_factory
        self.hold_seconds = hold_seconds
        self._sleep = sleep
        self._encode = encode
        self._in_flight: set[asyncio.Task] = set()

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    async def pulse(self, mapping: ActuatorMapping) -> PulseReport:
        """Open the door defined by `mapping` for `hold_seconds`, then close it."""
        task = asyncio.create_task(self._run(mapping))
        self._in_flight.add(task)
        task.add_done_callback(self._forget)
        return await asyncio.shield(task)

    async def drain(self) -> None:
        """Wait for every in-flight actuation to finish its close pulse."""
        if self._in_flight:
            logger.info(f"Waiting for {len(self._in_flight)} actuation(s) to close")
            await asyncio.gather(*self._in_flight, return_exceptions=True)

    def _forget(self, task: asyncio.Task) -> None:
        self._in_flight.discard(task)
        # failures were already logged in _run; mark them retrieved for orphaned tasks
        if not task.cancelled():
            task.exception()

    async def _run(self, mapping: ActuatorMapping) -> PulseReport:
        report = PulseReport(mapping.name)
        extra = {"actuator": mapping.name}
        try:
            channel = await self._channel_factory.open()
        except OSError as e:
            report.advance(PulseState.FAILED)
            raise self._failed(ChannelBindError(str(e)), report) from e
        report.advance(PulseState.CHANNEL_OPEN)
        logger.debug("Got UDP socket to open door", extra=extra)

        try:
            report.advance(PulseState.PULSE_ON)
            try:
                await self._send(channel, mapping, PulseValue.ON)
            except OSError as e:
                raise SendError(str(e)) from e
            logger.info(
                f"Opened door {mapping.name}. Will stay open for {self.hold_seconds:g}s.",
                extra={**extra, "phase": PulseValue.ON.value},
            )

            report.advance(PulseState.HOLDING)
            await self._sleep(self.hold_seconds)

            report.advance(PulseState.PULSE_OFF)
            try:
                await self._send(channel, mapping, PulseValue.OFF)
            except OSError as e:
                raise ClosePulseSendError(str(e)) from e
            report.advance(PulseState.DONE)
            logger.info(
                f"Closed door {mapping.name}.",
                extra={**extra, "phase": PulseValue.OFF.value},
            )
            return report
        except DoorbellError as e:
            report.advance(PulseState.FAILED)
            raise self._failed(e, report)
        finally:
            channel.close()

    async def _send(
        self, channel: DatagramChannel, mapping: ActuatorMapping, value: PulseValue,
    ) -> None:
        frame = self._encode(mapping.virtual_node, mapping.pdo_index, value)
        await channel.send(frame, mapping.cmi_host)

    @staticmethod
    def _failed(error: DoorbellError, report: PulseReport) -> DoorbellError:
        error.context.actuator = report.actuator
        error.context.debug_info = {"states": [s.value for s in report.states]}
        logger.error(
            f"Actuation of {report.actuator} failed: {error.message}",
            extra=error.to_log_extra(),
        )
        return error
