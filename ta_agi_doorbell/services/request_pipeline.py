"""Request Pipeline — applies the fixed stage order to every AGI request.

Invariants:
    - Stage order is PIPELINE (AUTHENTICATE, then RESOLVE_AND_ACTUATE) for every request
    - Routing happens after authentication, so unknown paths are rejected only for authenticated callers
    - Every stage → handler mapping is visible in one dict — no getattr magic, no auto-discovery
    - All per-request errors end at report_request_error(); none propagate to the server
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from ta_agi_doorbell.api.error_handlers import report_request_error
from ta_agi_doorbell.api.routes import ROUTES, match_route
from ta_agi_doorbell.core.actuator_registry import ActuatorRegistry, resolve_actuator
from ta_agi_doorbell.core.boundary_protocols import AgiSession
from ta_agi_doorbell.core.domain_types import PIPELINE, RequestOperation
from ta_agi_doorbell.core.errors import DoorbellError, UnknownRouteError
from ta_agi_doorbell.infrastructure.agi_protocol import AgiRequest
from ta_agi_doorbell.services.authenticate_digest import DigestAuthenticator
from ta_agi_doorbell.services.pulse_controller import PulseController, PulseReport

logger = logging.getLogger(__name__)

Stage = Callable[[AgiSession, AgiRequest, "RequestOutcome"], Awaitable[None]]


@dataclass
class RequestOutcome:
    path: str
    completed: tuple[RequestOperation, ...] = ()
    actuator: str | None = None
    report: PulseReport | None = None
    error_code: str | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.error_code is None


class RequestPipeline:
    """Authenticate, then resolve and actuate. Explicit registration, fixed order."""

    def __init__(
        self,
        authenticator: DigestAuthenticator,
        registry: ActuatorRegistry,
        controller: PulseController,
        routes: dict[str, RequestOperation] = ROUTES,
    ):
        self._authenticator = authenticator
        self._registry = registry
        self._controller = controller
        self._routes = routes

        self._stages: dict[RequestOperation, Stage] = {
            RequestOperation.AUTHENTICATE: self._authenticate,
            RequestOperation.RESOLVE_AND_ACTUATE: self._resolve_and_actuate,
        }

    async def handle(self, session: AgiSession, request: AgiRequest) -> RequestOutcome:
        outcome = RequestOutcome(path=request.path)
        logger.debug(
            f"Got new AGI request for {request.path} from {request.channel or 'unknown channel'}",
            extra={"request_path": request.path},
        )
        try:
            for operation in PIPELINE:
                await self._stages[operation](session, request, outcome)
                outcome.completed += (operation,)
        except Exception as exc:
            if isinstance(exc, DoorbellError):
                exc.context.request_path = request.path
                outcome.error_code = exc.code
            else:
                outcome.error_code = "INTERNAL_ERROR"
            outcome.message = await report_request_error(session, exc)
        return outcome

    async def _authenticate(
        self, session: AgiSession, request: AgiRequest, outcome: RequestOutcome,
    ) -> None:
        await self._authenticator.authenticate(session)

    async def _resolve_and_actuate(
        self, session: AgiSession, request: AgiRequest, outcome: RequestOutcome,
    ) -> None:
        match = match_route(request.path, self._routes)
        request = request.with_captures(match.captures)
        name = request.captures.get("name")
        if match.operation is not RequestOperation.RESOLVE_AND_ACTUATE or name is None:
            raise UnknownRouteError(request.path)
        mapping = resolve_actuator(self._registry, name)
        outcome.actuator = mapping.name
        outcome.report = await self._controller.pulse(mapping)
        logger.debug(
            f"Finished opening door {mapping.name} correctly.",
            extra={"actuator": mapping.name, "request_path": request.path},
        )
