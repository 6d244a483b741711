"""AGI Routes — static path templates mapped to request operations.

Invariants:
    - Every template maps to a RequestOperation (closed set, no dynamic registration)
    - `:name` segments are captured verbatim (no trimming, no case folding)
    - Door and room templates are one operation, not two features
"""

from dataclasses import dataclass

from ta_agi_doorbell.core.domain_types import RequestOperation
from ta_agi_doorbell.core.errors import UnknownRouteError


ROUTES: dict[str, RequestOperation] = {
    "/open_door/:name": RequestOperation.RESOLVE_AND_ACTUATE,
    "/open_room/:name": RequestOperation.RESOLVE_AND_ACTUATE,
}


@dataclass(frozen=True)
class RouteMatch:
    template: str
    operation: RequestOperation
    captures: dict[str, str]


def _split(path: str) -> list[str]:
    return path.strip("/").split("/")


def match_template(template: str, path: str) -> dict[str, str] | None:
    """Captures if `path` matches `template`, else None."""
    expected = _split(template)
    actual = _split(path)
    if len(expected) != len(actual):
        return None
    captures: dict[str, str] = {}
    for want, got in zip(expected, actual):
        if want.startswith(":"):
            if not got:
                return None
            captures[want[1:]] = got
        elif want != got:
            return None
    return captures


def match_route(path: str, routes: dict[str, RequestOperation] = ROUTES) -> RouteMatch:
    for template, operation in routes.items():
        captures = match_template(template, path)
        if captures is not None:
            return RouteMatch(template, operation, captures)
    raise UnknownRouteError(path)
