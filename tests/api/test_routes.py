"""AGI Routes — template matching and the door/room aliases."""

import pytest

from ta_agi_doorbell.api.routes import ROUTES, match_route, match_template
from ta_agi_doorbell.core.domain_types import RequestOperation
from ta_agi_doorbell.core.errors import UnknownRouteError


def test_template_captures_name():
    assert match_template("/open_door/:name", "/open_door/front") == {"name": "front"}


@pytest.mark.parametrize("path", [
    "/open_door",
    "/open_door/",
    "/open_door/front/extra",
    "/close_door/front",
])
def test_template_rejects_other_shapes(path):
    assert match_template("/open_door/:name", path) is None


def test_capture_is_verbatim():
    assert match_template("/open_door/:name", "/open_door/Front%20Door") == {"name": "Front%20Door"}


@pytest.mark.parametrize("path", ["/open_door/front", "/open_room/front"])
def test_door_and_room_are_one_operation(path):
    match = match_route(path)
    assert match.operation is RequestOperation.RESOLVE_AND_ACTUATE
    assert match.captures == {"name": "front"}


def test_unmatched_path_raises_unknown_route():
    with pytest.raises(UnknownRouteError):
        match_route("/ring_bell/front")


def test_every_route_maps_to_an_operation():
    assert all(isinstance(op, RequestOperation) for op in ROUTES.values())
