"""Root conftest — shared registry, settings and secret fixtures."""

from ipaddress import IPv4Address

import pytest

from ta_agi_doorbell.core.actuator_registry import ActuatorMapping, ActuatorRegistry
from ta_agi_doorbell.core.domain_types import DEFAULT_CMI_PORT

SECRET = "top_secret"


@pytest.fixture
def secret() -> str:
    return SECRET


@pytest.fixture
def front() -> ActuatorMapping:
    return ActuatorMapping.from_one_based(
        name="front",
        cmi_address=IPv4Address("10.0.0.5"),
        cmi_port=DEFAULT_CMI_PORT,
        virtual_node=2,
        pdo=3,
    )


@pytest.fixture
def registry(front) -> ActuatorRegistry:
    return ActuatorRegistry((front,))


@pytest.fixture
def settings_data() -> dict:
    """Parsed TOML equivalent of a one-door deployment with the CMI port omitted."""
    return {
        "agi": {
            "listen_address": "127.0.0.1",
            "digest_secret": SECRET,
        },
        "cmi": {
            "door_mappings": [
                {
                    "door_name": "front",
                    "cmi_address": "10.0.0.5",
                    "virtual_node": 2,
                    "pdo": 3,
                },
            ],
        },
    }
