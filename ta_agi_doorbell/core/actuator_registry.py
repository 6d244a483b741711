"""Actuator Registry — immutable name → CMI endpoint mapping and the resolver over it.

Invariants:
    - On-disk PDO indices are one-based (1–255); the registry stores them zero-based
    - A zero PDO is rejected when the mapping is built, never when a request arrives
    - Lookup is exact: case-sensitive, no whitespace trimming, first match wins
    - Registry is built once and never mutated (frozen dataclasses, tuple storage)
"""

from dataclasses import dataclass
from ipaddress import IPv4Address

from ta_agi_doorbell.core.domain_types import PdoIndex, VirtualNode
from ta_agi_doorbell.core.errors import PdoZeroError, UnknownActuatorError


def to_zero_based_index(pdo: int, name: str | None = None) -> PdoIndex:
    """Convert a one-based PDO to the zero-based index the codec expects."""
    if pdo == 0:
        raise PdoZeroError(name)
    if not 1 <= pdo <= 255:
        raise ValueError(f"PDO must be in 1..=255, got {pdo}")
    return PdoIndex(pdo - 1)


@dataclass(frozen=True)
class ActuatorMapping:
    """A single door (or room) mapped to a digital output on a CMI."""

    name: str
    cmi_address: IPv4Address
    cmi_port: int
    virtual_node: VirtualNode
    pdo_index: PdoIndex

    @classmethod
    def from_one_based(
        cls, name: str, cmi_address: IPv4Address, cmi_port: int,
        virtual_node: int, pdo: int,
    ) -> "ActuatorMapping":
        """Fallible conversion from the on-disk (one-based) representation."""
        if not 0 <= virtual_node <= 255:
            raise ValueError(f"virtual_node must be in 0..=255, got {virtual_node}")
        return cls(
            name=name,
            cmi_address=cmi_address,
            cmi_port=cmi_port,
            virtual_node=VirtualNode(virtual_node),
            pdo_index=to_zero_based_index(pdo, name),
        )

    @property
    def cmi_host(self) -> tuple[str, int]:
        return str(self.cmi_address), self.cmi_port


@dataclass(frozen=True)
class ActuatorRegistry:
    """Ordered, read-only collection of actuator mappings."""

    mappings: tuple[ActuatorMapping, ...] = ()

    def __len__(self) -> int:
        return len(self.mappings)

    @property
    def names(self) -> list[str]:
        return [m.name for m in self.mappings]


def resolve_actuator(registry: ActuatorRegistry, name: str) -> ActuatorMapping:
    """Translate an untrusted, caller-supplied name into a trusted mapping."""
    for mapping in registry.mappings:
        if mapping.name == name:
            return mapping
    raise UnknownActuatorError(name)
