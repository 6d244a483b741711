"""Core Layer purity — no I/O modules, no logging, no imports from outer layers."""

import ast
from pathlib import Path

import pytest

import ta_agi_doorbell.core as core

CORE_DIR = Path(core.__file__).parent
FORBIDDEN = {"asyncio", "logging", "socket", "os", "pathlib"}
OUTER_LAYERS = ("ta_agi_doorbell.infrastructure", "ta_agi_doorbell.services", "ta_agi_doorbell.api")


def _imported_modules(path: Path) -> set[str]:
    tree = ast.parse(path.read_text(encoding="utf-8"))
    names = set()
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            names.update(alias.name for alias in node.names)
        elif isinstance(node, ast.ImportFrom) and node.module:
            names.add(node.module)
    return names


@pytest.mark.parametrize("path", sorted(CORE_DIR.glob("*.py")), ids=lambda p: p.name)
def test_core_module_has_no_io_imports(path):
    imported = _imported_modules(path)
    assert not {name.split(".")[0] for name in imported} & FORBIDDEN
    assert not [name for name in imported if name.startswith(OUTER_LAYERS)]
