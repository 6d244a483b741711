"""Process entry point — exit codes for config failures and --check."""

import logging

import pytest

from ta_agi_doorbell.main import run

VALID = """
[agi]
listen_address = "127.0.0.1"
digest_secret = "s"

[cmi]
door_mappings = [{ door_name = "front", cmi_address = "10.0.0.5", virtual_node = 2, pdo = 3 }]
"""


@pytest.fixture(autouse=True)
def restore_root():
    handlers = list(logging.root.handlers)
    level = logging.root.level
    yield
    logging.root.handlers[:] = handlers
    logging.root.setLevel(level)


def test_missing_config_exits_with_1(tmp_path):
    assert run(["--config", str(tmp_path / "absent.toml")]) == 1


def test_pdo_zero_exits_with_1(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text(VALID.replace("pdo = 3", "pdo = 0"), encoding="utf-8")
    assert run(["--config", str(path)]) == 1


def test_check_validates_and_exits_with_0(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text(VALID, encoding="utf-8")
    assert run(["--config", str(path), "--check"]) == 0
