"""FastAGI wire protocol — request environment, commands and typed responses.

Frame format (text, newline-terminated):
  - Session start: `agi_<key>: <value>` lines, terminated by an empty line
  - Command: `<VERB> <args>`, one per line
  - Response: `200 result=<r> [(<value>)] [key=value ...]`
  - Error response: `<status> <text>`, or multi-line `520-...` terminated by `520 ...`
  - `HANGUP` may arrive asynchronously when the channel hangs up
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Optional

from ta_agi_doorbell.core.errors import AgiProtocolError

HANGUP_LINE = "HANGUP"

_STATUS_RE = re.compile(r"^(?P<status>\d{3})(?P<sep>[ -])?(?P<text>.*)$")
_RESULT_RE = re.compile(
    r"^result=(?P<result>\S*)"
    r"(?:\s+\((?P<value>.*)\))?"
    r"(?P<extra>(?:\s+[\w-]+=\S*)*)\s*$"
)


# -------------------------
# Request environment
# -------------------------

@dataclass(frozen=True)
class AgiRequest:
    env: dict[str, str]
    path: str
    captures: dict[str, str] = field(default_factory=dict)

    @property
    def channel(self) -> str | None:
        return self.env.get("agi_channel")

    def with_captures(self, captures: dict[str, str]) -> AgiRequest:
        return AgiRequest(env=self.env, path=self.path, captures=dict(captures))


def parse_environment(lines: Iterable[str]) -> dict[str, str]:
    """Parse `agi_key: value` lines. Stops at the first empty line."""
    env: dict[str, str] = {}
    for raw in lines:
        line = raw.rstrip("\r\n")
        if not line:
            break
        key, sep, value = line.partition(":")
        if not sep or not key.startswith("agi_"):
            raise AgiProtocolError(f"Malformed AGI environment line: {line!r}")
        env[key.strip()] = value.strip()
    return env


def request_path(env: dict[str, str]) -> str:
    """Request path from agi_network_script, always with a leading slash, no query string."""
    script = env.get("agi_network_script")
    if script is None:
        raise AgiProtocolError("AGI environment has no agi_network_script")
    path = script.split("?", 1)[0]
    if not path.startswith("/"):
        path = "/" + path
    return path


def build_request(env: dict[str, str]) -> AgiRequest:
    return AgiRequest(env=env, path=request_path(env))


# -------------------------
# Commands
# -------------------------

def _quote(arg: str) -> str:
    escaped = arg.replace("\\", "\\\\").replace('"', '\\"').replace("\n", " ")
    return f'"{escaped}"'


@dataclass(frozen=True)
class GetFullVariable:
    expression: str
    channel: Optional[str] = None

    def to_line(self) -> str:
        line = f"GET FULL VARIABLE {_quote(self.expression)}"
        if self.channel:
            line += f" {_quote(self.channel)}"
        return line + "\n"


@dataclass(frozen=True)
class Verbose:
    message: str
    level: int = 1

    def to_line(self) -> str:
        return f"VERBOSE {_quote(self.message)} {self.level}\n"


# -------------------------
# Responses
# -------------------------

@dataclass(frozen=True)
class AgiResponse:
    status: int
    result: str | None = None
    value: str | None = None
    extra: dict[str, str] = field(default_factory=dict)
    raw: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.status == 200


def parse_status_line(line: str) -> tuple[int, bool, str]:
    """Return (status, continues, text). `continues` is True for `520-` style lines."""
    match = _STATUS_RE.match(line.rstrip("\r\n"))
    if not match:
        raise AgiProtocolError(f"Malformed AGI response line: {line!r}")
    return int(match["status"]), match["sep"] == "-", match["text"].strip()


def parse_response(lines: list[str]) -> AgiResponse:
    """Parse the complete line(s) of one response."""
    if not lines:
        raise AgiProtocolError("Empty AGI response")
    status, _, text = parse_status_line(lines[0])
    raw = tuple(line.rstrip("\r\n") for line in lines)
    if status != 200:
        return AgiResponse(status=status, raw=raw)
    match = _RESULT_RE.match(text)
    if not match:
        raise AgiProtocolError(f"Malformed AGI 200 response: {lines[0]!r}")
    extra = {}
    for pair in match["extra"].split():
        key, _, value = pair.partition("=")
        extra[key] = value
    return AgiResponse(
        status=status,
        result=match["result"],
        value=match["value"],
        extra=extra,
        raw=raw,
    )
