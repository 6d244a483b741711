"""Error Hierarchy — typed, categorized exceptions for every doorbell failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Config errors are fatal at startup; every other error rejects a single request
    - to_agi_message() produces the caller-visible text sent back over the AGI session
    - No internal details (secrets, expected digests, stack traces) leak into caller messages

Design Decisions:
    - Single hierarchy with DoorbellError base: the AGI error boundary catches all of them
    - Conversions between components are explicit (`raise X(...) from exc`), never implicit
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ErrorSeverity(str, Enum):
    """Error severity for observability and caller handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories — one per pipeline component."""
    CONFIG = "config"
    AUTHENTICATION = "authentication"
    RESOLUTION = "resolution"
    TRANSPORT = "transport"
    PROTOCOL = "protocol"
    CODEC = "codec"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    request_path: str | None = None
    actuator: str | None = None
    peer: str | None = None
    user_message: str | None = None
    debug_info: dict[str, Any] | None = None


class DoorbellError(Exception):
    """Base exception for all doorbell errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        client_side: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.client_side = client_side

    def to_agi_message(self) -> str:
        """Caller-visible diagnostic for the VERBOSE command."""
        text = self.context.user_message or self.message
        return f"{self.code}: {text}"

    def to_log_extra(self) -> dict:
        """Structured fields for the JSON log formatter."""
        return {
            "error_code": self.code,
            "request_path": self.context.request_path,
            "actuator": self.context.actuator,
            "peer": self.context.peer,
        }


# ─── Config Errors (fatal at startup) ────────────────────────────

class ConfigError(DoorbellError):
    """Base for startup configuration failures."""
    def __init__(self, message: str, code: str, context: ErrorContext | None = None):
        super().__init__(
            message, code, ErrorCategory.CONFIG, ErrorSeverity.CRITICAL, context,
        )


class ConfigReadError(ConfigError):
    """Config file could not be read."""
    def __init__(self, path: str, reason: str, context: ErrorContext | None = None):
        super().__init__(
            f"Error reading from file {path}: {reason}", "CONFIG_READ_ERROR", context,
        )
        self.path = path


class ConfigParseError(ConfigError):
    """Config file is not valid TOML."""
    def __init__(self, reason: str, context: ErrorContext | None = None):
        super().__init__(
            f"Error parsing config file as toml: {reason}", "CONFIG_PARSE_ERROR", context,
        )


class ConfigSchemaError(ConfigError):
    """Config file parsed but does not match the schema."""
    def __init__(self, reason: str, context: ErrorContext | None = None):
        super().__init__(
            f"Config file does not match the schema: {reason}", "CONFIG_SCHEMA_ERROR", context,
        )


class PdoZeroError(ConfigError):
    """A one-based PDO index was configured as zero."""
    def __init__(self, name: str | None = None, context: ErrorContext | None = None):
        where = f" (mapping '{name}')" if name else ""
        super().__init__(
            f"One of the PDO indices is zero{where}. They need to be one-based.",
            "PDO_ZERO", context,
        )
        self.name = name


# ─── Authentication Errors ───────────────────────────────────────

class AuthenticationError(DoorbellError):
    """Base for digest handshake failures. The request is rejected, nothing is actuated."""
    def __init__(
        self, message: str, code: str, user_message: str,
        client_side: bool = False, context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.user_message = user_message
        super().__init__(
            message, code, ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, ctx, client_side,
        )


class DigestDecodeError(AuthenticationError):
    """The returned digest was not decodable as hex."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "The returned digest was not decodable as hex",
            "DIGEST_DECODE_ERROR", "Unauthenticated: Undecodable Digest.",
            context=context,
        )


class WrongDigestError(AuthenticationError):
    """The returned digest does not match the expected one."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "The returned digest is false",
            "WRONG_DIGEST", "Unauthenticated: Wrong Digest.",
            context=context,
        )


class MissingSecretError(AuthenticationError):
    """The caller never set the digest secret variable."""
    def __init__(self, variable: str, context: ErrorContext | None = None):
        super().__init__(
            f"Expected {variable} to be set, but it is not",
            "MISSING_SECRET", f"Unauthenticated: {variable} is not set.",
            client_side=True, context=context,
        )
        self.variable = variable


# ─── Resolution Errors (client-side) ─────────────────────────────

class UnknownActuatorError(DoorbellError):
    """Requested actuator name is not configured."""
    def __init__(self, name: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.actuator = ctx.actuator or name
        super().__init__(
            f"No door or room named '{name}' is configured.", "UNKNOWN_ACTUATOR",
            ErrorCategory.RESOLUTION, ErrorSeverity.WARNING, ctx, client_side=True,
        )
        self.name = name


class UnknownRouteError(DoorbellError):
    """Request path matches no route template."""
    def __init__(self, path: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.request_path = ctx.request_path or path
        super().__init__(
            f"No route for '{path}'", "UNKNOWN_ROUTE",
            ErrorCategory.RESOLUTION, ErrorSeverity.WARNING, ctx, client_side=True,
        )
        self.path = path


# ─── Transport Errors ────────────────────────────────────────────

class ChannelBindError(DoorbellError):
    """No UDP socket could be bound to send the pulse from."""
    def __init__(self, reason: str, context: ErrorContext | None = None):
        super().__init__(
            f"Cannot bind to a udp socket to send packets from: {reason}",
            "CHANNEL_BIND_ERROR", ErrorCategory.TRANSPORT,
            ErrorSeverity.ERROR, context,
        )


class SendError(DoorbellError):
    """The ON packet could not be sent. The actuator was not switched."""
    def __init__(
        self, reason: str, phase: str = "on",
        code: str = "SEND_ERROR",
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Cannot send the complete coe packet ({phase}): {reason}",
            code, ErrorCategory.TRANSPORT, severity, context,
        )
        self.phase = phase


class ClosePulseSendError(SendError):
    """The OFF packet could not be sent. The actuator may still be on."""
    def __init__(self, reason: str, context: ErrorContext | None = None):
        super().__init__(
            reason, "off", "CLOSE_PULSE_SEND_ERROR", ErrorSeverity.CRITICAL, context,
        )
        self.message = f"{self.message}. The door may still be open."
        self.args = (self.message,)


# ─── Protocol Errors ─────────────────────────────────────────────

class AgiProtocolError(DoorbellError):
    """Malformed AGI environment or response line."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "AGI_PROTOCOL_ERROR", ErrorCategory.PROTOCOL,
            ErrorSeverity.ERROR, context,
        )


class AgiCommandError(DoorbellError):
    """AGI command answered with a non-200 status."""
    def __init__(self, status: int, line: str, context: ErrorContext | None = None):
        super().__init__(
            f"AGI command failed with status {status}: {line}",
            "AGI_NOT_200", ErrorCategory.PROTOCOL, ErrorSeverity.ERROR, context,
        )
        self.status = status


class AgiConnectionClosedError(DoorbellError):
    """Peer closed the AGI session."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "AGI session closed by peer", "AGI_CONNECTION_CLOSED",
            ErrorCategory.PROTOCOL, ErrorSeverity.WARNING, context,
        )


# ─── Codec Errors ────────────────────────────────────────────────

class CodecError(DoorbellError):
    """CoE packet could not be built or parsed."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "CODEC_ERROR", ErrorCategory.CODEC, ErrorSeverity.ERROR, context,
        )
