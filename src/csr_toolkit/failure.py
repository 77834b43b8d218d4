"""
Failure description — structured error information for the failure track.

Every failure carries an ErrorCode naming *what kind* of problem occurred,
a human-readable message, and (optionally) the collaborator exception that
caused it. The exception is kept for logging only; it never reaches an
HTTP caller in production mode.

Error codes split in two groups:
  - Validation kinds — caller-fixable, reported verbatim (→ 400)
  - GENERATION_FAILED / PARSE_FAILED — internal, reported generically (→ 500)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum, unique


@unique
class ErrorCode(Enum):
    """Closed set of failure kinds produced by the CSR core."""

    # --- Validation kinds (caller-fixable) ---
    REQUIRED = "REQUIRED"
    """A mandatory field is missing or blank."""

    TOO_LONG = "TOO_LONG"
    """A field exceeds its maximum length."""

    INVALID_FORMAT = "INVALID_FORMAT"
    """A field does not match its structural format (country, email)."""

    TOO_WEAK = "TOO_WEAK"
    """Password shorter than the minimum length."""

    INSUFFICIENT_COMPLEXITY = "INSUFFICIENT_COMPLEXITY"
    """Password uses too few character classes."""

    INVALID_SAN = "INVALID_SAN"
    """A Subject Alternative Name entry is malformed for its type."""

    INVALID_OID = "INVALID_OID"
    """An object identifier is not dotted-decimal with two or more arcs."""

    INVALID_KEY_USAGE = "INVALID_KEY_USAGE"
    """Unknown key usage flag or an inconsistent flag combination."""

    INVALID_KEY_SPEC = "INVALID_KEY_SPEC"
    """Unsupported key type, RSA modulus size or elliptic curve."""

    UNKNOWN_TEMPLATE = "UNKNOWN_TEMPLATE"
    """The requested usage template does not exist."""

    # --- Internal kinds (reported generically) ---
    GENERATION_FAILED = "GENERATION_FAILED"
    """Key generation, signing or PEM export failed."""

    PARSE_FAILED = "PARSE_FAILED"
    """Input is not a well-formed PEM-encoded PKCS#10 request."""

    @property
    def is_validation(self) -> bool:
        """True for caller-fixable kinds that are safe to report verbatim."""
        return self not in (ErrorCode.GENERATION_FAILED, ErrorCode.PARSE_FAILED)


@dataclass(frozen=True, slots=True)
class FailureDescription:
    """
    Immutable failure descriptor: error code, message, optional exception, timestamp.

    >>> desc = FailureDescription(ErrorCode.REQUIRED, "Common Name (CN) is required")
    >>> desc.code.is_validation
    True
    """

    code: ErrorCode
    message: str
    exception: BaseException | None = field(default=None, repr=False)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def detail(self) -> str | None:
        """The underlying exception text, if any — for development-mode responses."""
        if self.exception is None:
            return None
        return str(self.exception) or type(self.exception).__name__

