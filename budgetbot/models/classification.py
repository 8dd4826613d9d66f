"""
Failure Classification Models

A remote failure is reduced to a ClassifiedError before anything is
shown to the user. The classification decides two things:
1. Which message the UI shows (message_key)
2. Whether a retry action is offered (retryable)

DESIGN DECISION: Unknown failures are retryable.
The user should never be silently blocked by a failure we did not
anticipate; only failures that need user action (re-auth, top-up)
are terminal.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ErrorKind(str, Enum):
    """Client-side failure taxonomy."""
    NETWORK = "network"
    TIMEOUT = "timeout"
    UNAUTHORIZED = "unauthorized"
    NO_CREDITS = "no_credits"
    SERVER = "server"
    UNKNOWN = "unknown"


class Remediation(str, Enum):
    """What the UI should offer the user after a failure."""
    RETRY = "retry"
    SIGN_IN = "sign_in"          # Session expired, re-authenticate
    ADD_FUNDS = "add_funds"      # Out of AI credits, upgrade or top up


class ClassifiedError(BaseModel):
    """
    Stateless classification of one raw failure.

    Recomputed from each failure; never persisted.
    """
    model_config = ConfigDict(frozen=True)

    kind: ErrorKind = Field(
        ...,
        description="Taxonomy entry"
    )
    message_key: str = Field(
        ...,
        min_length=1,
        description="Identifier of the user-facing message"
    )
    retryable: bool = Field(
        ...,
        description="Should the UI offer a retry action?"
    )

    @property
    def remediation(self) -> Remediation:
        if self.kind == ErrorKind.UNAUTHORIZED:
            return Remediation.SIGN_IN
        if self.kind == ErrorKind.NO_CREDITS:
            return Remediation.ADD_FUNDS
        return Remediation.RETRY

    @classmethod
    def of(cls, kind: ErrorKind) -> "ClassifiedError":
        """Build the canonical classification for a taxonomy entry."""
        return cls(
            kind=kind,
            message_key=kind.value,
            retryable=kind not in (ErrorKind.UNAUTHORIZED, ErrorKind.NO_CREDITS),
        )
