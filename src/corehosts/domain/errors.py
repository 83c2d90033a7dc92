"""Error taxonomy shared by the convergence machinery."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .objects import ObjectRef


class CorehostsError(RuntimeError):
    """Base class for every error raised by corehosts domain code."""


class ParseError(CorehostsError):
    """Raised when a Corefile cannot be parsed. Never retried."""

    def __init__(self, message: str, *, line: int | None = None) -> None:
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)
        self.line = line


class RemoteObjectError(CorehostsError):
    """Raised for failures talking to the API server about one object."""

    def __init__(
        self,
        message: str,
        *,
        kind: str | None = None,
        ref: ObjectRef | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.ref = ref


class NotFoundError(RemoteObjectError):
    """The object does not exist."""


class ConflictError(RemoteObjectError):
    """The write carried a stale resourceVersion, or the object already exists."""


class TransportError(RemoteObjectError):
    """Network failure, timeout or server-side (5xx/429) error."""


class ResourceExpiredError(RemoteObjectError):
    """A watch was started from a resourceVersion the server no longer has."""


class RemoteAPIError(RemoteObjectError):
    """Any other non-success response from the API server."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        kind: str | None = None,
        ref: ObjectRef | None = None,
    ) -> None:
        super().__init__(message, kind=kind, ref=ref)
        self.status_code = status_code


class RetryExhaustedError(CorehostsError):
    """Raised when every reconcile attempt hit a version conflict."""

    def __init__(self, *, kind: str, ref: ObjectRef, attempts: int) -> None:
        super().__init__(f"gave up on {kind} {ref} after {attempts} conflicting attempts")
        self.kind = kind
        self.ref = ref
        self.attempts = attempts


class IntegrityError(CorehostsError):
    """A write succeeded but the re-fetched object does not show it."""

    def __init__(self, message: str, *, domain: str) -> None:
        super().__init__(message)
        self.domain = domain


class RecordNotFoundError(NotFoundError):
    """No record exists for the requested domain."""

    def __init__(self, domain: str) -> None:
        super().__init__(f"can't find the ip according to the domain {domain}")
        self.domain = domain


class InstallerStepError(CorehostsError):
    """An installer step failed; later steps were not attempted."""

    def __init__(self, *, step: str, identity: str, reason: str) -> None:
        super().__init__(f"installer step {step!r} failed for {identity}: {reason}")
        self.step = step
        self.identity = identity
