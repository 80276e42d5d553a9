from __future__ import annotations

from aiusage.models import ProviderStatus


class UsageError(Exception):
    """Base for every failure a provider can report.

    ``status`` is the row status the engine assigns when the error reaches it.
    """

    status: ProviderStatus = ProviderStatus.ERROR


class SourceNotFound(UsageError):
    status = ProviderStatus.UNAVAILABLE

    def __init__(self, expected: str) -> None:
        super().__init__(f"not found: {expected}")
        self.expected = expected


class SourceUnreadable(UsageError):
    status = ProviderStatus.UNAVAILABLE


class CredentialMissing(UsageError):
    status = ProviderStatus.UNAVAILABLE

    def __init__(self, names: tuple[str, ...] = ()) -> None:
        message = "credential not set"
        if names:
            message += f" ({', '.join(names)})"
        super().__init__(message)
        self.names = names


class MalformedRecord(UsageError):
    pass


class SchemaMismatch(UsageError):
    pass


class RemoteFailure(UsageError):
    pass


class AuthFailure(RemoteFailure):
    pass


class RateLimited(RemoteFailure):
    pass


class NetworkFailure(RemoteFailure):
    pass


class ProviderTimeout(RemoteFailure):
    def __init__(self, seconds: float) -> None:
        super().__init__(f"timed out after {seconds:g}s")
        self.seconds = seconds


class InternalFault(UsageError):
    pass
