from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class ValidationError(AppError):
    pass


class MalformedEnvelopeError(ValidationError):
    """Inbound payload is not a JSON object carrying a string ``type``."""


class InvalidOriginError(ValidationError):
    pass


class ChannelClosedError(AppError):
    """The channel was torn down; a new one must be created."""


class FetchError(AppError):
    def __init__(self, status: int, detail: str = "") -> None:
        self.status = status
        super().__init__(f"{status}: {detail}" if detail else str(status))
