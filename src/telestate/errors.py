from __future__ import annotations


class TelestateError(Exception):
    pass


class TransportFailure(TelestateError):
    """The request never produced a usable HTTP response."""

    def __init__(self, method: str, message: str) -> None:
        super().__init__(f"{method}: {message}")
        self.method = method


class MalformedResponse(TelestateError):
    def __init__(self, method: str, message: str) -> None:
        super().__init__(f"{method}: {message}")
        self.method = method


class RemoteStatusError(TelestateError):
    """The remote service answered with ``ok: false``."""

    def __init__(
        self,
        error_code: int,
        description: str,
        *,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(
            f"telegram status error {description!r}, error_code: {error_code}"
        )
        self.error_code = error_code
        self.description = description
        self.retry_after = retry_after


class InvalidRequest(TelestateError):
    pass


class MalformedToken(TelestateError):
    def __init__(self, token: str, parts: int) -> None:
        super().__init__(
            f"state token {token!r} must have at least 3 parts, but has {parts}"
        )
        self.token = token
        self.parts = parts


class StateNotFound(TelestateError):
    pass


class MissingConversationId(TelestateError):
    pass


class HandlerFailure(TelestateError):
    """A registered handler raised while processing an update."""

    def __init__(self, update_id: int, handler: object, cause: BaseException) -> None:
        super().__init__(
            f"handler {handler!r} failed on update {update_id}: {cause}"
        )
        self.update_id = update_id
        self.handler = handler
        self.cause = cause


class ConfigError(TelestateError):
    pass


class InvalidSeparator(TelestateError):
    def __init__(self, separator: str) -> None:
        super().__init__(f"state separator must be a non-empty string, got {separator!r}")
        self.separator = separator
