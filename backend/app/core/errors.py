from __future__ import annotations

from fastapi import HTTPException


class TvGuideError(Exception):
    """Base for errors that may cross a route boundary.

    ``message`` is always safe to show a caller; internal detail stays in logs.
    """

    code = "internal_error"
    message = "Internal server error"
    status_code = 500

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class ConfigurationError(TvGuideError):
    code = "configuration_error"
    message = "Configuration error"
    status_code = 500


class Unauthorized(TvGuideError):
    code = "unauthorized"
    message = "Unauthorized"
    status_code = 401


class NotFound(TvGuideError):
    code = "not_found"
    message = "Not found"
    status_code = 404


class UpstreamFailure(TvGuideError):
    code = "upstream_failure"
    message = "Upstream service error"
    status_code = 502


class PersistenceCorruption(TvGuideError):
    code = "persistence_corruption"
    message = "Favorites storage is unreadable"
    status_code = 500


class OperationFailed(TvGuideError):
    code = "operation_failed"
    message = "Failed to update favorite status"
    status_code = 500


class ChatReplyError(Exception):
    """Failure while handling a bot message, tagged with the chat to notify."""

    def __init__(self, chat_id: int | None, cause: BaseException | None = None):
        super().__init__(f"chat_reply_failed chat_id={chat_id}")
        self.chat_id = chat_id
        self.cause = cause


def as_http_exception(exc: TvGuideError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.message)
