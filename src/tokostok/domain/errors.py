from __future__ import annotations

from typing import Iterable


class AppError(Exception):
    """Base app error."""


class ValidationError(AppError):
    def __init__(self, messages: str | Iterable[str]):
        if isinstance(messages, str):
            messages = [messages]
        # dedupe, keep first-seen order
        self.messages = list(dict.fromkeys(messages))
        super().__init__(" ".join(self.messages))


class NotFoundError(AppError):
    pass


class DuplicateCodeError(AppError):
    pass


class SubmitInProgressError(AppError):
    pass


class ConfigurationError(AppError):
    pass


class ApiError(AppError):
    """Failure talking to a webhook endpoint. str() is safe to show to users."""


class RequestTimeoutError(ApiError):
    pass


class NetworkError(ApiError):
    pass


class HttpError(ApiError):
    def __init__(self, message: str, status: int):
        super().__init__(message)
        self.status = status


class InvalidResponseError(ApiError):
    pass


class BusinessError(ApiError):
    pass


class EmptyResponseError(ApiError):
    pass
