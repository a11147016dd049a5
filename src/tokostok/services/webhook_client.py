from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Optional

import requests

from tokostok.domain.errors import (
    AppError,
    BusinessError,
    ConfigurationError,
    HttpError,
    InvalidResponseError,
    NetworkError,
    RequestTimeoutError,
)

log = logging.getLogger("tokostok.webhook")

DEFAULT_TIMEOUT = 30.0

_JSON_HEADERS = {"Content-Type": "application/json", "Accept": "application/json"}


class WebhookClient:
    """One request per call against a webhook endpoint. No retries.

    Every failure is raised as an ``ApiError`` subclass whose message is fit for
    end users; the technical cause is only logged when ``debug`` is on.

    ``timeout`` is handed to ``requests``, which applies it to the connect and
    to each socket read, not to the whole exchange. A server that keeps
    trickling bytes can hold a request past it.
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        debug: bool = False,
    ):
        self.session = session or requests.Session()
        self.timeout = timeout
        self.debug = debug

    def get(self, endpoint: Optional[str], timeout: float | None = None, headers: Mapping[str, str] | None = None) -> Any:
        return self.request(endpoint, "GET", timeout=timeout, headers=headers)

    def post(
        self,
        endpoint: Optional[str],
        body: Any = None,
        timeout: float | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        return self.request(endpoint, "POST", body, timeout=timeout, headers=headers)

    def request(
        self,
        endpoint: Optional[str],
        method: str = "POST",
        body: Any = None,
        timeout: float | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Returns the decoded JSON body, or None for an empty body."""
        if not endpoint or not endpoint.strip():
            raise ConfigurationError("Webhook endpoint is not configured.")

        method = method.upper()
        wait = self.timeout if timeout is None else timeout
        merged_headers = {**_JSON_HEADERS, **(headers or {})}
        data = json.dumps(body) if body is not None else None

        try:
            r = self.session.request(method, endpoint, data=data, headers=merged_headers, timeout=wait)
        except requests.Timeout as e:
            self._report(method, endpoint, "timeout", e)
            raise RequestTimeoutError(f"Request timed out after {wait:g} seconds. Please try again.") from e
        except requests.RequestException as e:
            self._report(method, endpoint, "network", e)
            raise NetworkError("Could not reach the server. Check the connection or the webhook URL.") from e

        text = r.text or ""
        parsed: Any = None
        parse_failed = False
        if text.strip():
            try:
                parsed = json.loads(text)
            except ValueError as e:
                parse_failed = True
                if self.debug:
                    log.debug("webhook_body_not_json url=%s error=%s body=%r", endpoint, e, text[:500])

        if not 200 <= r.status_code < 300:
            message = server_message(parsed) or text.strip() or f"Server error ({r.status_code})"
            err = HttpError(message, status=r.status_code)
            self._report(method, endpoint, f"http_{r.status_code}", err)
            raise err

        if parse_failed:
            err = InvalidResponseError("Invalid server response.")
            self._report(method, endpoint, "invalid_json", err)
            raise err

        if isinstance(parsed, dict) and parsed.get("success") is False:
            err = BusinessError(server_message(parsed) or "The server rejected the request.")
            self._report(method, endpoint, "business_failure", err)
            raise err

        log.info("webhook_request_ok method=%s url=%s status=%s", method, endpoint, r.status_code)
        return parsed

    def _report(self, method: str, endpoint: str, kind: str, cause: Exception) -> None:
        log.warning("webhook_request_failed method=%s url=%s kind=%s", method, endpoint, kind)
        if self.debug:
            log.warning("webhook_request_cause kind=%s cause=%r", kind, cause)


def server_message(parsed: Any) -> str:
    if isinstance(parsed, dict):
        message = parsed.get("message")
        if isinstance(message, str) and message.strip():
            return message.strip()
    return ""


def user_message(error: Exception, fallback: str = "Something went wrong. Please try again.") -> str:
    """The one message shown for any failure at a controller boundary."""
    if isinstance(error, AppError):
        return str(error) or fallback
    return fallback
