"""
Base class for JSON-over-HTTP clients of external services.

Adapters for the payment gateway, the LMS and the incubator subclass
JsonHttpClient. It owns the requests.Session, applies the configured
timeout on every call, logs timing, and translates transport and HTTP
failures into the adapter's ExternalServiceError subclass with the right
``is_retryable`` flag:

    Timeout, ConnectionError          → retryable
    429 Too Many Requests, 5xx        → retryable
    other 4xx                         → not retryable
    unparseable JSON body             → retryable

Usage:
    class IncubatorAdapter(JsonHttpClient):
        service_name = "incubator"
        error_class = IncubatorError

    client = IncubatorAdapter(base_url="https://incubator.example", timeout=10)
    data = client.request("POST", "/api/users/sso", json={...})
"""

from __future__ import annotations

import logging
import time
from typing import Any

import requests

from core.exceptions import ExternalServiceError


class JsonHttpClient:
    """
    Thin requests wrapper with error translation.

    Attributes:
        service_name: Used in logs and error details
        error_class: ExternalServiceError subclass raised on failure
        default_timeout: Seconds, when none is configured
    """

    service_name: str = "external"
    error_class: type[ExternalServiceError] = ExternalServiceError
    default_timeout: float = 30

    def __init__(
        self,
        base_url: str,
        timeout: float | None = None,
        headers: dict[str, str] | None = None,
        session: requests.Session | None = None,
    ):
        self.base_url = (base_url or "").rstrip("/")
        self.timeout = timeout or self.default_timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        if headers:
            self.session.headers.update(headers)

    def get_logger(self) -> logging.Logger:
        cls = type(self)
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    def build_url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        data: dict[str, Any] | None = None,
    ) -> Any:
        """
        Perform a request and return the decoded JSON body.

        Raises:
            error_class: On transport failure, HTTP error status or bad JSON
        """
        logger = self.get_logger()
        url = self.build_url(path)
        log_context = {"service": self.service_name, "method": method, "path": path}
        start_time = time.monotonic()

        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=json,
                data=data,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            logger.warning(f"{self.service_name} request timed out", extra=log_context)
            raise self.error_class(
                f"{self.service_name} request timed out after {self.timeout}s",
                error_code="UPSTREAM_TIMEOUT",
                details={**log_context, "timeout": self.timeout},
                retryable=True,
            ) from e
        except requests.exceptions.RequestException as e:
            logger.warning(
                f"{self.service_name} request failed: {type(e).__name__}",
                extra=log_context,
            )
            raise self.error_class(
                f"{self.service_name} request failed: {e}",
                error_code="UPSTREAM_UNAVAILABLE",
                details=log_context,
                retryable=True,
            ) from e

        duration_ms = (time.monotonic() - start_time) * 1000
        log_context = {
            **log_context,
            "status_code": response.status_code,
            "duration_ms": round(duration_ms, 1),
        }

        if response.status_code >= 400:
            retryable = response.status_code == 429 or response.status_code >= 500
            logger.log(
                logging.WARNING if retryable else logging.ERROR,
                f"{self.service_name} returned HTTP {response.status_code}",
                extra=log_context,
            )
            raise self.error_class(
                self.extract_error_message(response),
                error_code="UPSTREAM_RATE_LIMITED"
                if response.status_code == 429
                else "UPSTREAM_HTTP_ERROR",
                details=log_context,
                retryable=retryable,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise self.error_class(
                f"{self.service_name} returned a non-JSON response",
                error_code="UPSTREAM_BAD_RESPONSE",
                details=log_context,
                retryable=True,
            ) from e

        logger.debug(f"{self.service_name} call succeeded", extra=log_context)
        return body

    def extract_error_message(self, response: requests.Response) -> str:
        """Best-effort human message from an error response."""
        try:
            body = response.json()
        except ValueError:
            return f"HTTP {response.status_code}: {response.text[:200]}"
        if isinstance(body, dict):
            return str(body.get("message") or body.get("error") or body)
        return str(body)
