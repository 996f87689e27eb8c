"""
HTTP client for the console API.
Builds authenticated JSON or multipart requests against the configured base URL and
normalizes every failure into ApiError.
"""

import time
from typing import Any

import httpx

from crm_console.config import settings
from crm_console.errors import INVALID_RESPONSE, ConsoleError
from crm_console.infrastructure.observability.logging import get_logger, log_request
from crm_console.models.api.multipart import MultipartForm

logger = get_logger(__name__)

DEFAULT_ACCEPT = "application/json"
NETWORK_ERROR_CODE = "NETWORK_ERROR"


class ApiError(ConsoleError):
    """Normalized API error (non-2xx response or transport failure)."""

    def __init__(
        self,
        message: str,
        status: int,
        code: str | None = None,
        details: Any = None,
        correlation_id: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.details = details
        self.correlation_id = correlation_id

    @property
    def is_network_error(self) -> bool:
        return self.status == 0

    def to_envelope(self) -> dict:
        """Rebuild the wire error envelope."""
        error: dict[str, Any] = {"message": self.message}
        if self.code is not None:
            error["code"] = self.code
        if self.details is not None:
            error["details"] = self.details
        if self.correlation_id is not None:
            error["correlationId"] = self.correlation_id
        return {"error": error}

    def __repr__(self) -> str:
        return f"ApiError(status={self.status}, code={self.code!r}, message={self.message!r})"


def build_headers(
    *,
    body: Any = None,
    token: str | None = None,
    accept: str | None = None,
    extra: dict[str, str] | None = None,
) -> dict[str, str]:
    """
    Build request headers.

    Content-Type is left to the transport for multipart bodies so it carries the
    boundary. Authorization is only sent when a non-empty token is supplied.
    """
    headers = {
        "Accept": accept or DEFAULT_ACCEPT,
        "Cache-Control": "no-store",
    }
    multipart = isinstance(body, MultipartForm)
    if not multipart:
        headers["Content-Type"] = "application/json"
    for name, value in (extra or {}).items():
        # The transport writes the multipart Content-Type with its boundary
        if multipart and name.lower() == "content-type":
            continue
        headers[name] = value
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def parse_error_response(response: httpx.Response) -> ApiError:
    """
    Decode a non-2xx response into ApiError.

    Expects {"error": {"code", "message", "details", "correlationId"}}; anything
    unparseable falls back to the default message.
    """
    status = response.status_code
    message = f"Request failed with status {status}"
    code = details = correlation_id = None

    try:
        data = response.json()
    except ValueError:
        data = None

    error_info = data.get("error") if isinstance(data, dict) else None
    if isinstance(error_info, dict):
        code = error_info.get("code")
        message = error_info.get("message") or message
        details = error_info.get("details")
        correlation_id = error_info.get("correlationId")

    return ApiError(
        message,
        status=status,
        code=str(code) if code is not None else None,
        details=details,
        correlation_id=correlation_id,
    )


def to_user_message(error: Any) -> str:
    """Render any error as one human-readable line."""
    if isinstance(error, ApiError):
        ref = f" (ref: {error.correlation_id})" if error.correlation_id else ""
        return error.message + ref
    if isinstance(error, Exception):
        return str(error)
    return "Unexpected error"


class ApiClient:
    """
    Async client for the console REST API.

    No retries: every failure is raised to the caller once.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        config = settings.get_http_client_config()
        self.base_url = (base_url or settings.api_base_url()).rstrip("/")
        self._client = self._create_client(
            timeout if timeout is not None else config["timeout"],
            config,
            transport,
        )

    def _create_client(
        self, timeout: float, config: dict, transport: httpx.AsyncBaseTransport | None
    ) -> httpx.AsyncClient:
        """Create async HTTP client for the API."""
        limits = httpx.Limits(
            max_keepalive_connections=config["max_keepalive_connections"],
            max_connections=config["max_connections"],
        )
        return httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            limits=limits,
            transport=transport,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def request(
        self,
        path: str,
        *,
        method: str = "GET",
        body: Any = None,
        headers: dict[str, str] | None = None,
        token: str | None = None,
        accept: str | None = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Send a request and return the 2xx response, raising ApiError otherwise."""
        url = f"{self.base_url}{path}"
        request_headers = build_headers(body=body, token=token, accept=accept, extra=headers)

        kwargs: dict[str, Any] = {"headers": request_headers}
        if params:
            kwargs["params"] = {k: v for k, v in params.items() if v is not None}
        if isinstance(body, MultipartForm):
            kwargs.update(body.to_httpx())
        elif body is not None:
            kwargs["json"] = body

        started = time.perf_counter()
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            duration_ms = round((time.perf_counter() - started) * 1000, 2)
            log_request(method, path, 0, duration_ms)
            raise ApiError(
                f"Network error: {e}" if str(e) else "Network error",
                status=0,
                code=NETWORK_ERROR_CODE,
            ) from e

        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        log_request(method, path, response.status_code, duration_ms)

        if not response.is_success:
            error = parse_error_response(response)
            logger.error(
                "API call failed",
                path=path,
                status_code=error.status,
                error_code=error.code,
                correlation_id=error.correlation_id,
            )
            raise error

        return response

    async def fetch_json(
        self,
        path: str,
        *,
        method: str = "GET",
        body: Any = None,
        headers: dict[str, str] | None = None,
        token: str | None = None,
        accept: str | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """
        Call the API and decode the result.

        Returns:
            Decoded JSON when the response is application/json (None for an empty
            body), otherwise the raw bytes.

        Raises:
            ApiError: On any non-2xx response or transport failure
        """
        response = await self.request(
            path,
            method=method,
            body=body,
            headers=headers,
            token=token,
            accept=accept,
            params=params,
        )

        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type:
            if not response.content:
                return None
            try:
                return response.json()
            except ValueError as e:
                logger.error("Failed to parse API response", path=path, error=str(e))
                raise ApiError(
                    f"Invalid response format: {e}",
                    status=response.status_code,
                    code=INVALID_RESPONSE,
                ) from e
        return response.content
