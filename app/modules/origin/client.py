import asyncio
import logging
from typing import Any, Awaitable, Callable
import httpx
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception_type, stop_after_attempt, wait_incrementing
from app.modules.origin.errors import (
    OriginTimeout, OriginRateLimited, OriginHttpError, OriginUnavailable, OriginProtocolError,
)

log = logging.getLogger("origin.client")

# UPnShare expects the token in `api-token` (hyphen, not underscore)
TOKEN_HEADER = "api-token"
MAX_ERROR_BODY = 500

Sleep = Callable[[float], Awaitable[Any]]


class _RateLimitedResponse(Exception):
    """Raised inside the retry loop on HTTP 429; never escapes the client."""

    def __init__(self, url: str):
        super().__init__(f"HTTP 429 from {url}")


class OriginClient:
    def __init__(
        self,
        base_url: str,
        api_token: str,
        *,
        timeout: float = 10.0,
        max_attempts: int = 3,
        backoff_base: float = 1.0,
        backoff_max: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        if not api_token:
            log.warning("ORIGIN_API_TOKEN is empty; origin calls will be rejected")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max
        self._sleep = sleep
        self._client = httpx.AsyncClient(
            headers={TOKEN_HEADER: api_token, "Accept": "application/json"},
            timeout=timeout,
            transport=transport,
            follow_redirects=True,
        )

    async def aclose(self):
        await self._client.aclose()

    def url_for(self, path_or_url: str) -> str:
        if path_or_url.startswith(("http://", "https://")):
            return path_or_url
        return f"{self.base_url}/{path_or_url.lstrip('/')}"

    async def fetch_json(self, path_or_url: str, params: dict | None = None, timeout: float | None = None) -> Any:
        url = self.url_for(path_or_url)
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(_RateLimitedResponse),
            stop=stop_after_attempt(self.max_attempts),
            # linear and capped: base, 2*base, 3*base ... backoff_max
            wait=wait_incrementing(start=self.backoff_base, increment=self.backoff_base, max=self.backoff_max),
            sleep=self._sleep,
            before_sleep=self._log_rate_limited,
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    response = await self._send("GET", url, params=params, timeout=timeout)
                    if response.status_code == 429:
                        raise _RateLimitedResponse(url)
        except _RateLimitedResponse:
            log.warning(f"Rate limited by origin, giving up after {self.max_attempts} attempts: {url}")
            raise OriginRateLimited(url, self.max_attempts) from None

        if response.is_error:
            raise OriginHttpError(response.status_code, response.text[:MAX_ERROR_BODY], url)
        try:
            return response.json()
        except ValueError as exc:
            raise OriginProtocolError("origin response is not valid JSON", url) from exc

    def _log_rate_limited(self, retry_state: RetryCallState):
        delay = retry_state.next_action.sleep if retry_state.next_action else 0
        log.info(
            f"Rate limited by origin (attempt {retry_state.attempt_number}/{self.max_attempts}), "
            f"retrying in {delay:.2f}s: {retry_state.outcome.exception()}"
        )

    async def fetch_text(self, url: str, timeout: float | None = None) -> str:
        response = await self._send("GET", url, timeout=timeout)
        if response.is_error:
            raise OriginHttpError(response.status_code, response.text[:MAX_ERROR_BODY], url)
        return response.text

    async def open_stream(self, url: str, headers: dict | None = None, timeout: float | None = None) -> httpx.Response:
        """Streamed GET; the caller must `aclose()` the returned response."""
        request = self._client.build_request("GET", url, headers=headers, timeout=timeout or self.timeout)
        try:
            return await self._client.send(request, stream=True)
        except httpx.TimeoutException as exc:
            raise OriginTimeout(f"origin timed out: {exc}", url) from exc
        except httpx.HTTPError as exc:
            raise OriginUnavailable(f"origin unreachable: {exc}", url) from exc

    async def _send(self, method: str, url: str, *, params: dict | None = None, timeout: float | None = None) -> httpx.Response:
        try:
            return await self._client.request(method, url, params=params, timeout=timeout or self.timeout)
        except httpx.TimeoutException as exc:
            raise OriginTimeout(f"origin timed out after {timeout or self.timeout}s", url) from exc
        except httpx.HTTPError as exc:
            raise OriginUnavailable(f"origin unreachable: {exc}", url) from exc

    # ---- origin endpoints ----

    async def list_folders(self, timeout: float | None = None) -> Any:
        return await self.fetch_json("/video/folder", timeout=timeout)

    async def list_folder_videos(self, folder_id: str, page: int, per_page: int) -> Any:
        return await self.fetch_json(f"/video/folder/{folder_id}", params={"page": page, "perPage": per_page})

    async def get_video(self, video_id: str) -> Any:
        return await self.fetch_json(f"/video/manage/{video_id}")

    async def get_realtime(self, timeout: float | None = None) -> Any:
        return await self.fetch_json("/video/realtime", timeout=timeout)


def unwrap_list(payload: Any) -> list:
    """Origin listings come back either as a bare array or as {"data": [...]}."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        data = payload.get("data")
        if isinstance(data, list):
            return data
        if data is None:
            return []
    raise OriginProtocolError(f"unexpected listing payload: {type(payload).__name__}")
