import json
from typing import Any, Optional
from urllib.parse import urlparse

from curl_cffi import CurlError
from curl_cffi.const import CurlECode
from curl_cffi.requests import AsyncSession
from loguru import logger
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from announcement_monitor.core.models import HttpStatusError, NetworkError, ParseError
from announcement_monitor.core.proxy_manager import ExchangeProxyManager
from announcement_monitor.utils.tools import truncate_content


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, HttpStatusError) and exc.retryable


class HttpClient:
    """HTTP client with per-exchange proxy support using curl_cffi"""

    DEFAULT_HEADERS = {
        'User-Agent': 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/139.0.0.0 Safari/537.36',
        'Accept': 'application/json, text/plain, */*',
        'Accept-Language': 'en-US,en;q=0.9',
        "Connection": "keep-alive",
    }

    def __init__(self, proxy_manager: Optional[ExchangeProxyManager] = None, exchange_name: Optional[str] = None,
                 timeout: float = 20):
        self._proxy_manager = proxy_manager
        self.exchange_name = exchange_name
        self._timeout = timeout
        self.session: Optional[AsyncSession] = AsyncSession(
            headers=self.DEFAULT_HEADERS.copy(),
            timeout=self._timeout,
            impersonate="chrome"
        )

        self._log = logger.bind(component="http", exchange=exchange_name or "")

    async def request(self, method: str, url: str, **kwargs) -> str:
        """
        Send one request and return the response text.

        403 and 429 (rate limiting, CDN challenges) are retried up to 3 attempts with
        exponential backoff; other failures are raised immediately as NetworkError or
        HttpStatusError.
        """
        @retry(
            retry=retry_if_exception(_is_retryable),
            stop=stop_after_attempt(3),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
            reraise=True,
            before_sleep=lambda retry_state:
                self._log.info(f"№{retry_state.attempt_number} | "
                               f"{truncate_content(str(retry_state.outcome.exception()), 200)}")
        )
        async def request_inner() -> str:
            request_kwargs = dict(kwargs)
            proxy = request_kwargs.pop('proxy', None) or await self._next_proxy()
            if proxy:
                request_kwargs['proxies'] = {'http': proxy, 'https': proxy}

            try:
                response = await self.session.request(method, url, **request_kwargs)
            except CurlError as e:
                timeout = getattr(e, "code", None) == CurlECode.OPERATION_TIMEDOUT
                raise NetworkError(f"{method} {url}: {e}", self.exchange_name, timeout=timeout) from e

            if not response.ok:
                raise HttpStatusError(response.status_code, truncate_content(response.text or "", 300),
                                      self.exchange_name)

            return response.text

        return await request_inner()

    async def request_json(self, method: str, url: str, **kwargs) -> Any:
        resp = await self.request(method, url, **kwargs)
        try:
            return json.loads(resp)
        except ValueError as e:
            raise ParseError(f"invalid JSON from {url}: {truncate_content(resp, 200)}",
                             exchange=self.exchange_name) from e

    async def get(self, url: str, **kwargs):
        return await self.request_json("GET", url, **kwargs)

    async def close(self):
        if self.session:
            await self.session.close()
            self.session = None

    async def _next_proxy(self) -> Optional[str]:
        if not self._proxy_manager or not self.exchange_name:
            return None
        return await self._proxy_manager.get_proxy(self.exchange_name)

    @staticmethod
    def get_base_url(url: str) -> str:
        parsed = urlparse(url)
        return f"{parsed.scheme}://{parsed.netloc}"
