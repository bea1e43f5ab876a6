"""
Banner Client - thin async HTTP layer over the Banner 9 registration system

This module:
1. Issues GET/POST requests through one shared aiohttp session
2. Attaches an explicit per-term cookie context to each request
3. Retries transport errors a bounded number of times
4. Returns a uniform BannerResponse instead of raising on bad statuses
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

import aiohttp
import requests
from pydantic import BaseModel, Field

from ..core.config import settings

logger = logging.getLogger(__name__)

# Cookie context handed from the search-mode request to the paged requests
SessionContext = Dict[str, str]


class BannerResponse(BaseModel):
    """Uniform view of one Banner response"""

    status_code: int
    body: Any = None  # decoded JSON when the response is JSON, else text
    headers: Dict[str, str] = Field(default_factory=dict)
    cookies: SessionContext = Field(default_factory=dict)
    url: str = ""
    request_body: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status_code == 200

    def json_body(self) -> Dict[str, Any]:
        """Body as a dict, or an empty dict when it isn't one."""
        return self.body if isinstance(self.body, dict) else {}


def _decode_body(text: str, content_type: str) -> Any:
    if "json" in content_type:
        try:
            return json.loads(text)
        except (json.JSONDecodeError, TypeError):
            return text
    return text


class BannerClient:
    """Async client for the Banner registration endpoints"""

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = settings.request_timeout,
        attempts: int = settings.request_attempts,
    ):
        self._session = session
        self._owns_session = session is None
        self.timeout = timeout
        self.attempts = max(1, attempts)
        self.headers = {
            "User-Agent": settings.user_agent,
            "Accept": "application/json, text/html, */*",
        }

    async def __aenter__(self) -> "BannerClient":
        if self._session is None:
            # Cookies are passed per request, never shared between terms
            self._session = aiohttp.ClientSession(
                cookie_jar=aiohttp.DummyCookieJar(),
                headers=self.headers,
            )
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    async def get(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        cookies: Optional[SessionContext] = None,
        allow_redirects: bool = True,
    ) -> BannerResponse:
        return await self._request(
            "GET", url, params=params, cookies=cookies, allow_redirects=allow_redirects
        )

    async def post(
        self,
        url: str,
        data: Optional[Dict[str, Any]] = None,
        cookies: Optional[SessionContext] = None,
    ) -> BannerResponse:
        return await self._request("POST", url, data=data, cookies=cookies)

    async def _request(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
        cookies: Optional[SessionContext] = None,
        allow_redirects: bool = True,
    ) -> BannerResponse:
        if self._session is None:
            raise RuntimeError("BannerClient used outside of 'async with'")

        request_body = None
        if data is not None:
            data = {k: str(v) for k, v in data.items()}
            request_body = "&".join(f"{k}={v}" for k, v in data.items())
        # aiohttp rejects non-str query values
        if params is not None:
            params = {k: str(v) for k, v in params.items()}

        for attempt in range(1, self.attempts + 1):
            try:
                async with self._session.request(
                    method,
                    url,
                    params=params,
                    data=data,
                    cookies=cookies,
                    allow_redirects=allow_redirects,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as response:
                    # Bad bytes become U+FFFD so the body still parses downstream
                    text = await response.text(errors="replace")
                    return BannerResponse(
                        status_code=response.status,
                        body=_decode_body(text, response.headers.get("Content-Type", "")),
                        headers={k: v for k, v in response.headers.items()},
                        cookies={name: morsel.value for name, morsel in response.cookies.items()},
                        url=str(response.url),
                        request_body=request_body,
                    )
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                if attempt == self.attempts:
                    logger.warning(
                        "%s %s failed after %d attempts: %s", method, url, attempt, e
                    )
                    break
                wait = float(attempt)
                logger.debug(
                    "Network error on %s %s (attempt %d): %s, retrying in %.0fs",
                    method, url, attempt, e, wait,
                )
                await asyncio.sleep(wait)

        return BannerResponse(status_code=0, body="", url=url, request_body=request_body)


def get_term_listing(num_terms: int = settings.num_terms) -> List[Dict[str, Any]]:
    """
    Fetch the raw term listing from Banner.

    Args:
        num_terms: How many of the most recent terms to request

    Returns:
        List of {"code": ..., "description": ...} dicts, newest first
    """
    url = f"{settings.banner_base_url}/classSearch/getTerms"
    try:
        response = requests.get(
            url,
            params={"offset": 1, "max": num_terms, "searchTerm": ""},
            headers={"User-Agent": settings.user_agent},
            timeout=settings.request_timeout,
        )
        response.raise_for_status()
        data = response.json()
    except (requests.RequestException, ValueError) as e:
        logger.error("Error fetching terms from %s: %s", url, e)
        return []

    if not isinstance(data, list):
        logger.error("Unexpected term listing shape from %s: %r", url, data)
        return []
    return data
