"""
Async client for the Soundraw catalog API.
"""

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

import aiohttp
from pydantic import BaseModel, ValidationError

from soundraw_cli.exceptions import APIError, NetworkError
from soundraw_cli.models.sample import (
    GenresResponse,
    SearchSamplesRequest,
    SearchSamplesResponse,
)
from soundraw_cli.storage.config_manager import ConfigManager

log = logging.getLogger(__name__)


class SoundrawAPIClient:
    """
    Async client for the Soundraw sample search endpoints.

    The credential record is re-read from the config store before every call,
    so a setup or reset performed in between takes effect immediately.
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Initializes the API client.

        Args:
            config_manager: Source of the token and API base URL.
            session: Optional pre-built session; one is created lazily otherwise.
        """
        self.config_manager = config_manager
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "SoundrawAPIClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _initialize_session(self) -> aiohttp.ClientSession:
        """Ensures an active aiohttp session is available."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=30, connect=10, sock_read=20),
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Gracefully closes the aiohttp session if this client created it."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    async def api_call(
        self, endpoint: str, params: Optional[List[tuple[str, str]]] = None
    ) -> Dict[str, Any]:
        """
        Makes an authenticated GET request and returns the decoded JSON body.

        Raises:
            ConfigurationError: If the token or base URL is not configured.
            APIError: On a non-success HTTP status.
            NetworkError: On transport failures or an undecodable body.
        """
        config = self.config_manager.require_credentials()
        session = await self._initialize_session()

        url = f"{config.api_base_url}{endpoint}"
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {config.token}",
        }

        start_time = time.monotonic()
        try:
            async with session.get(url, params=params or None, headers=headers) as r:
                duration_ms = (time.monotonic() - start_time) * 1000
                log.debug(f"GET {endpoint} -> {r.status} in {duration_ms:.0f}ms")

                if r.status >= 400:
                    raise APIError(
                        f"API request failed: {r.status} {r.reason}", status=r.status
                    )
                return await r.json(content_type=None)
        except APIError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            log.debug(f"API call to {endpoint} failed: {e}")
            raise NetworkError(f"Network error: {e or type(e).__name__}") from e

    @staticmethod
    def _parse(model: type[BaseModel], endpoint: str, data: Any) -> Any:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            log.debug(f"Unexpected response shape from {endpoint}: {e}")
            raise APIError(
                f"Unexpected API response from {endpoint}: {_describe(e)}"
            ) from e

    # Public API Methods
    async def search_samples(
        self,
        genres: Optional[List[str]] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> SearchSamplesResponse:
        request = SearchSamplesRequest(genres=genres or [], page=page, limit=limit)
        data = await self.api_call("/beats", request.to_params())
        return self._parse(SearchSamplesResponse, "/beats", data)

    async def get_available_genres(self) -> GenresResponse:
        data = await self.api_call("/tags")
        return self._parse(GenresResponse, "/tags", data)


def _describe(error: ValidationError) -> str:
    errors = error.errors()
    if not errors:
        return "invalid body"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location or 'body'}: {first.get('msg', 'invalid value')}"
