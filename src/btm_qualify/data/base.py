"""
Shared aiohttp request loop for the third-party API clients
"""

import json
import logging
import asyncio
from typing import Dict, Optional, Any
from urllib.parse import urlencode
import aiohttp

from ..storage.cache import get_api_cache, set_api_cache

logger = logging.getLogger(__name__)

class APIClient:
    """Base client with retry, backoff and response caching"""

    api_name = 'api'

    def __init__(self, timeout: int, max_retries: int, backoff_factor: float):
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_factor = backoff_factor

    def _should_cache(self, data: Any) -> bool:
        """Whether a successful response body may be served from cache later"""
        return data is not None

    async def _make_request(self, url: str, params: Optional[Dict[str, Any]] = None,
                            use_cache: bool = True) -> Optional[Any]:
        """
        Make GET request with retry logic and caching

        Args:
            url: Endpoint URL
            params: Query parameters
            use_cache: Look up and store the response in the API cache

        Returns:
            Decoded JSON body, or None if the request failed
        """
        cache_key = f"{url}?{urlencode(sorted((params or {}).items()), doseq=True)}"
        if use_cache:
            cached_response = await get_api_cache(cache_key)
            if cached_response is not None:
                logger.info(f"Returning cached {self.api_name} response for {url}")
                return cached_response

        for attempt in range(self.max_retries):
            try:
                logger.debug(f"Making {self.api_name} request to {url} (attempt {attempt + 1})")
                async with aiohttp.ClientSession() as session:
                    async with session.get(url, params=params, timeout=aiohttp.ClientTimeout(total=self.timeout)) as response:
                        if response.status == 200:
                            # Census answers some errors with 200 and a plain-text body
                            body = await response.text()
                            try:
                                response_data = json.loads(body)
                            except json.JSONDecodeError:
                                logger.error(f"{self.api_name} returned non-JSON body: {body[:200]}")
                                return None
                            if use_cache and self._should_cache(response_data):
                                await set_api_cache(cache_key, response_data)
                            return response_data
                        elif response.status == 429 or response.status >= 500:
                            wait_time = self.backoff_factor * (2 ** attempt)
                            logger.warning(f"{self.api_name} returned {response.status}, waiting {wait_time}s before retry")
                            await asyncio.sleep(wait_time)
                            continue
                        else:
                            error_text = await response.text()
                            logger.error(f"{self.api_name} request failed with status {response.status}: {error_text[:500]}")
                            return None

            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                logger.error(f"{self.api_name} request error: {e}")
                if attempt < self.max_retries - 1:
                    wait_time = self.backoff_factor * (2 ** attempt)
                    logger.info(f"Retrying in {wait_time}s...")
                    await asyncio.sleep(wait_time)

        logger.error(f"{self.api_name} request to {url} failed after {self.max_retries} attempts")
        return None
