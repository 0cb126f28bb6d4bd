import logging
import time
from typing import Any, Dict, Optional

import requests

from ..config import get_tavily_key
from ..errors import ProviderError
from ..models.search import SearchHit, SearchImage, SearchResponse

logger = logging.getLogger(__name__)

BASE_URL = "https://api.tavily.com"

_RETRY_STATUS = (429, 500, 502, 503, 504)


class TavilySearchProvider:
    """
    Web search via the Tavily API.
    Reference: https://docs.tavily.com/documentation/api-reference/endpoint/search
    Transient failures (429/5xx, connection errors) are retried with exponential backoff.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        timeout: float = 15,
        retry_attempts: int = 3,
        backoff_seconds: float = 0.5,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.timeout = timeout
        self.retry_attempts = max(1, retry_attempts)
        self.backoff_seconds = backoff_seconds
        self.session = session or requests.Session()

    def _backoff(self, attempt: int) -> float:
        return self.backoff_seconds * (2 ** attempt)

    def _post(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{BASE_URL}{path}"
        for attempt in range(self.retry_attempts):
            last = attempt == self.retry_attempts - 1
            try:
                resp = self.session.post(url, json=body, timeout=self.timeout)
            except requests.RequestException as e:
                if not last:
                    logger.warning(f"Tavily request failed ({e}), retrying")
                    time.sleep(self._backoff(attempt))
                    continue
                raise ProviderError(f"Tavily request failed: {e}")

            if resp.status_code in _RETRY_STATUS and not last:
                logger.warning(f"Tavily returned {resp.status_code}, retrying")
                time.sleep(self._backoff(attempt))
                continue

            try:
                resp.raise_for_status()
            except requests.HTTPError as e:
                raise ProviderError(f"Tavily search failed: {e}", {"status": resp.status_code})

            try:
                data = resp.json()
            except ValueError as e:
                raise ProviderError(f"Tavily returned invalid JSON: {e}")
            return data if isinstance(data, dict) else {}

        raise ProviderError("Tavily retries exhausted")

    def search(
        self,
        query: str,
        *,
        kind: str = "news",
        limit: int = 5,
        days: int = 3,
        include_answer: bool = True,
        include_images: bool = False,
        search_depth: str = "basic",
    ) -> SearchResponse:
        """
        Search the web. `days` bounds recency for news searches (1 = today only).
        """
        api_key = self.api_key or get_tavily_key()
        if not api_key:
            raise ProviderError(
                "TAVILY_API_KEY is missing or invalid. "
                "Please add it to your .env file."
            )

        logger.debug(f"Searching Tavily for {query!r} (kind={kind}, limit={limit})")
        data = self._post("/search", {
            "api_key": api_key,
            "query": query,
            "search_depth": search_depth,
            "include_answer": include_answer,
            "max_results": limit,
            "topic": kind,
            "include_raw_content": True,
            "include_images": include_images,
            "include_image_descriptions": include_images,
            "days": days,
        })

        try:
            hits = []
            for item in data.get("results") or []:
                # Tavily item: {
                #   "title": "...", "url": "...", "content": "...",
                #   "raw_content": "...", "score": 0.87,
                #   "published_date": "Mon, 19 Jan 2026 14:00:00 GMT"
                # }
                hits.append(SearchHit(
                    title=item.get("title"),
                    url=item.get("url"),
                    content=item.get("content"),
                    raw_content=item.get("raw_content"),
                    score=item.get("score"),
                    published_date=item.get("published_date"),
                    source=item.get("source"),
                ))

            images = []
            for img in data.get("images") or []:
                if isinstance(img, str):
                    images.append(SearchImage(url=img))
                elif isinstance(img, dict) and img.get("url"):
                    images.append(SearchImage(url=img["url"], description=img.get("description")))

            response = SearchResponse(
                query=data.get("query") or query,
                results=hits,
                answer=data.get("answer"),
                images=images,
                response_time=data.get("response_time"),
            )
        except Exception as e:
            logger.error(f"Tavily processing failed: {e}")
            raise ProviderError(f"Tavily error: {e}")

        logger.debug(f"Tavily returned {len(response.results)} results")
        return response
