"""
Pexels stock photo search.

Returns SourceImage records for the caption batch. Multi-page fetches run in
parallel and are all-or-nothing: one failed page fails the whole fetch.
"""

import logging
import math
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Optional

import requests

from errors import AuthError, UpstreamError, UpstreamUnavailableError

PEXELS_API_BASE = "https://api.pexels.com/v1"
DEFAULT_QUERY = "ocean waves crashing"
IMAGES_PER_PAGE = 15
MAX_RESULTS = 20


@dataclass(frozen=True)
class SourceImage:
    """A stock photo as returned by the search provider."""
    id: str
    url: str
    width: int
    height: int
    photographer: str = ""
    photographer_url: str = ""

    @classmethod
    def from_photo(cls, photo: dict) -> "SourceImage":
        src = photo.get("src") or {}
        return cls(
            id=str(photo["id"]),
            url=src.get("original") or photo.get("url", ""),
            width=int(photo.get("width") or 0),
            height=int(photo.get("height") or 0),
            photographer=photo.get("photographer", ""),
            photographer_url=photo.get("photographer_url", ""),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "url": self.url,
            "width": self.width,
            "height": self.height,
            "photographer": self.photographer,
            "photographer_url": self.photographer_url,
        }


class PexelsClient:
    """Thin wrapper over the Pexels search endpoint."""

    def __init__(
        self,
        api_key: str,
        base_url: str = PEXELS_API_BASE,
        session: Optional[requests.Session] = None,
        timeout: float = 30,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def search_raw(self, query: str, page: int = 1, per_page: int = IMAGES_PER_PAGE) -> dict:
        """Run one search request and return the provider's JSON."""
        if not self.api_key:
            raise AuthError("Pexels API key is not configured")

        logging.info("Pexels search '%s' page %d (%d per page)", query, page, per_page)
        try:
            response = self.session.get(
                f"{self.base_url}/search",
                headers={"Authorization": self.api_key, "Accept": "application/json"},
                params={"query": query, "per_page": per_page, "page": page},
                timeout=self.timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            raise UpstreamUnavailableError(f"Pexels API unreachable: {e}")

        if not response.ok:
            logging.error("Pexels API error %d: %s", response.status_code, response.text[:500])
            raise UpstreamError(
                f"Pexels search failed: HTTP {response.status_code}",
                upstream_status=response.status_code,
                body=response.text,
            )
        return response.json()

    def search(self, query: str, page: int = 1, per_page: int = IMAGES_PER_PAGE) -> list[SourceImage]:
        data = self.search_raw(query, page, per_page)
        return [SourceImage.from_photo(photo) for photo in data.get("photos") or []]

    def fetch_images(self, query: str = DEFAULT_QUERY, quantity: int = MAX_RESULTS) -> list[SourceImage]:
        """
        Fetch enough pages in parallel to cover quantity, capped at MAX_RESULTS.

        Raises the first page error; no partial results are returned.
        """
        pages_needed = max(1, math.ceil(quantity / IMAGES_PER_PAGE))
        logging.info("Fetching %d images for '%s' (%d pages)", quantity, query, pages_needed)

        pages: dict[int, list[SourceImage]] = {}
        with ThreadPoolExecutor(max_workers=pages_needed) as executor:
            futures = {
                executor.submit(self.search, query, page, IMAGES_PER_PAGE): page
                for page in range(1, pages_needed + 1)
            }
            for future in as_completed(futures):
                page = futures[future]
                pages[page] = future.result()
                logging.info("Page %d fetched: %d images", page, len(pages[page]))

        images = [image for page in sorted(pages) for image in pages[page]]
        return images[:min(quantity, MAX_RESULTS)]
