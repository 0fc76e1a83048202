"""Raindrop.io bookmark export."""

import logging

import httpx

from newsreadr.models import Item

logger = logging.getLogger(__name__)

RAINDROP_API_URL = "https://api.raindrop.io/rest/v1"


class RaindropError(Exception):
    """Raised when Raindrop.io rejects or fails a request."""


class RaindropClient:
    """Saves items as Raindrop.io bookmarks."""

    def __init__(
        self,
        api_token: str,
        client: httpx.Client | None = None,
        api_url: str = RAINDROP_API_URL,
    ):
        self.api_token = api_token
        self.api_url = api_url
        self._client = client or httpx.Client(timeout=30.0)

    def close(self) -> None:
        self._client.close()

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_token}"}

    def save(self, title: str, url: str, excerpt: str = "") -> None:
        """Save a bookmark.

        Raises:
            RaindropError: If the request fails or Raindrop reports failure.
        """
        payload = {"link": url, "title": title}
        if excerpt:
            payload["excerpt"] = excerpt

        try:
            response = self._client.post(
                f"{self.api_url}/raindrop", json=payload, headers=self._headers()
            )
        except httpx.HTTPError as e:
            raise RaindropError(f"Sending request to Raindrop failed: {e}") from e

        if response.status_code != 200:
            raise RaindropError(
                f"Raindrop API error (status {response.status_code}): {response.text}"
            )

        try:
            result = response.json()
        except ValueError as e:
            raise RaindropError("Raindrop returned a malformed response") from e

        if not result.get("result"):
            raise RaindropError("Raindrop API returned failure")

        logger.info("Saved '%s' to Raindrop", title)

    def save_item(self, item: Item) -> None:
        """Save a stored item, using its summary as the excerpt."""
        self.save(item.title, item.url, item.summary)

    def test_connection(self) -> None:
        """Verify the API token with a lightweight request.

        Raises:
            RaindropError: If the token is rejected or Raindrop is unreachable.
        """
        try:
            response = self._client.get(f"{self.api_url}/user", headers=self._headers())
        except httpx.HTTPError as e:
            raise RaindropError(f"Sending request to Raindrop failed: {e}") from e

        if response.status_code != 200:
            raise RaindropError(
                f"Raindrop API error (status {response.status_code}): {response.text}"
            )
