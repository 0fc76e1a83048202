"""Ollama embedding client for NewsReadr.

Talks to the Ollama ``/api/embeddings`` endpoint. The HTTP client is
injectable so callers and tests can supply their own transport.
"""

import logging
import time

import httpx

logger = logging.getLogger(__name__)

DEFAULT_HOST = "http://localhost:11434"
DEFAULT_MODEL = "llama2"


class EmbeddingError(Exception):
    """Raised when the embedding provider fails to return a vector."""


class OllamaEmbedder:
    """Generate text embeddings with a local Ollama server."""

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        model: str = DEFAULT_MODEL,
        client: httpx.Client | None = None,
        timeout: float = 60.0,
    ):
        self.host = host.rstrip("/")
        self.model = model
        self.timeout = timeout
        self._client = client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        self._client.close()

    def embed(self, text: str) -> list[float]:
        """Return the embedding vector for a text.

        Raises:
            EmbeddingError: If the request fails or the response has no vector.
        """
        start = time.monotonic()
        try:
            response = self._client.post(
                f"{self.host}/api/embeddings",
                json={"model": self.model, "prompt": text},
            )
        except httpx.TimeoutException as e:
            raise EmbeddingError(
                f"Timeout generating embedding after {self.timeout}s"
            ) from e
        except httpx.HTTPError as e:
            raise EmbeddingError(
                f"Cannot reach Ollama at {self.host}: {e}"
            ) from e

        if response.status_code != 200:
            raise EmbeddingError(
                f"Ollama API error (status {response.status_code}): {response.text}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise EmbeddingError("Ollama returned a malformed response") from e
        if not isinstance(data, dict):
            raise EmbeddingError("Ollama returned a malformed response")

        embedding = data.get("embedding")
        if not embedding:
            raise EmbeddingError("No embedding returned from Ollama")

        try:
            vector = [float(x) for x in embedding]
        except (TypeError, ValueError) as e:
            raise EmbeddingError("Ollama returned a non-numeric embedding") from e

        logger.debug(
            "Embedded %d chars into %d dims in %.0fms",
            len(text),
            len(vector),
            (time.monotonic() - start) * 1000,
        )
        return vector

    def health_check(self) -> bool:
        """Check that Ollama is up and the configured model is pulled."""
        try:
            response = self._client.get(f"{self.host}/api/tags", timeout=10.0)
        except httpx.HTTPError as e:
            logger.warning("Ollama health check failed: %s", e)
            return False

        if response.status_code != 200:
            return False

        try:
            names = [str(m.get("name", "")) for m in response.json().get("models", [])]
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning("Ollama returned a malformed model list: %s", e)
            return False
        if not any(name.split(":")[0] == self.model.split(":")[0] for name in names):
            logger.warning(
                "Model %s not found in Ollama. Run 'ollama pull %s'", self.model, self.model
            )
            return False
        return True
