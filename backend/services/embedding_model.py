"""Embedding model integration with Hugging Face Inference API."""
import random
import time
import logging
from typing import Callable, List, Optional
import httpx
from config import HUGGINGFACE_API_KEY, EMBEDDING_MODEL, EMBEDDING_DIMENSIONS, EMBED_BATCH_SIZE

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]

MAX_RETRY_DELAY = 30.0


class EmbeddingModel:
    """Wrapper for Hugging Face Inference API embedding model."""

    def __init__(
        self,
        api_key: str = HUGGINGFACE_API_KEY,
        model_name: str = EMBEDDING_MODEL,
        dimensions: int = EMBEDDING_DIMENSIONS,
        batch_size: int = EMBED_BATCH_SIZE,
        max_retries: int = 3,
        initial_delay: float = 1.0,
        timeout: float = 60.0
    ):
        """
        Initialize the embedding model client.

        Args:
            api_key: Hugging Face API key
            model_name: Model identifier (default: sentence-transformers/all-mpnet-base-v2)
            dimensions: Expected vector length for every embedding
            batch_size: Number of texts sent per request in embed_batch
            max_retries: Retry attempts after the first failed request
            initial_delay: Initial delay in seconds for exponential backoff
            timeout: Request timeout in seconds
        """
        if not api_key:
            raise ValueError("HUGGINGFACE_API_KEY environment variable is required")
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")

        self.api_key = api_key
        self.model_name = model_name
        self.dimensions = dimensions
        self.batch_size = batch_size
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.timeout = timeout
        self.api_url = f"https://api-inference.huggingface.co/models/{model_name}"

        logger.info(f"Initialized EmbeddingModel with model: {model_name}")

    def embed_text(self, text: str) -> List[float]:
        """
        Generate embedding for a single text string.

        Args:
            text: Text to embed

        Returns:
            Embedding vector as list of floats

        Raises:
            ValueError: If text is empty
            RuntimeError: If the API fails after all retries or returns a
                vector of the wrong dimension
        """
        if not text or not text.strip():
            raise ValueError("Text cannot be empty")

        embedding = self._embed_with_retry([text.strip()])[0]
        self._check_dimensions(embedding, 0)
        return embedding

    def embed_batch(
        self,
        texts: List[str],
        on_progress: Optional[ProgressCallback] = None
    ) -> List[List[float]]:
        """
        Generate embeddings for many texts in sequential fixed-size batches.

        Output order matches input order. Blank texts are embedded as a single
        space so every input keeps its slot.

        Args:
            texts: Texts to embed
            on_progress: Called as on_progress(completed, total) after each batch

        Returns:
            List of embedding vectors, one per input text
        """
        if not texts:
            return []

        total = len(texts)
        total_batches = (total + self.batch_size - 1) // self.batch_size
        embeddings: List[List[float]] = []

        for start in range(0, total, self.batch_size):
            batch = [t.strip() or " " for t in texts[start:start + self.batch_size]]
            vectors = self._embed_with_retry(batch)

            if len(vectors) != len(batch):
                raise RuntimeError(
                    f"Embedding response size mismatch: sent {len(batch)} texts, got {len(vectors)} vectors"
                )
            for offset, vector in enumerate(vectors):
                self._check_dimensions(vector, start + offset)
            embeddings.extend(vectors)

            completed = len(embeddings)
            logger.info(
                f"Embedding batch {start // self.batch_size + 1}/{total_batches} complete "
                f"({completed}/{total} texts)"
            )
            if on_progress:
                on_progress(completed, total)

        return embeddings

    def _check_dimensions(self, embedding: List[float], index: int) -> None:
        if not isinstance(embedding, list) or len(embedding) != self.dimensions:
            raise RuntimeError(
                f"Invalid embedding at index {index}: expected {self.dimensions} dims"
            )

    def _embed_with_retry(self, texts: List[str]) -> List[List[float]]:
        """
        Call the HF API with exponential backoff.

        Retries on 429, 5xx (including 503 while the model loads), timeouts
        and network errors. Other HTTP errors fail immediately.

        Raises:
            RuntimeError: If the request fails permanently or retries run out
        """
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }

        payload = {
            "inputs": texts,
            "options": {
                "wait_for_model": True
            }
        }

        last_error = None

        for attempt in range(self.max_retries + 1):
            try:
                start_time = time.time()

                with httpx.Client(timeout=self.timeout) as client:
                    response = client.post(
                        self.api_url,
                        headers=headers,
                        json=payload
                    )

                elapsed = time.time() - start_time

                if response.status_code == 200:
                    logger.debug(f"Generated embeddings for {len(texts)} texts in {elapsed:.2f}s")
                    return response.json()

                if response.status_code == 401:
                    logger.error("Authentication failed for Hugging Face API")
                    raise RuntimeError("Invalid API key")

                last_error = f"API request failed with status {response.status_code}: {response.text}"
                if response.status_code != 429 and response.status_code < 500:
                    logger.error(last_error)
                    raise RuntimeError(last_error)

            except httpx.TimeoutException:
                last_error = f"Request timeout after {self.timeout}s"

            except httpx.RequestError as e:
                last_error = f"Network error: {str(e)}"

            if attempt < self.max_retries:
                delay = self._backoff_delay(attempt)
                logger.warning(
                    f"Embedding request failed on attempt {attempt + 1}/{self.max_retries + 1}: "
                    f"{last_error}. Retrying in {delay:.1f}s..."
                )
                time.sleep(delay)

        error_msg = f"Failed to generate embeddings after {self.max_retries + 1} attempts. Last error: {last_error}"
        logger.error(error_msg)
        raise RuntimeError(error_msg)

    def _backoff_delay(self, attempt: int) -> float:
        jitter = random.uniform(0.85, 1.15)
        return min(self.initial_delay * (2 ** attempt) * jitter, MAX_RETRY_DELAY)

    def warmup(self) -> bool:
        """
        Warm up the model with a dummy query to avoid cold start delays.

        Returns:
            True if warmup successful, False otherwise
        """
        try:
            logger.info("Warming up embedding model...")
            start_time = time.time()

            self.embed_text("warmup query")

            elapsed = time.time() - start_time
            logger.info(f"Model warmup completed in {elapsed:.1f}s")
            return True

        except Exception as e:
            logger.error(f"Model warmup failed: {str(e)}")
            return False
