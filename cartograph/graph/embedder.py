"""Local HuggingFace embedding service.

Loads ``sentence-transformers`` locally (Singleton) and exposes the
opaque ``embed(text) -> vector`` operation the vector store and the
retriever are written against.  Any other callable with the same
signature (a remote embedding API, a test double) can be used instead.
"""

from __future__ import annotations

import threading
from typing import Callable, Optional

import structlog
from sentence_transformers import SentenceTransformer

from cartograph.config import settings

logger = structlog.get_logger(__name__)

EmbeddingFunction = Callable[[str], list[float]]
"""Signature of the embedding operation: text in, fixed-width vector out."""


class Embedder:
    """Singleton wrapper around a local ``SentenceTransformer`` model.

    The model is loaded **once** on first use and reused across all
    subsequent calls, keeping GPU/CPU memory stable.  Instances are
    callable, so an :class:`Embedder` is itself an
    :data:`EmbeddingFunction`.

    Usage::

        embed = Embedder.get_instance()
        vec = embed("function add(a, b) { return a + b }")

    Attributes:
        model_name: HuggingFace model identifier.
    """

    _instance: Optional[Embedder] = None
    _lock: threading.Lock = threading.Lock()

    def __init__(self, model_name: str | None = None) -> None:
        self.model_name = model_name or settings.embedding_model
        self._model: Optional[SentenceTransformer] = None
        self._model_lock = threading.Lock()

    @classmethod
    def get_instance(cls, model_name: str | None = None) -> Embedder:
        """Return the singleton Embedder, creating it on first call.

        Args:
            model_name: HuggingFace model identifier; defaults to
                :pyattr:`Settings.embedding_model`.

        Returns:
            The shared :class:`Embedder` instance.
        """
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls(model_name)
        return cls._instance

    def _load_model(self) -> SentenceTransformer:
        """Lazy-load the transformer model."""
        if self._model is None:
            with self._model_lock:
                if self._model is None:
                    logger.info("loading_embedding_model", model=self.model_name)
                    self._model = SentenceTransformer(self.model_name)
                    logger.info(
                        "embedding_model_loaded",
                        model=self.model_name,
                        dim=self._model.get_sentence_embedding_dimension(),
                    )
        return self._model

    def embed_text(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text string.

        Args:
            text: The input text (code chunk prompt, query, etc.).

        Returns:
            A list of floats with the model's output dimension.
        """
        model = self._load_model()
        vec = model.encode(text, normalize_embeddings=True)
        return vec.tolist()

    __call__ = embed_text
