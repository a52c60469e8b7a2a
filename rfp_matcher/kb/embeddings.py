"""
Sentence-transformer embedding and reranking wrappers.
Models are loaded once on first use and reused across requests.
"""
import logging
import numpy as np

from rfp_matcher import config

logger = logging.getLogger(__name__)

_model = None
_reranker = None


def get_model():
    global _model
    if _model is None:
        from sentence_transformers import SentenceTransformer
        logger.info(f"Loading embedding model: {config.EMBEDDING_MODEL}")
        _model = SentenceTransformer(config.EMBEDDING_MODEL)
        logger.info("Model loaded.")
    return _model


def get_reranker():
    global _reranker
    if _reranker is None:
        from sentence_transformers import CrossEncoder
        logger.info(f"Loading rerank model: {config.RERANK_MODEL}")
        _reranker = CrossEncoder(config.RERANK_MODEL)
        logger.info("Rerank model loaded.")
    return _reranker


def embed(text: str) -> np.ndarray:
    return get_model().encode(text, convert_to_numpy=True)


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    denom = np.linalg.norm(a) * np.linalg.norm(b)
    if denom == 0:
        return 0.0
    return float(np.dot(a, b) / denom)


def rerank(query: str, texts: list[str]) -> list[float]:
    """Score (query, text) pairs with the cross-encoder, mapped to 0-100."""
    if not texts:
        return []
    logits = np.asarray(get_reranker().predict([(query, text) for text in texts]), dtype=float)
    return [float(s) for s in 100.0 / (1.0 + np.exp(-logits))]
