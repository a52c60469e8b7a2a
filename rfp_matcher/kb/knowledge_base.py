"""
Knowledge base: stores text contexts with metadata and answers prompt-based
semantic searches.

Contexts are embedded on write with the sentence-transformer model and kept
in Postgres. A search embeds the prompt, ranks every stored context by cosine
similarity and, when asked to, rescores the best candidates with a
cross-encoder. All scores are on a 0-100 scale.
"""
import logging
import time
from typing import Any, Callable

import numpy as np
from pydantic import BaseModel

from rfp_matcher import config
from rfp_matcher.db import Base, SessionLocal, KnowledgeBaseDefinition, KnowledgeContext
from rfp_matcher.errors import UpstreamCallError
from rfp_matcher.kb import embeddings
from rfp_matcher.metrics import kb_operation_latency, kb_errors

logger = logging.getLogger(__name__)


class MetadataField(BaseModel):
    name: str
    data_type: str = 'string'  # string, number, boolean
    required: bool = False
    description: str = ''


class Context(BaseModel):
    context_id: str
    text: str
    title: str | None = None
    metadata: dict[str, Any] = {}


class SearchResult(BaseModel):
    context: Context
    score: float
    reasoning: str | None = None


class UpsertFailure(BaseModel):
    context_id: str
    reason: str


class UpsertResponse(BaseModel):
    failures: list[UpsertFailure] = []


class KnowledgeBase:
    def __init__(
        self,
        knowledge_base_id: str | None = None,
        session_factory: Callable | None = None,
        embed_fn: Callable[[str], Any] | None = None,
        rerank_fn: Callable[[str, list[str]], list[float]] | None = None,
    ):
        self.knowledge_base_id = knowledge_base_id or config.KNOWLEDGE_BASE_ID
        self._session_factory = session_factory or SessionLocal
        self._embed = embed_fn or embeddings.embed
        self._rerank = rerank_fn or embeddings.rerank

    def __repr__(self):
        return f'KnowledgeBase({self.knowledge_base_id!r})'

    # --- Definition ---

    def upsert_knowledge_base(self, description: str, embedding_model: str,
                              metadata_fields: list[MetadataField]) -> None:
        """Create the storage tables if needed and upsert this knowledge base's definition."""
        start = time.time()
        db = self._session_factory()
        try:
            Base.metadata.create_all(bind=db.get_bind())

            definition = db.get(KnowledgeBaseDefinition, self.knowledge_base_id)
            if definition is None:
                definition = KnowledgeBaseDefinition(id=self.knowledge_base_id)
                db.add(definition)

            definition.description = description
            definition.embedding_model = embedding_model
            definition.metadata_fields = [f.model_dump() for f in metadata_fields]
            db.commit()
        except Exception as e:
            db.rollback()
            kb_errors.labels(operation='upsert_knowledge_base', error_type='db').inc()
            raise UpstreamCallError(f'Failed to upsert knowledge base {self.knowledge_base_id}: {e}') from e
        finally:
            db.close()

        kb_operation_latency.labels(operation='upsert_knowledge_base').observe(time.time() - start)
        logger.info(f"Knowledge base {self.knowledge_base_id} upserted ({len(metadata_fields)} metadata fields)")

    # --- Contexts ---

    def upsert_context(self, context: Context) -> None:
        """Embed and upsert one context. Raises UpstreamCallError on any failure."""
        response = self.upsert_contexts([context])
        if response.failures:
            raise UpstreamCallError(
                f'Failed to upsert context {context.context_id}: {response.failures[0].reason}'
            )

    def upsert_contexts(self, contexts: list[Context]) -> UpsertResponse:
        """
        Embed and upsert contexts keyed by context_id.

        Invalid contexts (no id, empty text, missing required metadata) and
        contexts whose embedding fails are reported in `failures`; the rest are
        committed together. A database error raises UpstreamCallError.
        """
        start = time.time()
        failures = []
        db = self._session_factory()
        try:
            required = self._required_fields(db)
            for context in contexts:
                reason = self._validate(context, required)
                if reason is None:
                    try:
                        vector = np.asarray(self._embed(context.text), dtype=float).tolist()
                    except Exception as e:
                        reason = f'embedding failed: {e}'
                if reason is not None:
                    kb_errors.labels(operation='upsert_context', error_type='rejected').inc()
                    logger.warning(f"Rejected context {context.context_id!r}: {reason}")
                    failures.append(UpsertFailure(context_id=context.context_id, reason=reason))
                    continue

                row = (
                    db.query(KnowledgeContext)
                    .filter_by(knowledge_base_id=self.knowledge_base_id, context_id=context.context_id)
                    .first()
                )
                if row is None:
                    row = KnowledgeContext(knowledge_base_id=self.knowledge_base_id, context_id=context.context_id)
                    db.add(row)
                row.title = context.title
                row.text = context.text
                row.context_metadata = context.metadata
                row.embedding = vector
                # Duplicate ids within one call must resolve to the same row
                db.flush()

            db.commit()
        except Exception as e:
            db.rollback()
            kb_errors.labels(operation='upsert_context', error_type='db').inc()
            raise UpstreamCallError(f'Failed to upsert contexts: {e}') from e
        finally:
            db.close()

        kb_operation_latency.labels(operation='upsert_context').observe(time.time() - start)
        logger.info(f"Upserted {len(contexts) - len(failures)}/{len(contexts)} contexts into {self.knowledge_base_id}")
        return UpsertResponse(failures=failures)

    def _required_fields(self, db) -> list[str]:
        definition = db.get(KnowledgeBaseDefinition, self.knowledge_base_id)
        if definition is None:
            return []
        return [f['name'] for f in definition.metadata_fields or [] if f.get('required')]

    @staticmethod
    def _validate(context: Context, required: list[str]) -> str | None:
        if not context.context_id:
            return 'context_id is required'
        if not context.text or not context.text.strip():
            return 'text is required'
        missing = [name for name in required if context.metadata.get(name) is None]
        if missing:
            return f"missing required metadata: {', '.join(missing)}"
        return None

    # --- Search ---

    def search_contexts_with_prompt(self, prompt: str, limit: int = 10,
                                    rerank: bool = False) -> list[SearchResult]:
        """
        Return up to `limit` contexts most relevant to `prompt`, best first.

        With rerank=True the top `limit * RERANK_CANDIDATE_FACTOR` cosine hits
        are rescored by the cross-encoder before truncation.
        """
        if limit <= 0:
            return []

        start = time.time()
        db = self._session_factory()
        try:
            rows = (
                db.query(KnowledgeContext)
                .filter_by(knowledge_base_id=self.knowledge_base_id)
                .all()
            )
            query_vector = np.asarray(self._embed(prompt), dtype=float)

            scored = [
                (row, max(0.0, embeddings.cosine_similarity(query_vector, np.asarray(row.embedding, dtype=float)) * 100))
                for row in rows
                if row.embedding
            ]
            scored.sort(key=lambda pair: pair[1], reverse=True)

            if rerank:
                candidates = [row for row, _ in scored[:limit * config.RERANK_CANDIDATE_FACTOR]]
                rerank_scores = self._rerank(prompt, [row.text for row in candidates])
                scored = sorted(zip(candidates, rerank_scores), key=lambda pair: pair[1], reverse=True)

            results = [
                SearchResult(context=self._to_context(row), score=round(float(score), 2))
                for row, score in scored[:limit]
            ]
        except Exception as e:
            kb_errors.labels(operation='search', error_type='error').inc()
            raise UpstreamCallError(f'Search in {self.knowledge_base_id} failed: {e}') from e
        finally:
            db.close()

        kb_operation_latency.labels(operation='search').observe(time.time() - start)
        logger.info(f"Search in {self.knowledge_base_id}: {len(results)} results (rerank={rerank})")
        return results

    @staticmethod
    def _to_context(row: KnowledgeContext) -> Context:
        return Context(
            context_id=row.context_id,
            title=row.title,
            text=row.text,
            metadata=dict(row.context_metadata or {}),
        )
