"""Tests for the knowledge base against an in-memory SQLite database."""
import pytest

from conftest import bag_of_words_embed
from rfp_matcher.db import KnowledgeBaseDefinition, KnowledgeContext
from rfp_matcher.errors import UpstreamCallError
from rfp_matcher.kb.knowledge_base import Context, KnowledgeBase, MetadataField

FIELDS = [
    MetadataField(name='projectId', required=True),
    MetadataField(name='agency'),
]


def _context(context_id, text, **metadata):
    return Context(context_id=context_id, text=text, metadata={'projectId': context_id, **metadata})


@pytest.fixture
def kb(knowledge_base):
    knowledge_base.upsert_knowledge_base('Test projects', 'bag-of-words', FIELDS)
    return knowledge_base


class TestDefinition:
    def test_upsert_is_idempotent(self, knowledge_base, session_factory):
        knowledge_base.upsert_knowledge_base('first', 'model-a', FIELDS)
        knowledge_base.upsert_knowledge_base('second', 'model-b', FIELDS[:1])

        db = session_factory()
        try:
            definitions = db.query(KnowledgeBaseDefinition).all()
            assert len(definitions) == 1
            assert definitions[0].description == 'second'
            assert definitions[0].embedding_model == 'model-b'
            assert [f['name'] for f in definitions[0].metadata_fields] == ['projectId']
        finally:
            db.close()


class TestUpsert:
    def test_upsert_overwrites_by_id(self, kb, session_factory):
        kb.upsert_context(_context('p1', 'Original text', agency='GSA'))
        kb.upsert_context(_context('p1', 'Replacement text', agency='DoD'))

        db = session_factory()
        try:
            rows = db.query(KnowledgeContext).filter_by(context_id='p1').all()
            assert len(rows) == 1
            assert rows[0].text == 'Replacement text'
            assert rows[0].context_metadata['agency'] == 'DoD'
            assert len(rows[0].embedding) == len(bag_of_words_embed('x'))
        finally:
            db.close()

    def test_partial_failures_reported(self, kb):
        response = kb.upsert_contexts([
            _context('ok-1', 'React dashboard'),
            Context(context_id='no-meta', text='Missing project id metadata'),
            _context('empty', '   '),
            _context('ok-2', 'Python ETL'),
        ])

        assert {f.context_id for f in response.failures} == {'no-meta', 'empty'}
        reasons = {f.context_id: f.reason for f in response.failures}
        assert 'projectId' in reasons['no-meta']
        assert reasons['empty'] == 'text is required'
        assert len(kb.search_contexts_with_prompt('anything', limit=10)) == 2

    def test_duplicate_ids_in_one_call(self, kb):
        response = kb.upsert_contexts([_context('dup', 'first'), _context('dup', 'second')])

        assert response.failures == []
        (hit,) = kb.search_contexts_with_prompt('second', limit=5)
        assert hit.context.text == 'second'

    def test_upsert_context_raises_on_rejection(self, kb):
        with pytest.raises(UpstreamCallError, match='text is required'):
            kb.upsert_context(_context('p1', ''))

    def test_embedding_failure_is_a_failure(self, session_factory):
        def broken_embed(text):
            if 'bad' in text:
                raise RuntimeError('model unavailable')
            return bag_of_words_embed(text)

        kb = KnowledgeBase('broken-kb', session_factory=session_factory, embed_fn=broken_embed,
                           rerank_fn=lambda q, texts: [0.0] * len(texts))
        kb.upsert_knowledge_base('x', 'y', FIELDS)

        response = kb.upsert_contexts([_context('good', 'fine text'), _context('bad', 'bad text')])

        assert [f.context_id for f in response.failures] == ['bad']
        assert 'model unavailable' in response.failures[0].reason


class TestSearch:
    @pytest.fixture
    def populated(self, kb):
        kb.upsert_contexts([
            _context('react', 'React frontend with Node.js backend and PostgreSQL'),
            _context('ios', 'Native iOS fitness app in Swift with HealthKit'),
            _context('chain', 'Solidity smart contracts on Ethereum'),
        ])
        return kb

    def test_best_match_first(self, populated):
        results = populated.search_contexts_with_prompt('React and Node.js web app', limit=3)

        assert results[0].context.context_id == 'react'
        assert results[0].context.metadata['projectId'] == 'react'
        assert all(0 <= r.score <= 100 for r in results)
        assert [r.score for r in results] == sorted((r.score for r in results), reverse=True)

    def test_limit(self, populated):
        assert len(populated.search_contexts_with_prompt('app', limit=2)) == 2
        assert populated.search_contexts_with_prompt('app', limit=0) == []

    def test_rerank_reorders(self, session_factory):
        kb = KnowledgeBase(
            'rerank-kb',
            session_factory=session_factory,
            embed_fn=bag_of_words_embed,
            rerank_fn=lambda query, texts: [99.0 if 'Swift' in t else 1.0 for t in texts],
        )
        kb.upsert_knowledge_base('x', 'y', FIELDS)
        kb.upsert_contexts([
            _context('react', 'React frontend with Node.js backend'),
            _context('ios', 'Native iOS app in Swift'),
        ])

        plain = kb.search_contexts_with_prompt('React frontend', limit=2)
        reranked = kb.search_contexts_with_prompt('React frontend', limit=2, rerank=True)

        assert plain[0].context.context_id == 'react'
        assert reranked[0].context.context_id == 'ios'
        assert reranked[0].score == 99.0

    def test_isolated_by_knowledge_base_id(self, populated, session_factory):
        other = KnowledgeBase('other-kb', session_factory=session_factory, embed_fn=bag_of_words_embed)

        assert other.search_contexts_with_prompt('React', limit=5) == []

    def test_search_failure_raises(self, kb):
        def down(text):
            raise RuntimeError('embedding service down')

        kb._embed = down

        with pytest.raises(UpstreamCallError, match='embedding service down'):
            kb.search_contexts_with_prompt('React', limit=5)
