import json
import os
import re
import zlib

# Must be set before rfp_matcher.db creates its engine
os.environ['DATABASE_URL'] = 'sqlite://'

import numpy as np
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from rfp_matcher.db import Base
from rfp_matcher.kb.knowledge_base import Context, KnowledgeBase, SearchResult
from rfp_matcher.models import Project

EMBEDDING_DIM = 256

COMPANY_PROFILE = """
TechFlow Solutions is a full-stack software development company with 8 years of experience.
We specialize in:
- Frontend: React, Next.js, TypeScript, Vue.js, responsive web design
- Backend: Node.js, Express, Python, Django, RESTful APIs, GraphQL
- Cloud: AWS (EC2, S3, Lambda, RDS), Docker, Kubernetes
- Database: PostgreSQL, MongoDB, Redis
- Mobile: React Native, iOS and Android development
"""

ECOMMERCE_PROJECT = """
Project: E-commerce Platform Redesign
Requirements:
- React or Next.js for frontend
- Node.js backend with RESTful APIs
- PostgreSQL database
- AWS hosting
"""

BLOCKCHAIN_PROJECT = """
Project: Blockchain DApp Development
Requirements:
- Solidity smart contracts
- Ethereum mainnet deployment
- Web3 wallet integration
"""


def bag_of_words_embed(text: str) -> np.ndarray:
    """Deterministic hashed bag-of-words vector."""
    vector = np.zeros(EMBEDDING_DIM)
    for token in re.findall(r'[a-z0-9]+', text.lower()):
        vector[zlib.crc32(token.encode()) % EMBEDDING_DIM] += 1.0
    return vector


def bag_of_words_rerank(query: str, texts: list[str]) -> list[float]:
    q = bag_of_words_embed(query)
    scores = []
    for text in texts:
        t = bag_of_words_embed(text)
        denom = np.linalg.norm(q) * np.linalg.norm(t)
        scores.append(float(np.dot(q, t) / denom * 100) if denom else 0.0)
    return scores


def match_json(score, reasoning='Solid alignment', matched_areas=None) -> str:
    return json.dumps({
        'score': score,
        'reasoning': reasoning,
        'matchedAreas': matched_areas or [],
    })


class FakeAgent:
    """
    Scripted stand-in for an LLM agent.
    `responses` is either a list consumed in order or a callable(prompt) -> str.
    Exception instances are raised instead of returned.
    """

    def __init__(self, responses, agent_id='matching-agent'):
        self.agent_id = agent_id
        self.responses = responses
        self.calls = []

    def ask(self, prompt, instructions=None, temperature=0.7, json_output=False, max_tokens=800):
        self.calls.append({
            'prompt': prompt,
            'instructions': instructions,
            'temperature': temperature,
            'json_output': json_output,
        })
        if callable(self.responses):
            response = self.responses(prompt)
        else:
            response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class FakeKnowledgeBase:
    """Returns preset search hits (or raises) and records each search."""

    def __init__(self, hits=None, error=None):
        self.hits = hits or []
        self.error = error
        self.searches = []

    def search_contexts_with_prompt(self, prompt, limit=10, rerank=False):
        self.searches.append({'prompt': prompt, 'limit': limit, 'rerank': rerank})
        if self.error is not None:
            raise self.error
        return self.hits[:limit]


def make_hit(project_id: str, score: float, text: str = 'Project text', reasoning=None) -> SearchResult:
    return SearchResult(
        context=Context(context_id=project_id, text=text, metadata={'projectId': project_id}),
        score=score,
        reasoning=reasoning,
    )


@pytest.fixture
def test_engine():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture
def knowledge_base(session_factory):
    return KnowledgeBase(
        'test-kb',
        session_factory=session_factory,
        embed_fn=bag_of_words_embed,
        rerank_fn=bag_of_words_rerank,
    )


@pytest.fixture
def company_profile():
    return COMPANY_PROFILE


@pytest.fixture
def sample_projects():
    return [
        Project(id='proj-001', description=ECOMMERCE_PROJECT, title='E-commerce Platform Redesign',
                agency='GSA', budget=80000),
        Project(id='proj-005', description=BLOCKCHAIN_PROJECT, title='Blockchain DApp Development'),
        Project(id='proj-003', description='Healthcare patient portal with React, Node.js and PostgreSQL on AWS'),
    ]
