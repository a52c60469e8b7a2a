"""
Project matching service: FastAPI app.
Runs on port 5010.

Start with:
    uvicorn rfp_matcher.main:app --port 5010 --reload
"""
import logging
from fastapi import Depends, FastAPI, HTTPException
from pydantic import Field
from prometheus_client import make_asgi_app

from rfp_matcher import config
from rfp_matcher.errors import FitAnalysisError, InvalidArgumentError, MatchError
from rfp_matcher.kb.knowledge_base import KnowledgeBase
from rfp_matcher.llm_client import get_agent
from rfp_matcher.matchers.direct import match_projects, match_projects_batch
from rfp_matcher.matchers.fit import is_project_good_fit
from rfp_matcher.matchers.semantic import match_projects_with_knowledge_base
from rfp_matcher.models import (
    BatchStoreResult, CamelModel, FitAnalysis, MatchingResult, Project,
    ProjectAttributes, StoreResult,
)
from rfp_matcher.project_store import ProjectStore

logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title='Project Matcher', version='0.1.0')

# Expose /metrics endpoint for Prometheus scraping
app.mount('/metrics', make_asgi_app())


# --- Collaborators (overridable in tests) ---

_knowledge_base: KnowledgeBase | None = None


def get_knowledge_base() -> KnowledgeBase:
    global _knowledge_base
    if _knowledge_base is None:
        _knowledge_base = KnowledgeBase(config.KNOWLEDGE_BASE_ID)
    return _knowledge_base


def get_agent_factory():
    return get_agent


# --- Request models ---

class StoreProjectRequest(CamelModel):
    project: Project
    metadata: ProjectAttributes | None = None


class StoreProjectsRequest(CamelModel):
    projects: list[Project]


class MatchRequest(CamelModel):
    company_profile: str
    projects: list[Project]
    agent_id: str = config.DEFAULT_AGENT_ID
    threshold: float = Field(config.MATCH_THRESHOLD, ge=0, le=100)


class BatchMatchRequest(MatchRequest):
    batch_size: int = Field(config.MATCH_BATCH_SIZE, ge=1)


class KnowledgeBaseMatchRequest(CamelModel):
    company_profile: str
    limit: int = Field(10, ge=1)
    threshold: float = Field(config.MATCH_THRESHOLD, ge=0, le=100)


class FitRequest(CamelModel):
    project_description: str
    company_profile: str
    similarity_threshold: float = Field(config.SIMILARITY_THRESHOLD, ge=0, le=100)
    fit_threshold: float = Field(config.FIT_THRESHOLD, ge=0, le=100)
    limit_similar: int = Field(10, ge=1)


# --- Routes ---

@app.get('/health')
def health():
    return {'status': 'ok', 'service': 'project-matcher'}


@app.post('/store/initialize', response_model=StoreResult)
def initialize_store(kb: KnowledgeBase = Depends(get_knowledge_base)):
    """Create or update the projects knowledge base definition."""
    return ProjectStore(kb).initialize()


@app.post('/projects', response_model=StoreResult)
def store_project(req: StoreProjectRequest, kb: KnowledgeBase = Depends(get_knowledge_base)):
    return ProjectStore(kb).store_project(req.project, req.metadata)


@app.post('/projects/batch', response_model=BatchStoreResult)
def store_projects(req: StoreProjectsRequest, kb: KnowledgeBase = Depends(get_knowledge_base)):
    """
    Store many projects at once.
    `success` is false if any project failed; see successCount / failureCount.
    """
    return ProjectStore(kb).store_projects(req.projects)


@app.post('/match', response_model=list[MatchingResult])
def match(req: MatchRequest, agent_factory=Depends(get_agent_factory)):
    """
    Score a company profile against each project with the given agent.

    - 200: One result per project, best first (failed projects score 0)
    - 400: Empty company profile or project list
    """
    try:
        return match_projects(req.company_profile, req.projects, agent_factory(req.agent_id), req.threshold)
    except InvalidArgumentError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.post('/match/batch', response_model=list[MatchingResult])
def match_batch(req: BatchMatchRequest, agent_factory=Depends(get_agent_factory)):
    try:
        return match_projects_batch(
            req.company_profile, req.projects, agent_factory(req.agent_id),
            req.threshold, req.batch_size,
        )
    except InvalidArgumentError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.post('/match/knowledge-base', response_model=list[MatchingResult])
def match_knowledge_base(req: KnowledgeBaseMatchRequest, kb: KnowledgeBase = Depends(get_knowledge_base)):
    """
    Semantic search for stored projects matching the company profile.

    - 400: Empty company profile
    - 502: Knowledge base search failed
    """
    try:
        return match_projects_with_knowledge_base(kb, req.company_profile, req.limit, req.threshold)
    except InvalidArgumentError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except MatchError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except Exception as e:
        logger.exception('Unexpected error matching with knowledge base')
        raise HTTPException(status_code=500, detail=f'Matching failed: {e}')


@app.post('/fit', response_model=FitAnalysis)
def fit(req: FitRequest, kb: KnowledgeBase = Depends(get_knowledge_base),
        agent_factory=Depends(get_agent_factory)):
    """
    Decide whether a new project is a good fit, judged by the company's fit to
    similar stored projects.

    - 400: Empty project description or company profile
    - 502: Knowledge base search failed
    """
    try:
        return is_project_good_fit(
            kb,
            agent_factory(config.DEFAULT_AGENT_ID),
            req.project_description,
            req.company_profile,
            req.similarity_threshold,
            req.fit_threshold,
            req.limit_similar,
        )
    except InvalidArgumentError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except FitAnalysisError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except Exception as e:
        logger.exception('Unexpected error checking project fit')
        raise HTTPException(status_code=500, detail=f'Fit analysis failed: {e}')
