"""
Semantic matcher: one reranked knowledge-base search with the company profile
as the query. Matched areas come from a keyword overlap over a fixed
technology vocabulary, not from the model.
"""
import logging
import time

from rfp_matcher.errors import InvalidArgumentError, MatchError
from rfp_matcher.kb.knowledge_base import KnowledgeBase
from rfp_matcher.matchers.direct import sort_by_score
from rfp_matcher.matchers.response import NO_REASONING
from rfp_matcher.metrics import matcher_latency, matcher_scores, matcher_errors
from rfp_matcher.models import MatchingResult

logger = logging.getLogger(__name__)

MATCHER_TYPE = 'semantic'

TECHNOLOGIES = [
    'React',
    'Node.js',
    'TypeScript',
    'Python',
    'AWS',
    'PostgreSQL',
    'MongoDB',
    'GraphQL',
    'Docker',
    'Kubernetes',
]
GENERAL_MATCH = 'General capabilities match'


def build_search_prompt(company_profile: str) -> str:
    return f'Find projects that match this company profile:\n\n{company_profile}'


def extract_matched_areas(project_text: str, company_profile: str) -> list[str]:
    """Vocabulary terms present (case-insensitively) in both texts, in vocabulary order."""
    project_lower = project_text.lower()
    profile_lower = company_profile.lower()
    areas = [
        tech for tech in TECHNOLOGIES
        if tech.lower() in project_lower and tech.lower() in profile_lower
    ]
    return areas or [GENERAL_MATCH]


def match_projects_with_knowledge_base(knowledge_base: KnowledgeBase, company_profile: str,
                                       limit: int = 10, threshold: float = 60) -> list[MatchingResult]:
    """
    Find stored projects that match the company profile, best first.

    Raises:
        InvalidArgumentError: empty company profile
        MatchError: the search failed
    """
    if not company_profile:
        raise InvalidArgumentError('Company profile is required')

    start = time.time()
    try:
        hits = knowledge_base.search_contexts_with_prompt(
            build_search_prompt(company_profile),
            limit=limit,
            rerank=True,
        )
        results = [
            MatchingResult(
                id=str(hit.context.metadata['projectId']),
                score=hit.score,
                is_good_fit=hit.score >= threshold,
                reasoning=hit.reasoning or NO_REASONING,
                matched_areas=extract_matched_areas(hit.context.text, company_profile),
            )
            for hit in hits
        ]
    except Exception as e:
        matcher_errors.labels(matcher_type=MATCHER_TYPE, error_type='search_error').inc()
        logger.error(f"Error matching projects with knowledge base: {e}")
        raise MatchError(f'Failed to match projects: {e}') from e

    elapsed = time.time() - start
    matcher_latency.labels(matcher_type=MATCHER_TYPE).observe(elapsed)
    for result in results:
        matcher_scores.labels(matcher_type=MATCHER_TYPE).observe(result.score)
    logger.info(f"Knowledge base match: {len(results)} projects ({elapsed:.1f}s)")

    return sort_by_score(results)
