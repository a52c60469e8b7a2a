"""
Direct matcher: asks an agent to score a company profile against each
project in turn. A failing project is recorded with score 0 and the error as
its reasoning; it never aborts the rest of the list.
"""
import logging
import time

from pydantic import ValidationError

from rfp_matcher import config
from rfp_matcher.errors import InvalidArgumentError, MalformedResponseError
from rfp_matcher.llm_client import Agent
from rfp_matcher.matchers.prompt import MATCHING_INSTRUCTIONS, build_matching_prompt
from rfp_matcher.matchers.response import parse_match_response
from rfp_matcher.metrics import matcher_latency, matcher_scores, matcher_errors
from rfp_matcher.models import MatchingResult, Project

logger = logging.getLogger(__name__)

MATCHER_TYPE = 'direct'


def sort_by_score(results: list[MatchingResult]) -> list[MatchingResult]:
    return sorted(results, key=lambda r: r.score, reverse=True)


def match_projects(company_profile: str, projects: list[Project], agent: Agent,
                   threshold: float = 60) -> list[MatchingResult]:
    """
    Score every project against the company profile, best first.
    Returns exactly one result per project.

    Raises:
        InvalidArgumentError: empty company profile or project list
    """
    if not company_profile or not projects:
        raise InvalidArgumentError('Company profile and projects list are required')

    results = []
    for project in projects:
        start = time.time()
        try:
            prompt = build_matching_prompt(company_profile, project.description)
            response = agent.ask(
                prompt,
                instructions=MATCHING_INSTRUCTIONS,
                temperature=config.MATCH_TEMPERATURE,
                json_output=True,
            )
            match = parse_match_response(response)
            score = match['score']
            result = MatchingResult(
                id=project.id,
                score=score,
                is_good_fit=score >= threshold,
                reasoning=match['reasoning'],
                matched_areas=match['matched_areas'],
            )
        except Exception as e:
            malformed = isinstance(e, (MalformedResponseError, ValidationError))
            error_type = 'malformed_response' if malformed else 'call_error'
            matcher_errors.labels(matcher_type=MATCHER_TYPE, error_type=error_type).inc()
            logger.error(f"Error matching project {project.id}: {e}")
            results.append(MatchingResult(
                id=project.id,
                score=0,
                is_good_fit=False,
                reasoning=f'Error processing: {e}',
                matched_areas=[],
            ))
            continue
        finally:
            elapsed = time.time() - start
            matcher_latency.labels(matcher_type=MATCHER_TYPE).observe(elapsed)

        results.append(result)
        matcher_scores.labels(matcher_type=MATCHER_TYPE).observe(score)
        logger.info(f"Match score for {project.id}: {score} ({elapsed:.1f}s)")

    return sort_by_score(results)


def match_projects_batch(company_profile: str, projects: list[Project], agent: Agent,
                         threshold: float = 60, batch_size: int = 5) -> list[MatchingResult]:
    """
    Run match_projects over contiguous chunks of `batch_size` projects, one
    chunk after another, and return all results best first.
    """
    if not company_profile:
        raise InvalidArgumentError('Company profile is required')
    if batch_size < 1:
        raise InvalidArgumentError(f'batch_size must be at least 1, got {batch_size}')

    results = []
    for i in range(0, len(projects), batch_size):
        batch = projects[i:i + batch_size]
        logger.info(f"Matching batch {i // batch_size + 1} ({len(batch)} projects)")
        results.extend(match_projects(company_profile, batch, agent, threshold))

    return sort_by_score(results)
