"""
Fit analyzer: decides whether a new project suits a company by looking at
how well the company fits the stored projects most similar to it.

  1. search the knowledge base for projects similar to the new description
  2. keep hits scoring >= similarity_threshold
  3. ask the agent for a company fit score on each (failures are dropped)
  4. good fit when at least half of the scored projects reach fit_threshold

Steps 2 and 3 can each leave nothing to aggregate; both end in a zero-confidence
"not a good fit" result before any averaging happens.
"""
import logging
import math
import time

from pydantic import ValidationError

from rfp_matcher import config
from rfp_matcher.errors import FitAnalysisError, InvalidArgumentError, MalformedResponseError
from rfp_matcher.kb.knowledge_base import KnowledgeBase
from rfp_matcher.llm_client import Agent
from rfp_matcher.matchers.prompt import FIT_INSTRUCTIONS, build_matching_prompt
from rfp_matcher.matchers.response import parse_match_response
from rfp_matcher.metrics import fit_verdicts, matcher_latency, matcher_errors
from rfp_matcher.models import FitAnalysis, FitStatistics, SimilarProject

logger = logging.getLogger(__name__)

MATCHER_TYPE = 'fit'
GOOD_FIT_MAJORITY = 50

NO_SIMILAR_PROJECTS = 'No similar projects found in knowledge base to make a comparison.'
UNABLE_TO_ANALYZE = 'Unable to analyze similar projects. No similar projects could be successfully processed.'


def round_half_up(value: float, ndigits: int = 0) -> float:
    factor = 10 ** ndigits
    return math.floor(value * factor + 0.5) / factor


def build_search_prompt(project_description: str) -> str:
    return f'Find projects similar to this one:\n\n{project_description}'


def generate_fit_reasoning(is_good_fit: bool, good_fit_percentage: float, average_fit_score: float,
                           total_projects: int, good_fit_projects: int) -> str:
    percentage = int(round_half_up(good_fit_percentage))
    avg_score = int(round_half_up(average_fit_score))

    if is_good_fit:
        return (
            f'This project is a GOOD FIT for your company. Analysis of {total_projects} similar projects '
            f'shows that {good_fit_projects} ({percentage}%) are a good match for your capabilities, '
            f'with an average fit score of {avg_score}/100. This indicates strong alignment between '
            f'your company profile and projects of this type.'
        )
    return (
        f'This project may NOT be a good fit for your company. Analysis of {total_projects} similar '
        f'projects shows that only {good_fit_projects} ({percentage}%) are a good match for your '
        f'capabilities, with an average fit score of {avg_score}/100. This suggests potential gaps '
        f'between your company profile and projects of this type.'
    )


def _empty_analysis(reasoning: str) -> FitAnalysis:
    return FitAnalysis(
        is_good_fit=False,
        confidence=0,
        reasoning=reasoning,
        similar_projects=[],
        statistics=FitStatistics(),
    )


def summarize(similar_projects: list[SimilarProject]) -> FitAnalysis:
    """Aggregate scored similar projects into a verdict. The list must not be empty."""
    total = len(similar_projects)
    good_fit_projects = sum(1 for p in similar_projects if p.is_company_fit)
    good_fit_percentage = good_fit_projects / total * 100
    average_fit_score = sum(p.company_fit_score for p in similar_projects) / total

    is_good_fit = good_fit_percentage >= GOOD_FIT_MAJORITY
    return FitAnalysis(
        is_good_fit=is_good_fit,
        confidence=int(round_half_up(good_fit_percentage)),
        reasoning=generate_fit_reasoning(
            is_good_fit, good_fit_percentage, average_fit_score, total, good_fit_projects,
        ),
        similar_projects=similar_projects,
        statistics=FitStatistics(
            total_similar_projects=total,
            good_fit_projects=good_fit_projects,
            good_fit_percentage=round_half_up(good_fit_percentage, 2),
            average_fit_score=round_half_up(average_fit_score, 2),
        ),
    )


def is_project_good_fit(knowledge_base: KnowledgeBase, agent: Agent, project_description: str,
                        company_profile: str, similarity_threshold: float = 70,
                        fit_threshold: float = 60, limit_similar: int = 10) -> FitAnalysis:
    """
    Judge a new project by the company's fit to similar stored projects.

    Raises:
        InvalidArgumentError: empty project description or company profile
        FitAnalysisError: the similarity search failed
    """
    if not project_description or not company_profile:
        raise InvalidArgumentError('Project description and company profile are required')

    start = time.time()
    try:
        return _analyze_fit(knowledge_base, agent, project_description, company_profile,
                            similarity_threshold, fit_threshold, limit_similar)
    finally:
        matcher_latency.labels(matcher_type=MATCHER_TYPE).observe(time.time() - start)


def _analyze_fit(knowledge_base, agent, project_description, company_profile,
                 similarity_threshold, fit_threshold, limit_similar) -> FitAnalysis:
    logger.info('Searching for similar projects in knowledge base...')
    try:
        hits = knowledge_base.search_contexts_with_prompt(
            build_search_prompt(project_description),
            limit=limit_similar,
            rerank=True,
        )
    except Exception as e:
        matcher_errors.labels(matcher_type=MATCHER_TYPE, error_type='search_error').inc()
        logger.error(f"Error checking project fit by knowledge base: {e}")
        raise FitAnalysisError(f'Failed to check project fit: {e}') from e
    logger.info(f"Found {len(hits)} similar projects")

    relevant = [hit for hit in hits if hit.score >= similarity_threshold]
    if not relevant:
        fit_verdicts.labels(verdict='no_similar').inc()
        return _empty_analysis(NO_SIMILAR_PROJECTS)

    logger.info(f"Analyzing {len(relevant)} relevant similar projects...")
    similar_projects = []
    for hit in relevant:
        project_id = str(hit.context.metadata.get('projectId', hit.context.context_id))
        try:
            response = agent.ask(
                build_matching_prompt(company_profile, hit.context.text),
                instructions=FIT_INSTRUCTIONS,
                temperature=config.MATCH_TEMPERATURE,
                json_output=True,
            )
            company_fit_score = parse_match_response(response)['score']
            similar_project = SimilarProject(
                id=project_id,
                similarity=hit.score,
                company_fit_score=company_fit_score,
                is_company_fit=company_fit_score >= fit_threshold,
            )
        except Exception as e:
            # Dropped from the analysis entirely, not counted as a zero score
            malformed = isinstance(e, (MalformedResponseError, ValidationError))
            error_type = 'malformed_response' if malformed else 'call_error'
            matcher_errors.labels(matcher_type=MATCHER_TYPE, error_type=error_type).inc()
            logger.error(f"  ✗ Error analyzing similar project {project_id}: {e}")
            continue

        similar_projects.append(similar_project)
        logger.info(f"  ✓ {project_id}: similarity={hit.score}, fit={company_fit_score}")

    logger.info(f"Successfully analyzed {len(similar_projects)} projects")
    if not similar_projects:
        fit_verdicts.labels(verdict='unanalyzable').inc()
        return _empty_analysis(UNABLE_TO_ANALYZE)

    analysis = summarize(similar_projects)
    fit_verdicts.labels(verdict='good_fit' if analysis.is_good_fit else 'not_good_fit').inc()
    return analysis
