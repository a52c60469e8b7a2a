"""
Decoding of the agent's JSON match response.
"""
import math

from rfp_matcher.llm_client import parse_json_response

NO_REASONING = 'No reasoning provided'


def coerce_score(value) -> float:
    """Scores are trusted as returned; anything missing, non-numeric or non-finite counts as 0."""
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, int):
        return value
    if not isinstance(value, float):
        try:
            value = float(value)
        except (TypeError, ValueError):
            return 0
    if not math.isfinite(value):
        return 0
    return value


def coerce_reasoning(value) -> str:
    if isinstance(value, str) and value:
        return value
    return NO_REASONING


def parse_match_response(raw: str) -> dict:
    """
    Decode a match response into {'score', 'reasoning', 'matched_areas'}
    with defaults for missing or mistyped keys.
    Raises MalformedResponseError if the response is not a JSON object.
    """
    data = parse_json_response(raw)

    matched_areas = data.get('matchedAreas') or []
    if not isinstance(matched_areas, list):
        matched_areas = [matched_areas]

    return {
        'score': coerce_score(data.get('score')),
        'reasoning': coerce_reasoning(data.get('reasoning')),
        'matched_areas': [str(area) for area in matched_areas],
    }
