"""
Request/result models shared by the matchers and the HTTP service.

Python attributes are snake_case; the JSON wire format is camelCase
(`isGoodFit`, `matchedAreas`, ...). Both spellings are accepted on input.
"""
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Projects ---

class ProjectAttributes(CamelModel):
    """Optional project attributes, stored verbatim as knowledge-base metadata."""
    user_id: str | None = None
    solicitation_id: str | None = None
    title: str | None = None
    description: str | None = None
    agency: str | None = None
    status: str | None = None
    badge: str | None = None
    posted_date: str | None = None
    closing_date: str | None = None
    sam_link: str | None = None
    dibbs_link: str | None = None
    contact_email: str | None = None
    is_favorite: bool | None = None
    awardee: str | None = None
    award_amount: float | None = None
    naics_code: str | None = None
    user_status: str | None = None
    budget: float | None = None
    timeline: str | None = None


class Project(ProjectAttributes):
    id: str = Field(min_length=1)
    description: str


# --- Matching ---

class MatchingResult(CamelModel):
    id: str
    score: float
    is_good_fit: bool
    reasoning: str
    matched_areas: list[str] = []


class SimilarProject(CamelModel):
    id: str
    similarity: float
    company_fit_score: float
    is_company_fit: bool


class FitStatistics(CamelModel):
    total_similar_projects: int = 0
    good_fit_projects: int = 0
    good_fit_percentage: float = 0
    average_fit_score: float = 0


class FitAnalysis(CamelModel):
    is_good_fit: bool
    confidence: int
    reasoning: str
    similar_projects: list[SimilarProject] = []
    statistics: FitStatistics = Field(default_factory=FitStatistics)


# --- Store results ---

class StoreResult(CamelModel):
    success: bool
    message: str


class BatchStoreResult(StoreResult):
    success_count: int
    failure_count: int
