"""
Project store: writes projects into the knowledge base as embeddable text
units with their structured metadata attached.
"""
import logging
from datetime import datetime, timezone

from rfp_matcher import config
from rfp_matcher.kb.knowledge_base import Context, KnowledgeBase, MetadataField
from rfp_matcher.metrics import projects_stored
from rfp_matcher.models import BatchStoreResult, Project, ProjectAttributes, StoreResult

logger = logging.getLogger(__name__)

KB_DESCRIPTION = 'Knowledge base for storing project descriptions and requirements for matching'

METADATA_FIELDS = [
    MetadataField(name='projectId', required=True, description='Unique identifier for the project'),
    MetadataField(name='userId', description='User ID associated with the project'),
    MetadataField(name='solicitationId', description='Solicitation ID from SAM.gov'),
    MetadataField(name='title', description='Title or name of the project'),
    MetadataField(name='description', description='Full description of the project'),
    MetadataField(name='agency', description='Government agency posting the project'),
    MetadataField(name='status', description='Current status of the project'),
    MetadataField(name='badge', description='Badge or label for the project'),
    MetadataField(name='postedDate', description='Date when the project was posted'),
    MetadataField(name='closingDate', description='Closing date for project submissions'),
    MetadataField(name='samLink', description='Link to SAM.gov listing'),
    MetadataField(name='dibbsLink', description='Link to DIBBS listing'),
    MetadataField(name='contactEmail', description='Contact email for the project'),
    MetadataField(name='isFavorite', data_type='boolean', description='Whether the project is marked as favorite'),
    MetadataField(name='awardee', description='Name of the contract awardee'),
    MetadataField(name='awardAmount', data_type='number', description='Award amount in dollars'),
    MetadataField(name='naicsCode', description='NAICS code for the project'),
    MetadataField(name='userStatus', description='User-specific status for the project'),
    MetadataField(name='budget', data_type='number', description='Project budget in dollars'),
    MetadataField(name='timeline', description='Expected timeline for the project'),
    MetadataField(name='addedAt', required=True, description='Timestamp when the project was added'),
]


def build_metadata(project: Project, overrides: ProjectAttributes | None = None) -> dict:
    """
    Metadata record for a project: its optional attributes (camelCase keys),
    with any attribute set on `overrides` taking precedence, plus projectId
    and an addedAt timestamp.
    """
    metadata = project.model_dump(by_alias=True, exclude={'id'})
    if overrides is not None:
        metadata.update(overrides.model_dump(by_alias=True, exclude_none=True))
    metadata['projectId'] = project.id
    metadata['addedAt'] = datetime.now(timezone.utc).isoformat()
    return metadata


def build_context(project: Project, overrides: ProjectAttributes | None = None) -> Context:
    metadata = build_metadata(project, overrides)
    return Context(
        context_id=project.id,
        title=metadata.get('title') or f'Project {project.id}',
        text=project.description,
        metadata=metadata,
    )


class ProjectStore:
    def __init__(self, knowledge_base: KnowledgeBase):
        self.knowledge_base = knowledge_base

    def initialize(self) -> StoreResult:
        """Set up the projects knowledge base. Safe to call repeatedly."""
        try:
            self.knowledge_base.upsert_knowledge_base(
                description=KB_DESCRIPTION,
                embedding_model=config.EMBEDDING_MODEL,
                metadata_fields=METADATA_FIELDS,
            )
        except Exception as e:
            logger.error(f"Error initializing knowledge base: {e}")
            return StoreResult(success=False, message=f'Failed to initialize knowledge base: {e}')

        return StoreResult(success=True, message='Knowledge base initialized successfully')

    def store_project(self, project: Project, metadata: ProjectAttributes | None = None) -> StoreResult:
        try:
            self.knowledge_base.upsert_context(build_context(project, metadata))
        except Exception as e:
            projects_stored.labels(outcome='failure').inc()
            logger.error(f"Error storing project {project.id}: {e}")
            return StoreResult(success=False, message=f'Failed to store project: {e}')

        projects_stored.labels(outcome='success').inc()
        logger.info(f"Stored project {project.id}")
        return StoreResult(success=True, message=f'Project {project.id} stored successfully')

    def store_projects(self, projects: list[Project]) -> BatchStoreResult:
        """Store many projects in one call, reporting partial failure."""
        try:
            response = self.knowledge_base.upsert_contexts([build_context(p) for p in projects])
        except Exception as e:
            projects_stored.labels(outcome='failure').inc(len(projects))
            logger.error(f"Error storing projects: {e}")
            return BatchStoreResult(
                success=False,
                message=f'Failed to store projects: {e}',
                success_count=0,
                failure_count=len(projects),
            )

        failure_count = len(response.failures)
        success_count = len(projects) - failure_count
        projects_stored.labels(outcome='success').inc(success_count)
        projects_stored.labels(outcome='failure').inc(failure_count)

        if failure_count == 0:
            message = f'All {success_count} projects stored successfully'
        else:
            message = f'{success_count} projects stored, {failure_count} failed'
            for failure in response.failures:
                logger.warning(f"Project {failure.context_id} not stored: {failure.reason}")

        return BatchStoreResult(
            success=failure_count == 0,
            message=message,
            success_count=success_count,
            failure_count=failure_count,
        )
