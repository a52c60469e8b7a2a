from sqlalchemy import (
    create_engine, Column, String, Text, DateTime, JSON,
    Index, UniqueConstraint
)
from sqlalchemy.orm import declarative_base, sessionmaker
from datetime import datetime, timezone
import uuid
from rfp_matcher.config import DATABASE_URL

engine = create_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def _utcnow():
    return datetime.now(timezone.utc)


class KnowledgeBaseDefinition(Base):
    __tablename__ = "knowledge_bases"

    id = Column(String(100), primary_key=True)
    description = Column(Text)
    embedding_model = Column(String(255), nullable=False)

    # [{"name": ..., "data_type": ..., "required": ..., "description": ...}]
    metadata_fields = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)


class KnowledgeContext(Base):
    __tablename__ = "knowledge_contexts"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))

    knowledge_base_id = Column(String(100), nullable=False)
    context_id = Column(String(255), nullable=False)

    title = Column(String(500))
    text = Column(Text, nullable=False)
    # "metadata" is reserved on declarative classes
    context_metadata = Column('metadata', JSON, nullable=False, default=dict)
    embedding = Column(JSON)

    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        UniqueConstraint('knowledge_base_id', 'context_id', name='uq_kb_context'),
    )


# Indices
Index('idx_context_kb', KnowledgeContext.knowledge_base_id)
