"""
Initialize the database schema and the projects knowledge base.
Run once after `docker-compose up`:
    python -m scripts.init_db
"""
from rfp_matcher.db import engine, Base
from rfp_matcher.kb.knowledge_base import KnowledgeBase
from rfp_matcher.project_store import ProjectStore


def main():
    print("Creating database tables...")
    Base.metadata.create_all(bind=engine)
    result = ProjectStore(KnowledgeBase()).initialize()
    print(result.message)
    print("Done." if result.success else "Failed.")


if __name__ == "__main__":
    main()
