import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# Base paths
BASE_DIR = Path(__file__).parent.parent
PACKAGE_DIR = Path(__file__).parent

# Database
POSTGRES_HOST = os.getenv('POSTGRES_HOST', 'localhost')
POSTGRES_PORT = int(os.getenv('POSTGRES_PORT', 5432))
POSTGRES_USER = os.getenv('POSTGRES_USER', 'rfp_matcher')
POSTGRES_PASSWORD = os.getenv('POSTGRES_PASSWORD', 'changeme')
POSTGRES_DB = os.getenv('POSTGRES_DB', 'rfp_matcher_dev')

DATABASE_URL = os.getenv(
    'DATABASE_URL',
    f"postgresql://{POSTGRES_USER}:{POSTGRES_PASSWORD}@{POSTGRES_HOST}:{POSTGRES_PORT}/{POSTGRES_DB}",
)

# LLM: Claude (production)
CLAUDE_API_KEY = os.getenv('CLAUDE_API_KEY')
CLAUDE_MODEL = os.getenv('CLAUDE_MODEL', 'claude-opus-4-6')

# LLM: Ollama on a remote GPU box
OLLAMA_BASE_URL = os.getenv('OLLAMA_BASE_URL', 'http://localhost:11434')
OLLAMA_MODEL = os.getenv('OLLAMA_MODEL', 'neural-chat')

# LLM: Ollama local (dev / cheap tasks)
LOCAL_OLLAMA_URL = os.getenv('LOCAL_OLLAMA_URL', 'http://localhost:11434')
LOCAL_OLLAMA_MODEL = os.getenv('LOCAL_OLLAMA_MODEL', 'llama3.2')

# Default backend for agents: claude | ollama_gaming | ollama_local
# Falls back to ollama_local if claude is selected but no API key is present.
GENERATOR_LLM = os.getenv('GENERATOR_LLM', 'claude')

# Per-agent backend overrides, e.g. "matching-agent=claude,cheap-agent=ollama_local"
AGENT_BACKENDS = dict(
    pair.split('=', 1)
    for pair in (p.strip() for p in os.getenv('AGENT_BACKENDS', '').split(','))
    if '=' in pair
)
LLM_TIMEOUT = int(os.getenv('LLM_TIMEOUT', 300))

# Knowledge base
KNOWLEDGE_BASE_ID = os.getenv('KNOWLEDGE_BASE_ID', 'projects-kb')
EMBEDDING_MODEL = os.getenv('EMBEDDING_MODEL', 'all-MiniLM-L6-v2')
RERANK_MODEL = os.getenv('RERANK_MODEL', 'cross-encoder/ms-marco-MiniLM-L-6-v2')
RERANK_CANDIDATE_FACTOR = int(os.getenv('RERANK_CANDIDATE_FACTOR', 3))

# Matching
DEFAULT_AGENT_ID = os.getenv('DEFAULT_AGENT_ID', 'matching-agent')
MATCH_THRESHOLD = float(os.getenv('MATCH_THRESHOLD', 60))
SIMILARITY_THRESHOLD = float(os.getenv('SIMILARITY_THRESHOLD', 70))
FIT_THRESHOLD = float(os.getenv('FIT_THRESHOLD', 60))
MATCH_BATCH_SIZE = int(os.getenv('MATCH_BATCH_SIZE', 5))
MATCH_TEMPERATURE = float(os.getenv('MATCH_TEMPERATURE', 0.3))

# Logging
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
