"""
Centralized configuration — all env vars and constants for the ranking job.
"""
import os


# ── Logging ──────────────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
LOG_FORMAT = os.getenv('LOG_FORMAT', 'text')

# ── PostgreSQL ────────────────────────────────────────────────────────────────
DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///local.db')
DATABASE_TIMEZONE = os.getenv('DATABASE_TIMEZONE', 'UTC')

# ── MongoDB (event log) ───────────────────────────────────────────────────────
MONGODB_URI = os.getenv('MONGODB_URI', 'mongodb://localhost:27017')
MONGODB_DB = os.getenv('MONGODB_DB', 'tiga_logs')
EVENTS_COLLECTION = os.getenv('EVENTS_COLLECTION', 'logs')
EVENT_SOURCE = os.getenv('EVENT_SOURCE', 'github-actions')

# ── Ranking oracle ────────────────────────────────────────────────────────────
AI_PROVIDER = os.getenv('AI_PROVIDER', 'aws')
LLM_TEMPERATURE = float(os.getenv('LLM_TEMPERATURE', '0.6'))
LLM_MAX_TOKENS = int(os.getenv('LLM_MAX_TOKENS', '3000'))
LLM_MAX_RETRIES = int(os.getenv('LLM_MAX_RETRIES', '3'))
RANKING_PROMPT_PATH = os.getenv(
    'RANKING_PROMPT_PATH',
    os.path.join(os.path.dirname(__file__), 'prompts', 'ranking_update_prompt.md'),
)

# ── AWS Bedrock ───────────────────────────────────────────────────────────────
AWS_REGION_NAME = os.getenv('AWS_REGION_NAME')
AWS_ACCESS_KEY_ID = os.getenv('AWS_ACCESS_KEY_ID')
AWS_SECRET_ACCESS_KEY = os.getenv('AWS_SECRET_ACCESS_KEY')
ANTHROPIC_VERSION = os.getenv('ANTHROPIC_VERSION', 'bedrock-2023-05-31')
ANTHROPIC_MODEL_ID = os.getenv('ANTHROPIC_MODEL_ID')

# ── Azure OpenAI ──────────────────────────────────────────────────────────────
AZURE_API_KEY = os.getenv('AZURE_API_KEY')
AZURE_ENDPOINT = os.getenv('AZURE_ENDPOINT')
AZURE_MODEL_ID = os.getenv('AZURE_MODEL_ID')
AZURE_API_VERSION = os.getenv('AZURE_API_VERSION')

# ── Telemetry enrichment ──────────────────────────────────────────────────────
PROFILE_VIEW_MESSAGE = os.getenv('PROFILE_VIEW_MESSAGE', 'API called')
PROFILE_VIEW_URL = os.getenv('PROFILE_VIEW_URL', '/getAllContactsOf')
ENRICHMENT_MAX_WORKERS = int(os.getenv('ENRICHMENT_MAX_WORKERS', '4'))

# ── Audit events ──────────────────────────────────────────────────────────────
REQUEST_DETAILS = {'url': '/updateDriverRanking'}
