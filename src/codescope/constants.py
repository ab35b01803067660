"""
Project-wide constants for codescope
"""  # noqa: D200, D212, D415

# ==============================================================================
# Resilience
# ==============================================================================

MAX_RETRIES = 3
RATE_LIMIT_BACKOFF_STEP = 1.0  # seconds, multiplied by (attempt + 1)
SERVER_ERROR_BACKOFF_STEP = 2.0  # seconds, multiplied by (attempt + 1)
NETWORK_TIMEOUT = 30.0  # seconds
REQUEST_DEADLINE_MS = 60_000

# ==============================================================================
# Response cache
# ==============================================================================

CACHE_MAX_SIZE = 50
CACHE_TTL_MINUTES = 30
CACHE_SWEEP_INTERVAL = 5 * 60  # seconds

# ==============================================================================
# Rate limits (operation -> (limit, window seconds))
# ==============================================================================

DEFAULT_RATE_LIMITS: dict[str, tuple[int, int]] = {
    "explain": (10, 60),
    "generate-diagram": (5, 60),
    "security-scan": (2, 60 * 60),
}

# ==============================================================================
# Providers
# ==============================================================================

CHAT_COMPLETIONS_PROVIDER = "chat-completions"
GEMINI_PROVIDER = "gemini"
AUXILIARY_PROVIDER = "analysis-services"
DEFAULT_PROVIDER = CHAT_COMPLETIONS_PROVIDER

DEFAULT_CHAT_COMPLETIONS_BASE_URL = "https://api.openai.com/v1"
DEFAULT_CHAT_COMPLETIONS_MODEL = "gpt-4o-mini"
DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"
DEFAULT_AUXILIARY_BASE_URL = "http://localhost:8085"

MAX_COMPLETION_TOKENS = 4096
CHARS_PER_TOKEN = 4  # rough estimate when a provider reports no usage

# ==============================================================================
# Pricing (USD)
# ==============================================================================

COST_PER_TOKEN: dict[str, float] = {
    "gpt-3.5-turbo": 0.000002,
    "gpt-4": 0.00003,
    "gpt-4o-mini": 0.0000006,
    "gemini-pro": 0.00001,
    "gemini-2.0-flash": 0.0000004,
}
FALLBACK_COST_PER_TOKEN = 0.00001

AUXILIARY_SERVICE_FEES: dict[str, float] = {
    "security_scan": 0.01,
    "performance_profiler": 0.005,
    "refactoring_optimizer": 0.005,
}
