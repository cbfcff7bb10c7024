"""
Configuration
=============
Loads environment variables from .env file using python-dotenv.

Environment Variables:
    RETRY_MAX_ATTEMPTS         — Max attempts per retry session (default: 3)
    RETRY_DELAY_MS             — Pause between attempts in milliseconds (default: 1000)
    RETRY_AUTO_FIX_FIRST       — Try mechanical fixes before AI repair (default: true)
    RETRY_ROLLBACK_ON_FAILURE  — Allow one rollback when AI repair stalls (default: true)
    NO_PROGRESS_THRESHOLD      — Identical error sets in a row before escalating (default: 2)
    CONTEXT_LINES              — Source lines shown above/below an error (default: 3)
    AI_PROMPT_MAX_ERRORS       — Errors listed in a "fix this" prompt (default: 10)
    PROJECT_ROOT               — Root used to resolve relative error paths (default: .)
    LOG_DIR                    — Directory for daily log files (default: logs)
    LOG_TO_FILE                — Write the daily log file at all (default: true)

Retry Budget:
    RETRY_MAX_ATTEMPTS bounds the whole session, including the first run of
    the wrapped operation. Once exhausted the executor stops and flags the
    session for human review.
"""
import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# Retry loop
RETRY_MAX_ATTEMPTS = int(os.getenv("RETRY_MAX_ATTEMPTS", 3))
RETRY_DELAY_MS = int(os.getenv("RETRY_DELAY_MS", 1000))
RETRY_AUTO_FIX_FIRST = _env_bool("RETRY_AUTO_FIX_FIRST", True)
RETRY_ROLLBACK_ON_FAILURE = _env_bool("RETRY_ROLLBACK_ON_FAILURE", True)

# Consecutive attempts with an unchanged error set before escalation
NO_PROGRESS_THRESHOLD = int(os.getenv("NO_PROGRESS_THRESHOLD", 2))

# Enrichment / formatting
CONTEXT_LINES = int(os.getenv("CONTEXT_LINES", 3))
AI_PROMPT_MAX_ERRORS = int(os.getenv("AI_PROMPT_MAX_ERRORS", 10))
PROJECT_ROOT = os.getenv("PROJECT_ROOT", ".")

# Logging
LOG_DIR = os.getenv("LOG_DIR", "logs")
LOG_TO_FILE = _env_bool("LOG_TO_FILE", True)
