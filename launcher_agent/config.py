from dataclasses import dataclass
from dotenv import load_dotenv
import logging
import os

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o"
DEFAULT_MAX_TURNS = 5
DEFAULT_SCRIPT_TIMEOUT = 30.0
DEFAULT_LOG_FILE = "agent_logs.txt"


def _to_bool(value, default=False):
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


def _to_positive_int(value, default):
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


def _to_positive_float(value, default):
    try:
        parsed = float(str(value).strip())
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


@dataclass
class AssistantConfig:
    """Process-wide settings, read once at startup from the environment / .env file."""

    api_key: str | None
    model: str = DEFAULT_MODEL
    base_url: str | None = None
    max_turns: int = DEFAULT_MAX_TURNS
    script_timeout: float = DEFAULT_SCRIPT_TIMEOUT
    log_file: str = DEFAULT_LOG_FILE
    log_level: str = "INFO"
    debug: bool = False

    @classmethod
    def from_env(cls):
        return cls(
            api_key=os.getenv("OPENAI_API_KEY") or None,
            model=os.getenv("LAUNCHER_MODEL") or DEFAULT_MODEL,
            base_url=os.getenv("LAUNCHER_BASE_URL") or None,
            max_turns=_to_positive_int(os.getenv("LAUNCHER_MAX_TURNS"), DEFAULT_MAX_TURNS),
            script_timeout=_to_positive_float(os.getenv("LAUNCHER_SCRIPT_TIMEOUT"), DEFAULT_SCRIPT_TIMEOUT),
            log_file=os.getenv("LAUNCHER_LOG_FILE") or DEFAULT_LOG_FILE,
            log_level=(os.getenv("LAUNCHER_LOG_LEVEL") or "INFO").upper(),
            debug=_to_bool(os.getenv("LAUNCHER_DEBUG")),
        )

    def masked_api_key(self):
        if not self.api_key:
            return None
        return f"...{self.api_key[-4:]}"

    def report_api_key(self):
        masked = self.masked_api_key()
        if masked:
            logger.info(f"Found OPENAI_API_KEY ending in \"{masked}\".")
        else:
            logger.error("OPENAI_API_KEY not found or empty. Check your .env file.")
