import os
import logging
from typing import List, Optional, Tuple

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'trustcare.db')

# API key each AI provider needs before it is considered available
PROVIDER_KEYS = {
    'groq': 'GROQ_API_KEY',
    'novita': 'NOVITA_API_KEY',
}

TRUE_VALUES = ('1', 'true', 'yes', 'on')


def _parse_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in TRUE_VALUES


class EnvironmentConfig:
    """Runtime settings read from the process environment (and .env)."""

    def __init__(self):
        self.groq_api_key = os.environ.get('GROQ_API_KEY')
        self.novita_api_key = os.environ.get('NOVITA_API_KEY')
        self.debug_mode = _parse_bool(os.environ.get('DEBUG_MODE'))
        self.db_path = os.environ.get('TRUSTCARE_DB_PATH', DEFAULT_DB_PATH)
        self.ai_provider = os.environ.get('AI_PROVIDER', 'groq').strip().lower()
        self.ai_drafts_enabled = _parse_bool(os.environ.get('AI_DRAFTS_ENABLED'), default=True)
        self.log_file = os.environ.get('TRUSTCARE_LOG_FILE')

    def get_api_key(self, name: str) -> Optional[str]:
        return os.environ.get(name)

    def is_debug_mode(self) -> bool:
        return self.debug_mode

    def validate_environment(self) -> Tuple[bool, List[str]]:
        """
        Check that the selected AI provider has its API key.

        Returns:
            Tuple[bool, List[str]]: (is_valid, missing variable names)
        """
        missing_vars = []
        key_name = PROVIDER_KEYS.get(self.ai_provider)
        if key_name and not self.get_api_key(key_name):
            missing_vars.append(key_name)
        return len(missing_vars) == 0, missing_vars

    def get_environment_summary(self) -> str:
        keys_configured = any(self.get_api_key(name) for name in PROVIDER_KEYS.values())
        lines = [
            "Environment Configuration",
            f"  Debug Mode: {self.debug_mode}",
            f"  Database: {self.db_path}",
            f"  AI Provider: {self.ai_provider}",
            f"  AI Drafts Enabled: {self.ai_drafts_enabled}",
            f"  API Keys Configured: {'Yes' if keys_configured else 'No'}",
        ]
        return "\n".join(lines)
