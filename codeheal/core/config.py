from pydantic_settings import BaseSettings
from pydantic import field_validator
from typing import List, Any


def parse_extensions(v: Any) -> List[str]:
    """Parse source extensions from string or list"""
    if isinstance(v, list):
        return v
    if isinstance(v, str):
        return [ext.strip() for ext in v.split(',') if ext.strip()]
    return []


class Settings(BaseSettings):
    """Application settings - all configurable via environment variables"""

    # ==========================================
    # Application
    # ==========================================
    APP_NAME: str = "CodeHeal"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # ==========================================
    # Logging
    # ==========================================
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""  # Empty disables the rotating file handler

    # ==========================================
    # Claude AI
    # ==========================================
    ANTHROPIC_API_KEY: str = ""
    ANTHROPIC_BASE_URL: str = ""  # Empty means use default Anthropic URL
    CLAUDE_FIX_MODEL: str = "claude-sonnet-4-20250514"
    CLAUDE_MAX_TOKENS: int = 8192
    CLAUDE_TEMPERATURE: float = 0.2
    CLAUDE_REQUEST_TIMEOUT: int = 120  # seconds
    CLAUDE_CONNECT_TIMEOUT: int = 30  # seconds
    CLAUDE_MAX_RETRIES: int = 2
    CLAUDE_RETRY_BASE_DELAY: float = 1.0  # seconds
    CLAUDE_RETRY_MAX_DELAY: float = 8.0  # seconds

    # ==========================================
    # Auto-fix pipeline budgets (milliseconds)
    # ==========================================
    AUTOFIX_LOCAL_FIX_TIMEOUT_MS: int = 2000
    AUTOFIX_AI_QUICK_TIMEOUT_MS: int = 15000
    AUTOFIX_AI_FULL_TIMEOUT_MS: int = 30000
    AUTOFIX_AI_ITERATIVE_TIMEOUT_MS: int = 60000
    AUTOFIX_TOTAL_TIMEOUT_MS: int = 90000
    AUTOFIX_MAX_ATTEMPTS: int = 10
    AUTOFIX_MAX_ITERATIVE_ROUNDS: int = 3

    # ==========================================
    # Auto-fix policy knobs
    # ==========================================
    AUTOFIX_SIMILARITY_THRESHOLD: float = 0.6
    AUTOFIX_SKIP_AFTER_FAILURES: int = 3
    AUTOFIX_FAILURE_WINDOW_SECONDS: int = 1800  # 30 minutes
    AUTOFIX_HISTORY_TTL_SECONDS: int = 86400  # 24 hours
    AUTOFIX_ANALYTICS_MAX_RECORDS: int = 5000

    # ==========================================
    # Prompt context limits
    # ==========================================
    AUTOFIX_MAX_CONTEXT_FILES: int = 3
    AUTOFIX_MAX_CONTEXT_FILE_CHARS: int = 1500
    AUTOFIX_MAX_LOG_TAIL: int = 5

    # ==========================================
    # Project layout
    # ==========================================
    AUTOFIX_DEFAULT_TARGET_FILE: str = "src/App.tsx"
    AUTOFIX_SOURCE_EXTENSIONS: str = ".ts,.tsx,.js,.jsx,.mjs,.cjs"

    @field_validator('LOG_LEVEL')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        return v.upper()

    @property
    def source_extensions(self) -> List[str]:
        return parse_extensions(self.AUTOFIX_SOURCE_EXTENSIONS)

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


# Create settings instance
settings = Settings()
