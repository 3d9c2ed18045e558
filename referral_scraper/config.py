"""Configuration management from environment variables."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file
load_dotenv()

# Project root
PROJECT_ROOT = Path(__file__).parent.parent
DATA_DIR = PROJECT_ROOT / "data"

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36"
)


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


@dataclass
class Config:
    """Application configuration, passed explicitly into each component."""

    # Reddit
    REDDIT_BASE_URL: str = field(default_factory=lambda: os.getenv("REDDIT_BASE_URL", "https://www.reddit.com"))
    USER_AGENT: str = field(default_factory=lambda: os.getenv("USER_AGENT", DEFAULT_USER_AGENT))
    MAX_PAGES: int = field(default_factory=lambda: _env_int("MAX_PAGES", 5))
    POSTS_PER_PAGE: int = field(default_factory=lambda: _env_int("POSTS_PER_PAGE", 25))
    PAGE_DELAY: float = field(default_factory=lambda: _env_float("PAGE_DELAY", 1.0))
    TIMEOUT: int = field(default_factory=lambda: _env_int("TIMEOUT", 20))

    # Gemini
    GEMINI_API_KEY: Optional[str] = field(default_factory=lambda: os.getenv("GEMINI_API_KEY"))
    GEMINI_MODEL: str = field(default_factory=lambda: os.getenv("GEMINI_MODEL", "gemini-2.0-flash"))
    GEMINI_BATCH_SIZE: int = field(default_factory=lambda: _env_int("GEMINI_BATCH_SIZE", 10))
    GEMINI_RATE_LIMIT: int = field(default_factory=lambda: _env_int("GEMINI_RATE_LIMIT", 15))
    BATCH_PAUSE: float = field(default_factory=lambda: _env_float("BATCH_PAUSE", 5.0))
    DEFAULT_EXPIRY_DAYS: int = field(default_factory=lambda: _env_int("DEFAULT_EXPIRY_DAYS", 30))

    # Storage
    REFERRALS_DB: Path = field(
        default_factory=lambda: Path(os.getenv("REFERRALS_DB", str(DATA_DIR / "referrals.db")))
    )
    METRICS_FILE: Path = field(
        default_factory=lambda: Path(os.getenv("METRICS_FILE", str(DATA_DIR / "metrics.jsonl")))
    )

    # Jobs
    SWEEP_INTERVAL: float = field(default_factory=lambda: _env_float("SWEEP_INTERVAL", 3600.0))
    EXIT_GRACE: float = field(default_factory=lambda: _env_float("EXIT_GRACE", 1.0))

    # API
    PORT: int = field(default_factory=lambda: _env_int("PORT", 5000))

    # Logging
    LOG_LEVEL: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    def validate(self, require_gemini: bool = True) -> None:
        """Validate required configuration."""
        errors = []
        if require_gemini and not self.GEMINI_API_KEY:
            errors.append("GEMINI_API_KEY is required")
        if self.GEMINI_RATE_LIMIT <= 0:
            errors.append("GEMINI_RATE_LIMIT must be positive")
        if self.GEMINI_BATCH_SIZE <= 0:
            errors.append("GEMINI_BATCH_SIZE must be positive")
        if self.POSTS_PER_PAGE <= 0:
            errors.append("POSTS_PER_PAGE must be positive")
        if self.MAX_PAGES <= 0:
            errors.append("MAX_PAGES must be positive")
        if errors:
            raise ValueError(f"Configuration errors: {', '.join(errors)}")

    def ensure_dirs(self) -> None:
        """Create parent directories for the database and metrics files."""
        self.REFERRALS_DB.parent.mkdir(parents=True, exist_ok=True)
        self.METRICS_FILE.parent.mkdir(parents=True, exist_ok=True)


config = Config()
