"""
Runtime configuration for warden.

Values come from the environment (optionally a .env file in the project root).
"""

import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables
project_root = Path(__file__).parent.parent
load_dotenv(project_root / ".env")

DEFAULT_GITHUB_API_URL = "https://api.github.com/"


def get_github_token() -> str | None:
    """Get the GitHub token used by the provider client."""
    return os.getenv("GITHUB_TOKEN")


def get_github_api_url() -> str:
    """Get the GitHub REST API base URL (always ends with a slash)."""
    url = os.getenv("GITHUB_API_URL", DEFAULT_GITHUB_API_URL)
    if not url.endswith("/"):
        url += "/"
    return url


def get_provider_timeout() -> float:
    """Timeout in seconds for provider API calls."""
    try:
        return float(os.getenv("WARDEN_PROVIDER_TIMEOUT", "30"))
    except ValueError:
        return 30.0


def get_database_url() -> str:
    return os.getenv("DATABASE_URL", f"sqlite:///{project_root / 'warden.db'}")


def configure_logging(level: str | None = None) -> None:
    """Configure root logging. Level defaults to WARDEN_LOG_LEVEL or INFO."""
    level_name = (level or os.getenv("WARDEN_LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stdout,
        level=getattr(logging, level_name, logging.INFO),
    )
