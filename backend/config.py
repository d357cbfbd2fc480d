"""
Runtime configuration.

Values may be defined in a .env file in the backend root, e.g.:

ANTHROPIC_API_KEY=your_real_key_here
AUDIT_FETCH_TIMEOUT_SECONDS=15

The app loads environment variables automatically using python-dotenv.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(dotenv_path=Path(__file__).resolve().parent / ".env")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"

AUDIT_USER_AGENT = os.getenv(
    "AUDIT_USER_AGENT",
    "Mozilla/5.0 (compatible; SEOBot/1.0; +http://example.com)",
)
AUDIT_FETCH_TIMEOUT_SECONDS = float(os.getenv("AUDIT_FETCH_TIMEOUT_SECONDS", "15"))
AUDIT_DB_PATH = Path(os.getenv("AUDIT_DB_PATH", str(Path(__file__).parent / "seo_workspace.db")))

ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", "").strip()
MODEL_CANDIDATES = [
    os.getenv("CLAUDE_MODEL", "").strip(),
    "claude-3-5-sonnet-latest",
    "claude-3-haiku-20240307",
]
MODEL_CANDIDATES = [m for m in MODEL_CANDIDATES if m]
MAX_TOKENS = int(os.getenv("CLAUDE_MAX_TOKENS", "1200"))
MAX_RETRIES = int(os.getenv("CLAUDE_MAX_RETRIES", "3"))
RETRY_BASE_SECONDS = float(os.getenv("CLAUDE_RETRY_BASE_SECONDS", "1.0"))
