"""Module-level constants for the AutoRAG Notes MCP server."""

from pathlib import Path

# Configuration
CONFIG_PATH = Path(__file__).parent.parent / "autorag_notes.yaml"
CONFIG_PATH_ENV = "AUTORAG_NOTES_CONFIG"

# Notes
NOTE_TYPE_PREFIXES = {
    "meeting": "Meeting Notes",
    "idea": "Idea",
    "task": "Task",
    "diary": "Journal Entry",
    "code": "Code Snippet",
    "other": "Note",
}
METADATA_FOLDER = ".metadata"
CONTENT_PREVIEW_CHARS = 200
TITLE_MAX_CHARS = 50

# Search
SCORE_THRESHOLD = 0.3
MAX_SEARCH_RESULTS = 50
RESULT_PREVIEW_CHARS = 300
FALLBACK_LIST_LIMIT = 1000
DAY_MS = 24 * 60 * 60 * 1000

# Cloudflare
CLOUDFLARE_API_BASE = "https://api.cloudflare.com/client/v4"
IMAGE_MODEL = "@cf/black-forest-labs/flux-1-schnell"

# Google OAuth
GOOGLE_AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"
GOOGLE_SCOPE = "email profile openid"
CALLBACK_PATH = "/callback"

# Grant lifetimes (seconds)
PENDING_STATE_TTL = 600
AUTHORIZATION_CODE_TTL = 300
REFRESH_TOKEN_TTL = 30 * 24 * 60 * 60
