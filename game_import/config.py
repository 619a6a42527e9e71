"""
Configuration settings for the game import pipeline.
"""

import os
from pathlib import Path

# Project paths
PROJECT_ROOT = Path(__file__).parent.parent  # Go up one level to workspace root
DATABASE_PATH = Path(os.environ.get("GAME_IMPORT_DB", PROJECT_ROOT / "game_catalog.db"))
# Logs directory for per-run logs
LOGS_DIR = PROJECT_ROOT / "game_import_cache" / "logs"

# Outbound HTTP
HTTP_TIMEOUT = int(os.environ.get("HTTP_TIMEOUT", "30"))
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

# Scraping service (Firecrawl). Without a key pages are fetched directly.
FIRECRAWL_API_KEY = os.environ.get("FIRECRAWL_API_KEY")
FIRECRAWL_ENDPOINT = os.environ.get("FIRECRAWL_ENDPOINT", "https://api.firecrawl.dev/v1/scrape")

# BoardGameGeek
BGG_XMLAPI_URLS = [
    "https://boardgamegeek.com/xmlapi2",
    # Some hosting environments get blocked on boardgamegeek.com; api.geekdo.com often works better.
    "https://api.geekdo.com/xmlapi2",
]
BGG_API_TOKEN = os.environ.get("BGG_API_TOKEN")
BGG_PAGE_URL_TEMPLATE = "https://boardgamegeek.com/boardgame/{bgg_id}"
COLLECTION_MAX_ATTEMPTS = 5
COLLECTION_RETRY_DELAY = 3.0  # seconds between "still generating" polls

# Web search fallback
TAVILY_API_KEY = os.environ.get("TAVILY_API_KEY")

# AI providers, checked in this order
PERPLEXITY_API_KEY = os.environ.get("PERPLEXITY_API_KEY")
PERPLEXITY_ENDPOINT = "https://api.perplexity.ai/chat/completions"
PERPLEXITY_MODEL = "sonar"

OPENAI_API_KEY = os.environ.get("OPENAI_API_KEY")
OPENAI_ENDPOINT = "https://api.openai.com/v1/chat/completions"
OPENAI_MODEL = "gpt-4o-mini"

TOGETHER_API_KEY = os.environ.get("TOGETHER_API_KEY")
TOGETHER_TEXT_MODEL = os.environ.get("TOGETHER_TEXT_MODEL", "meta-llama/Llama-3.3-70B-Instruct-Turbo")

AI_GATEWAY_API_KEY = os.environ.get("AI_GATEWAY_API_KEY")
AI_GATEWAY_ENDPOINT = os.environ.get("AI_GATEWAY_ENDPOINT")
AI_GATEWAY_MODEL = os.environ.get("AI_GATEWAY_MODEL", "google/gemini-2.5-flash")

AI_MODEL = os.environ.get("AI_MODEL")

# Upstream providers bound context size; page text is cut to these lengths
AI_PAGE_TEXT_LIMIT = 12000
AI_URL_PAGE_TEXT_LIMIT = 18000

# Pause between enhanced items in a bulk run
ENHANCE_DELAY_SECONDS = float(os.environ.get("ENHANCE_DELAY_SECONDS", "0.5"))

# Closed vocabularies, ordered from lowest to highest where order matters
DIFFICULTY_LEVELS = [
    "1 - Light",
    "2 - Medium Light",
    "3 - Medium",
    "4 - Medium Heavy",
    "5 - Heavy",
]

PLAY_TIME_OPTIONS = [
    "0-15 Minutes",
    "15-30 Minutes",
    "30-45 Minutes",
    "45-60 Minutes",
    "60+ Minutes",
    "2+ Hours",
    "3+ Hours",
]

GAME_TYPE_OPTIONS = [
    "Board Game",
    "Card Game",
    "Dice Game",
    "Party Game",
    "War Game",
    "Miniatures",
    "RPG",
    "Other",
]

SALE_CONDITION_OPTIONS = [
    "New/Sealed",
    "Like New",
    "Very Good",
    "Good",
    "Acceptable",
]

DEFAULT_DIFFICULTY = "3 - Medium"
DEFAULT_PLAY_TIME = "45-60 Minutes"
DEFAULT_GAME_TYPE = "Board Game"
DEFAULT_MIN_PLAYERS = 2
DEFAULT_MAX_PLAYERS = 4

# Image filtering
IMAGE_CDN_HOST = "cf.geekdo-images.com"
IMAGE_ALLOWED_HOSTS = [
    host.strip()
    for host in os.environ.get("IMAGE_ALLOWED_HOSTS", IMAGE_CDN_HOST).split(",")
    if host.strip()
]
IMAGE_BAD_FRAGMENTS = [
    "crop100",
    "square30",
    "100x100",
    "150x150",
    "_thumb",
    "_avatar",
    "_micro",
    "avatar",
    "icon",
    "logo",
    "opengraph",
]
IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp", ".gif")

# Gameplay photos kept alongside the box image
GAMEPLAY_IMAGE_LIMIT = 2
GAMEPLAY_FALLBACK_LIMIT = 6
GAMEPLAY_EXCLUDED_FRAGMENTS = ["_itemrep", "200x200", "300x300", "thumb"]

# LLM prompt configuration
EXTRACTION_PROMPT = f"""
Extract board game data. Use EXACT enum values:
- difficulty: {", ".join(DIFFICULTY_LEVELS)}
- play_time: {", ".join(PLAY_TIME_OPTIONS)}
- game_type: {", ".join(GAME_TYPE_OPTIONS)}

Keep description CONCISE (100-150 words). Include brief overview and Quick Gameplay bullet points.
"""

URL_EXTRACTION_PROMPT = f"""
You are a board game data extraction expert. Extract detailed, structured game information from the provided content.

For enum fields, you MUST use these EXACT values:
- difficulty: {", ".join(DIFFICULTY_LEVELS)}
- play_time: {", ".join(PLAY_TIME_OPTIONS)}
- game_type: {", ".join(GAME_TYPE_OPTIONS)}

For the description, write a markdown overview with a "## Quick Gameplay Overview" section
(Goal, On Your Turn, Scoring, End Game) followed by a short closing paragraph.
For mechanics, list actual game mechanics (e.g. "Worker Placement", "Set Collection", "Dice Rolling").
For publisher, give the publisher company name.
"""

GAME_FIELDS_SCHEMA = {
    "description": {"type": "string"},
    "difficulty": {"type": "string", "enum": DIFFICULTY_LEVELS},
    "play_time": {"type": "string", "enum": PLAY_TIME_OPTIONS},
    "game_type": {"type": "string", "enum": GAME_TYPE_OPTIONS},
    "min_players": {"type": "number"},
    "max_players": {"type": "number"},
    "suggested_age": {"type": "string", "description": "Suggested age (e.g., '10+')"},
    "mechanics": {
        "type": "array",
        "items": {"type": "string"},
        "description": "Game mechanics like Worker Placement, Set Collection, etc.",
    },
    "publisher": {"type": "string", "description": "Publisher name"},
    "gameplay_images": {
        "type": "array",
        "items": {"type": "string"},
        "description": "Up to 2 image URLs showing the game being played, not the box art",
    },
}

EXTRACT_GAME_TOOL = {
    "type": "function",
    "function": {
        "name": "extract_game",
        "description": "Extract structured board game data",
        "parameters": {
            "type": "object",
            "properties": GAME_FIELDS_SCHEMA,
        },
    },
}

EXTRACT_GAME_WITH_TITLE_TOOL = {
    "type": "function",
    "function": {
        "name": "extract_game_data",
        "description": "Extract structured game data from page content",
        "parameters": {
            "type": "object",
            "properties": {"title": {"type": "string", "description": "The game title"}, **GAME_FIELDS_SCHEMA},
            "required": ["title"],
        },
    },
}
