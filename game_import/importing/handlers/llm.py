"""
Structured extraction of game fields from page text.

Every provider sits behind the same ``StructuredExtractor.extract`` call so
the fetchers never see provider-specific response shapes.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import requests
from pydantic import BaseModel, Field, ValidationError, field_validator

from ...config import (
    AI_GATEWAY_API_KEY,
    AI_GATEWAY_ENDPOINT,
    AI_GATEWAY_MODEL,
    AI_MODEL,
    DIFFICULTY_LEVELS,
    GAME_TYPE_OPTIONS,
    HTTP_TIMEOUT,
    OPENAI_API_KEY,
    OPENAI_ENDPOINT,
    OPENAI_MODEL,
    PERPLEXITY_API_KEY,
    PERPLEXITY_ENDPOINT,
    PERPLEXITY_MODEL,
    PLAY_TIME_OPTIONS,
    TOGETHER_API_KEY,
    TOGETHER_TEXT_MODEL,
)
from ...models import CandidateGame, Lookup
from ..normalize import coerce_choice, dedupe_names, parse_int

logger = logging.getLogger(__name__)

RATE_LIMIT_STATUSES = (429, 402)
RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again later."
NOT_CONFIGURED_MESSAGE = "AI service not configured"


class GameExtraction(BaseModel):
    """Fields an extractor may return. Illegal enum values are dropped rather than rejected."""
    title: Optional[str] = None
    description: Optional[str] = None
    difficulty: Optional[str] = None
    play_time: Optional[str] = None
    game_type: Optional[str] = None
    min_players: Optional[int] = None
    max_players: Optional[int] = None
    suggested_age: Optional[str] = None
    mechanics: List[str] = Field(default_factory=list)
    publisher: Optional[str] = None
    gameplay_images: List[str] = Field(default_factory=list)

    @field_validator("difficulty", mode="before")
    @classmethod
    def _difficulty(cls, v):
        return coerce_choice(v, DIFFICULTY_LEVELS)

    @field_validator("play_time", mode="before")
    @classmethod
    def _play_time(cls, v):
        return coerce_choice(v, PLAY_TIME_OPTIONS)

    @field_validator("game_type", mode="before")
    @classmethod
    def _game_type(cls, v):
        return coerce_choice(v, GAME_TYPE_OPTIONS)

    @field_validator("min_players", "max_players", mode="before")
    @classmethod
    def _players(cls, v):
        number = parse_int(v)
        return number if number and number > 0 else None

    @field_validator("title", "description", "suggested_age", "publisher", mode="before")
    @classmethod
    def _text(cls, v):
        if v is None:
            return None
        text = str(v).strip()
        return text or None

    @field_validator("mechanics", mode="before")
    @classmethod
    def _mechanics(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            v = v.split(",")
        if not isinstance(v, list):
            return []
        return dedupe_names(str(item) for item in v if item is not None)

    @field_validator("gameplay_images", mode="before")
    @classmethod
    def _gameplay_images(cls, v):
        if not isinstance(v, list):
            return []
        return [item.strip() for item in v if isinstance(item, str) and item.strip()]

    def to_candidate(self) -> CandidateGame:
        return CandidateGame(
            title=self.title or "",
            description=self.description,
            difficulty=self.difficulty,
            play_time=self.play_time,
            game_type=self.game_type,
            min_players=self.min_players,
            max_players=self.max_players,
            suggested_age=self.suggested_age,
            mechanics=list(self.mechanics),
            publisher=self.publisher,
            additional_images=list(self.gameplay_images),
        )


def parse_extraction(arguments: Dict[str, Any]) -> Lookup[GameExtraction]:
    try:
        return Lookup.found(GameExtraction.model_validate(arguments))
    except ValidationError as e:
        logger.warning(f"Extraction did not match the game schema: {e}")
        return Lookup.failed("Failed to parse AI response")


def _parse_json_content(content: str) -> Optional[Dict[str, Any]]:
    """Pull a JSON object out of a plain-text answer (some providers ignore tool_choice)."""
    start = content.find("{")
    end = content.rfind("}")
    if start < 0 or end <= start:
        return None
    try:
        data = json.loads(content[start:end + 1])
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def _tool_name(schema: Dict[str, Any]) -> str:
    return schema.get("function", {}).get("name", "")


class StructuredExtractor(ABC):
    """A provider able to turn instructions plus page text into schema-shaped fields."""

    name = "unknown"
    configured = True

    @abstractmethod
    def extract(self, instructions: str, text: str, schema: Dict[str, Any]) -> Lookup[Dict[str, Any]]:
        """
        Ask the provider for structured fields.

        Args:
            instructions: System prompt constraining the output
            text: Page text, already cut to the caller's length limit
            schema: OpenAI-style function tool describing the wanted fields

        Returns:
            found with the tool-call arguments, or failed (``rate_limited`` set on throttling)
        """

    def extract_game(self, instructions: str, text: str, schema: Dict[str, Any]) -> Lookup[GameExtraction]:
        """Extract and validate into a ``GameExtraction``."""
        result = self.extract(instructions, text, schema)
        if not result.is_found:
            return Lookup.failed(result.reason or "AI request failed", rate_limited=result.rate_limited)
        return parse_extraction(result.value or {})

    @staticmethod
    def _messages(instructions: str, text: str) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": instructions},
            {"role": "user", "content": text},
        ]

    def _arguments_from_message(self, tool_calls: Any, content: Optional[str]) -> Lookup[Dict[str, Any]]:
        if tool_calls:
            raw = tool_calls[0]
            function = raw.get("function", {}) if isinstance(raw, dict) else getattr(raw, "function", None)
            arguments = function.get("arguments") if isinstance(function, dict) else getattr(function, "arguments", None)
            if arguments:
                if isinstance(arguments, dict):
                    return Lookup.found(arguments)
                try:
                    return Lookup.found(json.loads(arguments))
                except json.JSONDecodeError as e:
                    logger.error(f"{self.name}: failed to parse tool call arguments: {e}")
                    return Lookup.failed("Failed to parse AI response")
        if content:
            data = _parse_json_content(content)
            if data is not None:
                return Lookup.found(data)
            return Lookup.failed("AI answered without structured data")
        return Lookup.failed("Empty response from AI")


class OpenAICompatibleExtractor(StructuredExtractor):
    """Chat-completions endpoint with OpenAI-style tool calling (OpenAI, Perplexity, gateways)."""

    def __init__(self, api_key: str, endpoint: str, model: str, name: str = "openai",
                 session: Optional[requests.Session] = None, timeout: int = HTTP_TIMEOUT):
        self.api_key = api_key
        self.endpoint = endpoint
        self.model = model
        self.name = name
        self.timeout = timeout
        self.session = session or requests.Session()

    def extract(self, instructions: str, text: str, schema: Dict[str, Any]) -> Lookup[Dict[str, Any]]:
        body = {
            "model": self.model,
            "messages": self._messages(instructions, text),
            "tools": [schema],
            "tool_choice": {"type": "function", "function": {"name": _tool_name(schema)}},
        }
        try:
            resp = self.session.post(
                self.endpoint,
                json=body,
                headers={"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"{self.name} request error: {e}")
            return Lookup.failed(str(e) or "AI request failed")

        if resp.status_code in RATE_LIMIT_STATUSES:
            logger.warning(f"{self.name} rate limited ({resp.status_code})")
            return Lookup.failed(RATE_LIMIT_MESSAGE, rate_limited=True)
        if not resp.ok:
            logger.error(f"{self.name} API error ({resp.status_code}): {resp.text[:300]}")
            return Lookup.failed(f"AI request failed: {resp.status_code}")

        try:
            data = resp.json()
        except ValueError:
            return Lookup.failed("Failed to parse AI response")
        if not isinstance(data, dict):
            logger.error(f"{self.name} returned a non-object response")
            return Lookup.failed("Failed to parse AI response")

        choices = data.get("choices") or []
        if not choices:
            return Lookup.failed("No response from AI")
        message = choices[0].get("message") or {}
        return self._arguments_from_message(message.get("tool_calls"), message.get("content"))


class TogetherExtractor(StructuredExtractor):
    """Together.ai chat completions through the ``together`` SDK."""

    name = "together"

    def __init__(self, api_key: Optional[str] = None, model: str = TOGETHER_TEXT_MODEL, client: Any = None):
        self.api_key = api_key or TOGETHER_API_KEY
        self.model = model
        self.client = client
        if self.client is None:
            self._initialize_client()

    def _initialize_client(self) -> None:
        """Initialize the Together.ai client."""
        try:
            from together import Together
        except ImportError:
            raise ImportError("Together.ai Python client not installed. Run: pip install together")
        self.client = Together(api_key=self.api_key)
        logger.info(f"Together.ai client initialized with model: {self.model}")

    @staticmethod
    def _is_rate_limit(error: Exception) -> bool:
        status = getattr(error, "status_code", None) or getattr(error, "http_status", None)
        if status in RATE_LIMIT_STATUSES:
            return True
        return "rate limit" in str(error).lower()

    def extract(self, instructions: str, text: str, schema: Dict[str, Any]) -> Lookup[Dict[str, Any]]:
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=self._messages(instructions, text),
                tools=[schema],
                tool_choice={"type": "function", "function": {"name": _tool_name(schema)}},
            )
        except Exception as e:
            if self._is_rate_limit(e):
                logger.warning(f"Together.ai rate limited: {e}")
                return Lookup.failed(RATE_LIMIT_MESSAGE, rate_limited=True)
            logger.error(f"Together.ai request error: {e}")
            return Lookup.failed(str(e) or "AI request failed")

        choices = getattr(response, "choices", None) or []
        if not choices:
            return Lookup.failed("No response from AI")
        message = choices[0].message
        return self._arguments_from_message(getattr(message, "tool_calls", None), getattr(message, "content", None))


class NullExtractor(StructuredExtractor):
    """Stands in when no provider key is set; enhancement degrades to scraped fields only."""

    name = "none"
    configured = False

    def extract(self, instructions: str, text: str, schema: Dict[str, Any]) -> Lookup[Dict[str, Any]]:
        return Lookup.failed(NOT_CONFIGURED_MESSAGE)


def create_extractor() -> StructuredExtractor:
    """Pick the provider from the environment. Priority: Perplexity, OpenAI, Together, gateway."""
    if PERPLEXITY_API_KEY:
        extractor: StructuredExtractor = OpenAICompatibleExtractor(
            PERPLEXITY_API_KEY, PERPLEXITY_ENDPOINT, AI_MODEL or PERPLEXITY_MODEL, name="perplexity"
        )
    elif OPENAI_API_KEY:
        extractor = OpenAICompatibleExtractor(OPENAI_API_KEY, OPENAI_ENDPOINT, AI_MODEL or OPENAI_MODEL, name="openai")
    elif TOGETHER_API_KEY:
        extractor = TogetherExtractor(TOGETHER_API_KEY, AI_MODEL or TOGETHER_TEXT_MODEL)
    elif AI_GATEWAY_API_KEY and AI_GATEWAY_ENDPOINT:
        extractor = OpenAICompatibleExtractor(
            AI_GATEWAY_API_KEY, AI_GATEWAY_ENDPOINT, AI_MODEL or AI_GATEWAY_MODEL, name="gateway"
        )
    else:
        logger.warning("No AI provider key set; games will be imported without AI enhancement")
        return NullExtractor()
    logger.info(f"Using AI provider: {extractor.name}")
    return extractor
