"""Narrative AI collaborator.

The coach only relies on the :class:`Narrator` protocol. :class:`GeminiNarrator`
implements it on top of the ``google-genai`` SDK; every call except image
analysis degrades to a canned answer when the service misbehaves.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

import chess
from google import genai
from google.genai import types

from .candidates import Candidate, StrategyGuide, VibeLevel
from .errors import NarratorError

_LOGGER = logging.getLogger(__name__)

CHAT_FALLBACK = "I sensed a disturbance in the connection. Try again."
VERDICT_FALLBACK = "Unable to retrieve final evaluation."

SOCRATIC_SYSTEM_INSTRUCTION = """
You are "Caissa's Shadow", a wise, slightly cryptic, but deeply supportive Grandmaster ghost.
You hate rote memorization. You love 'flow' and 'intuition'.
When a user suggests a move, ask *why*. If they are wrong, guide them to the answer using board
geometry, tension, and pawn structures, NOT engine evaluations (e.g., never say "+1.5").
Speak in metaphors of war, art, physics, and psychology.
Be concise but impactful.
"""

VISION_SYSTEM_INSTRUCTION = (
    "You are a top-tier Grandmaster analyst. IMPORTANT: In the image, Black pieces may appear "
    "grey, metallic, or silver due to 3D lighting. You must classify these grey/silver pieces "
    "as BLACK, not white."
)

VISION_PROMPT = (
    "Analyze this chess position. Extract FEN. Identify the 'Opening Name' (e.g. Ruy Lopez, "
    "King's Indian). Identify the 'Pragmatic' move (safe) and the 'Artist' move (bold). "
    "Provide translations and philosophical rationales."
)

VERDICT_SYSTEM_INSTRUCTION = "You are a concise, high-level chess coach. Be direct."

_MOVE_OPTION_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "san": {"type": "STRING"},
        "translation": {"type": "STRING"},
        "rationale": {"type": "STRING"},
    },
    "required": ["san", "translation", "rationale"],
}

ANALYSIS_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "fen": {"type": "STRING", "description": "The FEN string of the position."},
        "turn": {"type": "STRING", "enum": ["w", "b"]},
        "openingName": {"type": "STRING"},
        "vibeScore": {"type": "NUMBER"},
        "vibeLabel": {"type": "STRING", "enum": [level.value for level in VibeLevel]},
        "efficiency": {"type": "NUMBER"},
        "roi": {"type": "NUMBER"},
        "pragmatism": _MOVE_OPTION_SCHEMA,
        "artistry": _MOVE_OPTION_SCHEMA,
        "performanceState": {
            "type": "OBJECT",
            "properties": {
                "tunnelVision": {"type": "NUMBER"},
                "fear": {"type": "NUMBER"},
                "aggression": {"type": "NUMBER"},
            },
            "required": ["tunnelVision", "fear", "aggression"],
        },
        "strategy": {
            "type": "OBJECT",
            "properties": {
                "theme": {"type": "STRING"},
                "concept": {"type": "STRING"},
                "ruleOfThumb": {"type": "STRING"},
            },
            "required": ["theme", "concept", "ruleOfThumb"],
        },
        "summary": {"type": "STRING"},
    },
    "required": [
        "fen", "turn", "vibeScore", "vibeLabel", "efficiency", "roi",
        "pragmatism", "artistry", "performanceState", "strategy", "summary",
    ],
}


@dataclass
class PerformanceState:
    tunnel_vision: float = 20
    fear: float = 20
    aggression: float = 50


@dataclass
class BoardAnalysis:
    fen: str
    turn: str
    vibe_score: float
    vibe_label: VibeLevel
    pragmatic: Candidate
    artistic: Candidate
    strategy: StrategyGuide
    summary: str
    opening_name: Optional[str] = None
    efficiency: float = 50
    roi: float = 50
    performance: PerformanceState = field(default_factory=PerformanceState)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["vibe_label"] = self.vibe_label.value
        return data


@dataclass
class HistoricalGame:
    players: str
    year: str
    opening: str
    description: str
    source_title: Optional[str] = None
    source_url: Optional[str] = None


ChatHistory = Sequence[Tuple[str, str]]


class Narrator(Protocol):
    def analyze_image(self, image: bytes, mime_type: str = "image/jpeg") -> BoardAnalysis: ...

    def chat(self, history: ChatHistory, fen: str, message: str) -> str: ...

    def final_verdict(self, fen: str) -> str: ...

    def find_historical_match(self, opening: str) -> Optional[HistoricalGame]: ...


def fallback_analysis() -> BoardAnalysis:
    """Analysis used when the photo could not be read at all."""
    return BoardAnalysis(
        fen=chess.STARTING_FEN,
        turn="w",
        vibe_score=50,
        vibe_label=VibeLevel.TENSION,
        pragmatic=Candidate("e4", "King's Pawn Opening", "Standard control."),
        artistic=Candidate("Nf3", "Knight Development", "Flexible setup."),
        strategy=StrategyGuide(
            "Recovery Mode",
            "The visual engine couldn't lock on.",
            "Play standard chess principles.",
        ),
        summary="Visual analysis failed. Loaded standard starting position.",
        performance=PerformanceState(tunnel_vision=0, fear=0, aggression=50),
    )


def _load_json(text: Optional[str]) -> Dict[str, Any]:
    if not text:
        raise NarratorError("Empty response")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise NarratorError(f"Malformed JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise NarratorError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def _extract_json(text: Optional[str]) -> Dict[str, Any]:
    """Pull the JSON object out of a free-text reply.

    Search-grounded calls cannot ask for a JSON response type, so the model
    may wrap the object in prose.
    """
    if not text:
        raise NarratorError("Empty response")
    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end <= start:
        raise NarratorError(f"No JSON object in response: {text[:80]!r}")
    return _load_json(text[start:end + 1])


def _candidate(data: Optional[Dict[str, Any]]) -> Candidate:
    data = data or {}
    return Candidate(
        san=data.get("san") or "...",
        translation=data.get("translation") or "",
        rationale=data.get("rationale") or "",
    )


def parse_analysis(data: Dict[str, Any]) -> BoardAnalysis:
    try:
        vibe_label = VibeLevel(data.get("vibeLabel"))
    except ValueError:
        vibe_label = VibeLevel.TENSION
    perf = data.get("performanceState") or {}
    strategy = data.get("strategy") or {}
    return BoardAnalysis(
        fen=data.get("fen") or "",
        turn=data.get("turn") or "w",
        opening_name=data.get("openingName") or "Unknown Structure",
        vibe_score=data.get("vibeScore", 50),
        vibe_label=vibe_label,
        efficiency=data.get("efficiency", 50),
        roi=data.get("roi", 50),
        pragmatic=_candidate(data.get("pragmatism")),
        artistic=_candidate(data.get("artistry")),
        performance=PerformanceState(
            tunnel_vision=perf.get("tunnelVision") or 20,
            fear=perf.get("fear") or 20,
            aggression=perf.get("aggression") or 50,
        ),
        strategy=StrategyGuide(
            strategy.get("theme") or "Tactical Opportunity",
            strategy.get("concept") or "Look for hanging pieces.",
            strategy.get("ruleOfThumb") or "Checks, captures, and threats.",
        ),
        summary=data.get("summary") or "",
    )


class GeminiNarrator:
    """Narrator backed by Google Gemini."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gemini-3-pro-preview",
        client: Optional[genai.Client] = None,
    ) -> None:
        self._api_key = api_key
        self._client = client
        self.model = model

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    def analyze_image(self, image: bytes, mime_type: str = "image/jpeg") -> BoardAnalysis:
        try:
            response = self.client.models.generate_content(
                model=self.model,
                contents=[types.Part.from_bytes(data=image, mime_type=mime_type), VISION_PROMPT],
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    response_schema=ANALYSIS_SCHEMA,
                    system_instruction=VISION_SYSTEM_INSTRUCTION,
                ),
            )
            return parse_analysis(_load_json(response.text))
        except NarratorError:
            raise
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning("Board analysis failed: %s", exc)
            raise NarratorError(str(exc)) from exc

    def chat(self, history: ChatHistory, fen: str, message: str) -> str:
        try:
            contents: List[types.Content] = [
                types.Content(role=role, parts=[types.Part(text=text)]) for role, text in history
            ]
            session = self.client.chats.create(
                model=self.model,
                history=contents,
                config=types.GenerateContentConfig(system_instruction=SOCRATIC_SYSTEM_INSTRUCTION),
            )
            result = session.send_message(f"[Current Board FEN: {fen}] User says: {message}")
            return result.text or "..."
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning("Chat turn failed: %s", exc)
            return CHAT_FALLBACK

    def final_verdict(self, fen: str) -> str:
        prompt = (
            f"Analyze this final chess position (FEN: {fen}). "
            "Provide a 2-sentence professional Grandmaster verdict. "
            "1. Who is winning (White, Black, or Draw)? "
            "2. What is the critical reason (Material, Space, King Safety)? "
            "Speak directly to the player."
        )
        try:
            response = self.client.models.generate_content(
                model=self.model,
                contents=prompt,
                config=types.GenerateContentConfig(system_instruction=VERDICT_SYSTEM_INSTRUCTION),
            )
            return response.text or "The position is complex and requires further study."
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning("Final verdict failed: %s", exc)
            return VERDICT_FALLBACK

    def find_historical_match(self, opening: str) -> Optional[HistoricalGame]:
        prompt = (
            f'Find a famous historical chess game that features the "{opening}" or a very '
            "similar structure. Identify the Players, the Year, and a brief 1-sentence "
            "description of why it is famous. Return the result as a JSON object with keys: "
            "players, year, opening, description."
        )
        try:
            response = self.client.models.generate_content(
                model=self.model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    tools=[types.Tool(google_search=types.GoogleSearch())],
                ),
            )
            data = _extract_json(response.text)
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning("Historical search failed: %s", exc)
            return None

        source_title = source_url = None
        try:
            web = response.candidates[0].grounding_metadata.grounding_chunks[0].web
            source_title, source_url = web.title, web.uri
        except (AttributeError, IndexError, TypeError):
            pass

        return HistoricalGame(
            players=data.get("players") or "Unknown Grandmasters",
            year=str(data.get("year") or "20th Century"),
            opening=data.get("opening") or opening,
            description=data.get("description") or "A classic struggle in this line.",
            source_title=source_title,
            source_url=source_url,
        )

