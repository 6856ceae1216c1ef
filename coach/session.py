from __future__ import annotations

import enum
import itertools
import time
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional

import chess

from . import attack_map as attack_map_module
from .attack_map import AttackMap
from .candidates import NO_MOVE, Assessment, CandidatePair, StrategyGuide, VibeLevel
from .game import Game
from .narrator import BoardAnalysis, HistoricalGame
from .overlay import OverlayState

_MESSAGE_IDS = itertools.count(1)


class Phase(enum.Enum):
    AWAITING_HUMAN = "awaiting_human"
    HUMAN_MOVE_APPLIED = "human_move_applied"
    OPPONENT_THINKING = "opponent_thinking"
    OPPONENT_MOVE_APPLIED = "opponent_move_applied"
    RE_EVALUATING = "re_evaluating"
    TERMINATED = "terminated"
    GAME_OVER = "game_over"


@dataclass
class ChatMessage:
    role: str  # "user" or "model"
    text: str
    id: int = field(default_factory=lambda: next(_MESSAGE_IDS))
    timestamp: float = field(default_factory=time.time)


@dataclass
class GameSession:
    """Everything that belongs to one game, from photo upload to reset.

    Only the orchestrator mutates a session. ``epoch`` identifies the session;
    scheduled work for an older epoch is dropped.
    """

    game: Game
    epoch: int
    human_color: chess.Color = chess.WHITE
    phase: Phase = Phase.AWAITING_HUMAN
    ply: int = 0
    terminated: bool = False
    pending_verdict: bool = False
    verdict: Optional[str] = None
    verdict_requests: int = 0
    attack_map: Optional[AttackMap] = None
    overlay: OverlayState = field(default_factory=OverlayState)
    candidates: CandidatePair = field(default_factory=lambda: CandidatePair(NO_MOVE, NO_MOVE))
    strategy: Optional[StrategyGuide] = None
    assessment: Assessment = field(
        default_factory=lambda: Assessment(VibeLevel.TENSION, 50, "Waiting for a position.")
    )
    messages: List[ChatMessage] = field(default_factory=list)
    analysis: Optional[BoardAnalysis] = None
    historical: Optional[HistoricalGame] = None
    pending_analysis: bool = False
    pending_chat: bool = False
    pending_history: bool = False

    @property
    def accepts_moves(self) -> bool:
        return self.phase is Phase.AWAITING_HUMAN and not self.pending_analysis

    def say(self, text: str, role: str = "model") -> ChatMessage:
        message = ChatMessage(role=role, text=text)
        self.messages.append(message)
        return message

    def to_dict(self) -> Dict[str, object]:
        summary = self.game.result_summary(self.human_color, self.terminated)
        return {
            **self.game.snapshot(),
            "phase": self.phase.value,
            "ply": self.ply,
            "human_color": "white" if self.human_color == chess.WHITE else "black",
            "terminated": self.terminated,
            "pending_verdict": self.pending_verdict,
            "verdict": self.verdict,
            "result": asdict(summary) if summary else None,
            "pragmatic": self.candidates.pragmatic.to_dict(),
            "artistic": self.candidates.artistic.to_dict(),
            "strategy": asdict(self.strategy) if self.strategy else None,
            "vibe": {
                "label": self.assessment.vibe_label.value,
                "score": self.assessment.vibe_score,
                "summary": self.assessment.summary,
            },
            "overlay": self.overlay.to_dict(),
            "attack_map": (
                attack_map_module.to_dict(self.attack_map) if self.attack_map is not None else None
            ),
            "messages": [asdict(m) for m in self.messages],
            "analysis": self.analysis.to_dict() if self.analysis else None,
            "historical": asdict(self.historical) if self.historical else None,
            "pending_analysis": self.pending_analysis,
            "pending_chat": self.pending_chat,
        }
