"""Chess coaching core: move heuristics, recommendations and the turn loop.

Modules:
- evaluator: material balance and per-move tactical scores
- ai: one-ply lookahead scoring and the fallible opponent
- candidates: pragmatic/artistic recommendations and their texts
- overlay / attack_map: board bookkeeping for the photo overlay and heatmap
- game: python-chess wrapper with termination classification
- orchestrator: the human/opponent/re-evaluation state machine
- narrator: Gemini-backed narrative collaborator
"""

from .ai import OpponentPlayer, ScoredMove, lookahead_score, score_legal_moves
from .candidates import Candidate, CandidatePair, select_candidates
from .config import Settings
from .evaluator import Evaluator
from .game import Game, Termination
from .moves import ByCoordinates, ByNotation, MoveInfo, MoveTag
from .orchestrator import TurnOrchestrator
from .overlay import OverlayState
from .scheduler import Scheduler
from .session import GameSession, Phase

__all__ = [
    "ByCoordinates",
    "ByNotation",
    "Candidate",
    "CandidatePair",
    "Evaluator",
    "Game",
    "GameSession",
    "MoveInfo",
    "MoveTag",
    "OpponentPlayer",
    "OverlayState",
    "Phase",
    "ScoredMove",
    "Scheduler",
    "Settings",
    "Termination",
    "TurnOrchestrator",
    "lookahead_score",
    "score_legal_moves",
    "select_candidates",
]
