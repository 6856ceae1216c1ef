"""Candidate move selection and the short texts that go with it.

Two recommendations are produced per position: a *pragmatic* one (safe,
solid, low risk) and an *artistic* one (checks, captures, queen play). Both
come from the same lookahead ranking; they differ only in the filter applied.
"""

from __future__ import annotations

import enum
from dataclasses import asdict, dataclass
from typing import Dict, List, Optional

import chess

from .ai import ScoredMove, score_legal_moves
from .evaluator import Evaluator
from .moves import MoveInfo, MoveTag

PIECE_NAMES: Dict[chess.PieceType, str] = {
    chess.PAWN: "Pawn",
    chess.KNIGHT: "Knight",
    chess.BISHOP: "Bishop",
    chess.ROOK: "Rook",
    chess.QUEEN: "Queen",
    chess.KING: "King",
}

ARTISTIC_TAGS = frozenset({MoveTag.CHECK, MoveTag.MATE, MoveTag.CAPTURE})
PRAGMATIC_CAPTURE_THRESHOLD = 20
DOMINATION_MARGIN = 30


@dataclass(frozen=True)
class Candidate:
    san: str
    translation: str
    rationale: str
    from_square: Optional[str] = None
    to_square: Optional[str] = None

    @property
    def is_sentinel(self) -> bool:
        return self.san == NO_MOVE.san

    def to_dict(self) -> Dict[str, Optional[str]]:
        return asdict(self)


NO_MOVE = Candidate(san="...", translation="No moves", rationale="Game over.")


@dataclass(frozen=True)
class CandidatePair:
    pragmatic: Candidate
    artistic: Candidate


def translate(info: MoveInfo) -> str:
    if MoveTag.PROMOTION in info.tags:
        return "Promotion"
    if info.is_castle:
        return "Castling"
    if info.is_mate:
        return "Checkmate"
    if info.is_capture:
        return "Capture"
    if MoveTag.CHECK in info.tags:
        return "Check"
    return "Positional Move"


def rationale(info: MoveInfo, artistic: bool) -> str:
    if info.is_mate:
        return "Delivers checkmate. The game is won immediately."
    if info.promotion:
        name = PIECE_NAMES[info.promotion]
        return f"Promotes the Pawn to a {name}, creating a decisive material advantage."

    captured = PIECE_NAMES.get(info.captured, "Piece")
    if artistic:
        if MoveTag.CHECK in info.tags:
            return "Delivers a check, seizing the initiative and forcing the King to move."
        if info.is_capture:
            return f"Captures the {captured} on {info.to_square}, winning material aggressively."
        if info.piece == chess.QUEEN:
            return "Activates the Queen to create dangerous attacking threats."
        return "Advances into enemy territory to create tactical complications."

    if info.is_castle:
        return "Castles to safety, connecting the Rooks and protecting the King."
    if info.is_capture:
        return f"Safely captures the {captured}, simplifying the position."
    if info.piece == chess.PAWN:
        return "Strengthens the pawn structure and controls critical center squares."
    if info.piece == chess.KING:
        return "Moves the King to a safer square out of danger."
    return "Develops the piece to a solid square, improving coordination."


def package(info: MoveInfo, artistic: bool) -> Candidate:
    return Candidate(
        san=info.san,
        translation=translate(info),
        rationale=rationale(info, artistic),
        from_square=info.from_square,
        to_square=info.to_square,
    )


def _is_artistic(scored: ScoredMove) -> bool:
    return bool(scored.info.tags & ARTISTIC_TAGS) or scored.info.piece == chess.QUEEN


def _is_pragmatic(scored: ScoredMove) -> bool:
    info = scored.info
    return info.is_castle or not info.is_capture or scored.score > PRAGMATIC_CAPTURE_THRESHOLD


def pick(ranked: List[ScoredMove]) -> Optional[tuple]:
    """Return ``(pragmatic, artistic)`` MoveInfos from a best-first ranking."""
    if not ranked:
        return None
    top = ranked[0].info
    artistic = next((s.info for s in ranked if _is_artistic(s)), top)
    pragmatic = next((s.info for s in ranked if _is_pragmatic(s)), top)

    if pragmatic.san == artistic.san and not artistic.is_mate:
        alternative = next((s.info for s in ranked if s.info.san != artistic.san), None)
        if alternative is not None:
            pragmatic = alternative
    return pragmatic, artistic


def select_candidates(board: chess.Board) -> CandidatePair:
    picked = pick(score_legal_moves(board))
    if picked is None:
        return CandidatePair(pragmatic=NO_MOVE, artistic=NO_MOVE)
    pragmatic, artistic = picked
    return CandidatePair(pragmatic=package(pragmatic, False), artistic=package(artistic, True))


@dataclass(frozen=True)
class StrategyGuide:
    theme: str
    concept: str
    rule_of_thumb: str


def strategy_for(board: chess.Board, pair: CandidatePair, human_color: chess.Color) -> StrategyGuide:
    """Pick the strategic theme for the position; first matching branch wins."""
    if board.is_checkmate():
        return StrategyGuide("Checkmate", "The game has ended decisively.", "Game Over.")
    if board.is_stalemate():
        return StrategyGuide(
            "Stalemate", "No legal moves available, but not in check.", "Draw secured."
        )
    if board.is_check():
        return StrategyGuide(
            "King Under Siege",
            "The King is in immediate danger. Defense is the priority.",
            "When in check, consider: Capture, Block, or Run.",
        )

    delta = Evaluator.evaluate(board)
    if human_color == chess.BLACK:
        delta = -delta
    if delta >= DOMINATION_MARGIN:
        return StrategyGuide(
            "Domination & Simplification",
            "You have a material advantage. Consolidate and trade pieces.",
            "When ahead, trade pieces but not pawns.",
        )

    artistic = pair.artistic.san
    if "x" in artistic:
        return StrategyGuide(
            "Material Advantage",
            "Removing enemy pieces reduces their attacking potential.",
            "Capture hanging pieces when safe.",
        )
    if artistic.startswith("O-O"):
        return StrategyGuide(
            "King Safety",
            "Connecting Rooks and protecting the King is vital.",
            "Castle early, castle often.",
        )
    return StrategyGuide(
        "Positional Maneuver",
        "Improve the position of your pieces to control key squares.",
        "Knights on the rim are dim; control the center.",
    )


class VibeLevel(str, enum.Enum):
    PANIC = "Panic"
    TENSION = "Tension"
    FLOW = "Flow"
    DOMINATION = "Domination"


@dataclass(frozen=True)
class Assessment:
    vibe_label: VibeLevel
    vibe_score: int
    summary: str


def assess(board: chess.Board) -> Assessment:
    if board.is_checkmate():
        return Assessment(VibeLevel.DOMINATION, 100, "Checkmate! The game is decided.")
    if board.is_check():
        return Assessment(VibeLevel.PANIC, 30, "The King is under fire! Precise defense required.")
    if board.is_stalemate():
        return Assessment(VibeLevel.FLOW, 75, "Stalemate. No legal moves.")
    return Assessment(VibeLevel.FLOW, 75, "The position is fluid. Look for opportunities.")
