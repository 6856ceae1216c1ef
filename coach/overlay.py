from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Set

import chess

from .moves import MoveInfo, MoveTag


@dataclass(frozen=True)
class OverlayPiece:
    symbol: str  # lowercase piece letter, "p", "n", ...
    color: str  # "w" or "b"


def color_code(color: chess.Color) -> str:
    return "w" if color == chess.WHITE else "b"


@dataclass
class OverlayState:
    """Tracks how the live position differs from the uploaded photo.

    ``hidden_squares`` are squares whose original pixels must be masked because
    a move touched them; ``pieces`` says what to draw on top. Both only grow
    until :meth:`reset`.
    """

    hidden_squares: Set[str] = field(default_factory=set)
    pieces: Dict[str, OverlayPiece] = field(default_factory=dict)

    def record_move(self, from_square: str, to_square: str, symbol: str, color: str) -> None:
        self.hidden_squares.add(from_square)
        self.hidden_squares.add(to_square)
        self.pieces.pop(from_square, None)
        self.pieces[to_square] = OverlayPiece(symbol=symbol, color=color)

    def record(self, info: MoveInfo) -> None:
        """Record a played move, including the rook hop implied by castling."""
        color = color_code(info.color)
        self.record_move(
            info.from_square, info.to_square, chess.piece_symbol(info.display_piece), color
        )
        rank = "1" if info.color == chess.WHITE else "8"
        if MoveTag.CASTLE_KINGSIDE in info.tags:
            self.record_move(f"h{rank}", f"f{rank}", "r", color)
        elif MoveTag.CASTLE_QUEENSIDE in info.tags:
            self.record_move(f"a{rank}", f"d{rank}", "r", color)

    def reset(self) -> None:
        self.hidden_squares.clear()
        self.pieces.clear()

    def to_dict(self) -> Dict[str, object]:
        return {
            "hidden_squares": sorted(self.hidden_squares),
            "pieces": {sq: {"symbol": p.symbol, "color": p.color} for sq, p in sorted(self.pieces.items())},
        }
