from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Dict, List, Optional

import chess

from .errors import MalformedInitialPosition, UnresolvableMove
from .moves import ByCoordinates, ByNotation, MoveInfo, MoveRequest


class Termination(enum.Enum):
    NONE = "none"
    CHECKMATE = "checkmate"
    STALEMATE = "stalemate"
    INSUFFICIENT_MATERIAL = "insufficient_material"
    REPETITION = "repetition"
    FIFTY_MOVES = "fifty_moves"
    UNRECOGNIZED = "unrecognized"

    @property
    def is_standard(self) -> bool:
        return self not in (Termination.NONE, Termination.UNRECOGNIZED)


@dataclass(frozen=True)
class ResultSummary:
    title: str
    message: str


class Game:
    """Wraps a python-chess Board with the few operations the coach needs.

    Moves come in as SAN or as a from/to pair and are always resolved against
    the current position before anything is changed, so a failed resolution
    leaves the game exactly as it was.
    """

    def __init__(self, starting_fen: Optional[str] = None) -> None:
        self.board = chess.Board(fen=starting_fen) if starting_fen else chess.Board()

    @classmethod
    def from_fen(cls, fen: Optional[str]) -> "Game":
        if not fen:
            raise MalformedInitialPosition("Empty FEN")
        try:
            return cls(fen.strip())
        except ValueError as exc:
            raise MalformedInitialPosition(f"Invalid FEN {fen!r}: {exc}") from exc

    def get_full_fen(self) -> str:
        return self.board.fen()

    def get_turn_color(self) -> str:
        return "white" if self.board.turn == chess.WHITE else "black"

    def get_legal_moves(self) -> List[str]:
        return [self.board.san(move) for move in self.board.legal_moves]

    def resolve(self, request: MoveRequest) -> MoveInfo:
        """Turn a move request into a legal move of the current position.

        Raises UnresolvableMove if the request names no legal move.
        """
        if isinstance(request, ByNotation):
            try:
                move = self.board.parse_san(request.san)
            except ValueError as exc:
                raise UnresolvableMove(f"Illegal move: {request.san}") from exc
            return MoveInfo.describe(self.board, move)

        if isinstance(request, ByCoordinates):
            try:
                from_sq = chess.parse_square(request.from_square)
                to_sq = chess.parse_square(request.to_square)
            except ValueError as exc:
                raise UnresolvableMove(
                    f"Illegal move: {request.from_square}{request.to_square}"
                ) from exc
            for promotion in (None, chess.QUEEN):
                move = chess.Move(from_sq, to_sq, promotion=promotion)
                if move in self.board.legal_moves:
                    return MoveInfo.describe(self.board, move)
            raise UnresolvableMove(f"Illegal move: {request.from_square}{request.to_square}")

        raise UnresolvableMove(f"Unsupported move request: {request!r}")

    def play(self, info: MoveInfo) -> None:
        self.board.push(info.move)

    def termination(self) -> Termination:
        board = self.board
        if board.king(chess.WHITE) is None or board.king(chess.BLACK) is None:
            return Termination.UNRECOGNIZED
        if board.is_checkmate():
            return Termination.CHECKMATE
        if board.is_stalemate():
            return Termination.STALEMATE
        if board.is_insufficient_material():
            return Termination.INSUFFICIENT_MATERIAL
        if board.is_repetition(3):
            return Termination.REPETITION
        if board.halfmove_clock >= 100:
            return Termination.FIFTY_MOVES
        if not any(board.generate_legal_moves()):
            return Termination.UNRECOGNIZED
        return Termination.NONE

    def check_square(self) -> Optional[str]:
        if not self.board.is_check():
            return None
        king_sq = self.board.king(self.board.turn)
        return chess.square_name(king_sq) if king_sq is not None else None

    def result_summary(self, human_color: chess.Color, terminated: bool) -> Optional[ResultSummary]:
        termination = self.termination()
        if terminated and termination is not Termination.CHECKMATE:
            return ResultSummary(
                "Critical King Safety Failure",
                "The King has fallen or the position is in an illegal state.",
            )
        if termination is Termination.CHECKMATE:
            # The side to move is the one that got mated
            if self.board.turn != human_color:
                return ResultSummary(
                    "Victory Achieved",
                    "Checkmate! You have crushed the opponent's defense.",
                )
            return ResultSummary("Defeat", "Checkmate. The opponent found a winning line.")
        if termination is Termination.STALEMATE:
            return ResultSummary(
                "Stalemate", "The King is safe but trapped. No legal moves available. It's a draw."
            )
        if termination is Termination.INSUFFICIENT_MATERIAL:
            return ResultSummary(
                "Insufficient Material", "Dead position. Neither side can force a checkmate."
            )
        if termination is Termination.REPETITION:
            return ResultSummary(
                "Draw by Repetition", "The same position has occurred three times."
            )
        if termination is Termination.FIFTY_MOVES:
            return ResultSummary(
                "Draw by 50-Move Rule", "Fifty moves without a capture or pawn move."
            )
        return None

    def snapshot(self) -> Dict[str, object]:
        last_uci: Optional[str] = None
        if self.board.move_stack:
            last_uci = self.board.move_stack[-1].uci()

        return {
            "fen": self.get_full_fen(),
            "turn": self.get_turn_color(),
            "legal_moves": self.get_legal_moves(),
            "termination": self.termination().value,
            "last_move": last_uci,
            "in_check": self.board.is_check(),
            "check_square": self.check_square(),
        }
