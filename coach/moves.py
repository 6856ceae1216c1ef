from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import FrozenSet, Optional, Union

import chess


class MoveTag(enum.Enum):
    CAPTURE = "capture"
    CHECK = "check"
    MATE = "mate"
    CASTLE_KINGSIDE = "castle-kingside"
    CASTLE_QUEENSIDE = "castle-queenside"
    PROMOTION = "promotion"


CASTLE_TAGS = frozenset({MoveTag.CASTLE_KINGSIDE, MoveTag.CASTLE_QUEENSIDE})


@dataclass(frozen=True)
class MoveInfo:
    """A legal move together with everything the heuristics need to know about it.

    Built from the position the move was generated in; never mutated afterwards.
    """

    move: chess.Move
    san: str
    from_square: str
    to_square: str
    piece: chess.PieceType
    color: chess.Color
    captured: Optional[chess.PieceType]
    promotion: Optional[chess.PieceType]
    tags: FrozenSet[MoveTag]

    @classmethod
    def describe(cls, board: chess.Board, move: chess.Move) -> "MoveInfo":
        piece = board.piece_at(move.from_square)
        if piece is None:
            raise ValueError(f"No piece on {chess.square_name(move.from_square)}")

        tags = set()
        captured: Optional[chess.PieceType] = None
        if board.is_capture(move):
            tags.add(MoveTag.CAPTURE)
            if board.is_en_passant(move):
                captured = chess.PAWN
            else:
                captured = board.piece_type_at(move.to_square)
        if board.gives_check(move):
            tags.add(MoveTag.CHECK)
            after = board.copy(stack=False)
            after.push(move)
            if after.is_checkmate():
                tags.add(MoveTag.MATE)
        if board.is_kingside_castling(move):
            tags.add(MoveTag.CASTLE_KINGSIDE)
        elif board.is_queenside_castling(move):
            tags.add(MoveTag.CASTLE_QUEENSIDE)
        if move.promotion:
            tags.add(MoveTag.PROMOTION)

        return cls(
            move=move,
            san=board.san(move),
            from_square=chess.square_name(move.from_square),
            to_square=chess.square_name(move.to_square),
            piece=piece.piece_type,
            color=piece.color,
            captured=captured,
            promotion=move.promotion,
            tags=frozenset(tags),
        )

    @property
    def is_mate(self) -> bool:
        return MoveTag.MATE in self.tags

    @property
    def is_capture(self) -> bool:
        return MoveTag.CAPTURE in self.tags

    @property
    def is_castle(self) -> bool:
        return bool(self.tags & CASTLE_TAGS)

    @property
    def display_piece(self) -> chess.PieceType:
        """Piece that stands on the destination square once the move is played."""
        return self.promotion or self.piece


def legal_moves(board: chess.Board) -> list:
    """All legal moves of the side to move, in python-chess enumeration order."""
    return [MoveInfo.describe(board, move) for move in board.legal_moves]


@dataclass(frozen=True)
class ByNotation:
    san: str


@dataclass(frozen=True)
class ByCoordinates:
    from_square: str
    to_square: str


MoveRequest = Union[ByNotation, ByCoordinates]
