from __future__ import annotations

from typing import Dict, Optional

import chess

from .moves import MoveInfo, MoveTag


class Evaluator:
    """Static material balance and per-move tactical heuristics.

    Positive material scores favor White. Move scores are from the mover's
    point of view and only look at the move itself, never at replies.
    """

    MATERIAL_VALUES: Dict[chess.PieceType, int] = {
        chess.PAWN: 10,
        chess.KNIGHT: 32,
        chess.BISHOP: 33,
        chess.ROOK: 50,
        chess.QUEEN: 90,
        chess.KING: 2000,
    }

    CENTER_SQUARES = frozenset({"d4", "e4", "d5", "e5"})

    MATE_BONUS = 100000
    PROMOTION_BONUS = 2000
    CAPTURE_MULTIPLIER = 10
    FAVORABLE_TRADE_BONUS = 50
    UNFAVORABLE_TRADE_PENALTY = 5
    CHECK_BONUS = 40
    CENTER_BONUS = 25
    CASTLE_BONUS = 70

    @classmethod
    def piece_value(cls, piece_type: Optional[chess.PieceType]) -> int:
        if piece_type is None:
            return 0
        return cls.MATERIAL_VALUES.get(piece_type, 0)

    @classmethod
    def evaluate(cls, board: chess.Board) -> int:
        score = 0
        for piece_type, value in cls.MATERIAL_VALUES.items():
            score += value * len(board.pieces(piece_type, chess.WHITE))
            score -= value * len(board.pieces(piece_type, chess.BLACK))
        return score

    @classmethod
    def score_move(cls, info: MoveInfo) -> int:
        score = 0
        if info.is_mate:
            score += cls.MATE_BONUS
        if MoveTag.PROMOTION in info.tags:
            score += cls.PROMOTION_BONUS

        if info.is_capture:
            victim = cls.piece_value(info.captured)
            attacker = cls.piece_value(info.piece)
            score += victim * cls.CAPTURE_MULTIPLIER
            if victim > attacker:
                score += cls.FAVORABLE_TRADE_BONUS
            if attacker > victim and not info.is_mate:
                score -= cls.UNFAVORABLE_TRADE_PENALTY

        if MoveTag.CHECK in info.tags:
            score += cls.CHECK_BONUS
        if info.to_square in cls.CENTER_SQUARES:
            score += cls.CENTER_BONUS
        if info.is_castle:
            score += cls.CASTLE_BONUS
        return score
