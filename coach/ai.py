from __future__ import annotations

import random
from dataclasses import dataclass
from typing import List, Optional

import chess

from .evaluator import Evaluator
from .moves import MoveInfo, legal_moves


WIN_SCORE = 100000
LOSS_SCORE = -100000
QUEEN_LOSS_PENALTY = 500
RISK_WEIGHT = 0.8


@dataclass
class ScoredMove:
    info: MoveInfo
    score: float


def lookahead_score(info: MoveInfo, board: chess.Board) -> float:
    """Score a move by its own merit minus the opponent's best immediate reply.

    This is a single adversarial ply, not a search: the reply is judged with
    the same move heuristics, so a move that hangs the queen or allows mate is
    discounted heavily. ``board`` is the position the move was generated in and
    is left untouched.
    """
    immediate = Evaluator.score_move(info)
    if info.is_mate:
        return WIN_SCORE

    after = board.copy()
    after.push(info.move)
    replies = legal_moves(after)
    if not replies:
        return immediate

    risk = float("-inf")
    for reply in replies:
        if reply.is_mate:
            return LOSS_SCORE
        reply_score = Evaluator.score_move(reply)
        if reply.captured == chess.QUEEN:
            reply_score += QUEEN_LOSS_PENALTY
        risk = max(risk, reply_score)

    return immediate - RISK_WEIGHT * risk


def rank(scored: List[ScoredMove]) -> List[ScoredMove]:
    # sorted() is stable with reverse=True, so equal scores keep enumeration order
    return sorted(scored, key=lambda s: s.score, reverse=True)


def score_legal_moves(board: chess.Board) -> List[ScoredMove]:
    """Lookahead-score every legal move of the side to move, best first."""
    return rank([ScoredMove(info, lookahead_score(info, board)) for info in legal_moves(board)])


class OpponentPlayer:
    """Automated opponent that plays the heuristic best move most of the time.

    It never looks at replies and, with probability ``error_rate``, settles for
    the second-ranked move instead, which stands in for a human oversight.
    """

    def __init__(self, rng: Optional[random.Random] = None, error_rate: float = 0.3) -> None:
        self.rng = rng or random.Random()
        self.error_rate = error_rate

    def candidate_moves(self, board: chess.Board) -> List[ScoredMove]:
        # Under-promotions collapse into the queen promotion
        infos = [info for info in legal_moves(board) if info.promotion in (None, chess.QUEEN)]
        return rank([ScoredMove(info, Evaluator.score_move(info)) for info in infos])

    def choose_move(self, board: chess.Board) -> Optional[MoveInfo]:
        ranked = self.candidate_moves(board)
        if not ranked:
            return None
        index = 0
        if len(ranked) > 1 and self.rng.random() < self.error_rate:
            index = 1
        return ranked[index].info
