from __future__ import annotations

import enum
import logging
from typing import Dict

import chess

_LOGGER = logging.getLogger(__name__)


class Control(str, enum.Enum):
    WHITE = "white"
    BLACK = "black"
    CONTESTED = "contested"


AttackMap = Dict[str, Control]


def classify(white: bool, black: bool):
    if white and black:
        return Control.CONTESTED
    if white:
        return Control.WHITE
    if black:
        return Control.BLACK
    return None


def build_attack_map(board: chess.Board) -> AttackMap:
    """Classify every square by which side attacks it.

    Squares nobody attacks are left out. A square whose query fails is skipped
    rather than spoiling the whole map.
    """
    attack_map: AttackMap = {}
    for square in chess.SQUARES:
        name = chess.square_name(square)
        try:
            control = classify(
                board.is_attacked_by(chess.WHITE, square),
                board.is_attacked_by(chess.BLACK, square),
            )
        except Exception:  # noqa: BLE001
            _LOGGER.debug("Attack query failed on %s", name, exc_info=True)
            continue
        if control is not None:
            attack_map[name] = control
    return attack_map


def to_dict(attack_map: AttackMap) -> Dict[str, str]:
    return {square: control.value for square, control in attack_map.items()}
