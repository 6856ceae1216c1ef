from __future__ import annotations

import chess

from coach import MoveInfo, OverlayState
from coach.attack_map import Control, build_attack_map, classify
from coach.overlay import OverlayPiece
from conftest import CASTLING_FEN


def _play(board: chess.Board, overlay: OverlayState, san: str) -> MoveInfo:
    info = MoveInfo.describe(board, board.parse_san(san))
    overlay.record(info)
    board.push(info.move)
    return info


def test_record_move_masks_both_squares():
    overlay = OverlayState()
    overlay.record_move("e2", "e4", "p", "w")
    assert overlay.hidden_squares == {"e2", "e4"}
    assert overlay.pieces == {"e4": OverlayPiece("p", "w")}


def test_record_move_is_idempotent():
    overlay = OverlayState()
    overlay.record_move("g1", "f3", "n", "w")
    overlay.record_move("g1", "f3", "n", "w")
    assert overlay.hidden_squares == {"g1", "f3"}
    assert overlay.pieces == {"f3": OverlayPiece("n", "w")}


def test_overlay_tracks_a_sequence_of_moves():
    board = chess.Board()
    overlay = OverlayState()
    touched = set()
    for san in ["e4", "d5", "exd5", "Qxd5", "Nc3", "Qd8", "Nf3", "Nf6", "Nd5", "Nxd5"]:
        info = _play(board, overlay, san)
        touched |= {info.from_square, info.to_square}

    assert touched <= overlay.hidden_squares
    # Every overlay piece matches what is really on the board
    for square, piece in overlay.pieces.items():
        real = board.piece_at(chess.parse_square(square))
        assert real is not None
        assert real.symbol().lower() == piece.symbol
    # Vacated squares carry no overlay piece
    assert "d5" in overlay.pieces and overlay.pieces["d5"].color == "b"
    assert "c3" not in overlay.pieces
    assert "d8" in overlay.pieces and overlay.pieces["d8"].symbol == "q"


def test_kingside_castle_moves_the_rook_too():
    board = chess.Board(CASTLING_FEN)
    overlay = OverlayState()
    _play(board, overlay, "O-O")
    assert {"e1", "g1", "h1", "f1"} <= overlay.hidden_squares
    assert overlay.pieces == {"g1": OverlayPiece("k", "w"), "f1": OverlayPiece("r", "w")}


def test_queenside_castle_for_black():
    board = chess.Board(CASTLING_FEN.replace(" w ", " b "))
    overlay = OverlayState()
    _play(board, overlay, "O-O-O")
    assert overlay.pieces == {"c8": OverlayPiece("k", "b"), "d8": OverlayPiece("r", "b")}
    assert {"e8", "c8", "a8", "d8"} <= overlay.hidden_squares


def test_promotion_draws_the_new_piece():
    board = chess.Board("7k/P7/8/8/8/8/8/K7 w - - 0 1")
    overlay = OverlayState()
    _play(board, overlay, "a8=Q+")
    assert overlay.pieces == {"a8": OverlayPiece("q", "w")}


def test_reset_clears_everything():
    overlay = OverlayState()
    overlay.record_move("e2", "e4", "p", "w")
    overlay.reset()
    assert not overlay.hidden_squares
    assert not overlay.pieces


def test_classify():
    assert classify(True, True) is Control.CONTESTED
    assert classify(True, False) is Control.WHITE
    assert classify(False, True) is Control.BLACK
    assert classify(False, False) is None


def test_attack_map_of_starting_position():
    attack_map = build_attack_map(chess.Board())
    assert attack_map["e3"] is Control.WHITE
    assert attack_map["f6"] is Control.BLACK
    assert "e4" not in attack_map
    assert Control.CONTESTED not in attack_map.values()


def test_attack_map_marks_contested_squares():
    board = chess.Board()
    for san in ["e4", "d5"]:
        board.push_san(san)
    attack_map = build_attack_map(board)
    assert attack_map["d5"] is Control.CONTESTED
    assert attack_map["e4"] is Control.BLACK
    for square, control in attack_map.items():
        white = board.is_attacked_by(chess.WHITE, chess.parse_square(square))
        black = board.is_attacked_by(chess.BLACK, chess.parse_square(square))
        assert (control is Control.CONTESTED) == (white and black)


class _FlakyBoard(chess.Board):
    def is_attacked_by(self, color, square, occupied=None):
        if square == chess.E3:
            raise RuntimeError("query failed")
        return super().is_attacked_by(color, square)


def test_attack_map_skips_squares_whose_query_fails():
    attack_map = build_attack_map(_FlakyBoard())
    assert "e3" not in attack_map
    assert attack_map["d3"] is Control.WHITE
