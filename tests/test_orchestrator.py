from __future__ import annotations

import chess

from coach import ByCoordinates, ByNotation, Candidate, Phase, Settings, TurnOrchestrator
from coach.attack_map import build_attack_map
from coach.narrator import VERDICT_FALLBACK
from coach.overlay import OverlayPiece
from conftest import BACK_RANK_FEN, CASTLING_FEN, FOOLS_MATE_FEN, make_analysis


def test_fresh_session_awaits_the_human(coach):
    session = coach.session
    assert session.phase is Phase.AWAITING_HUMAN
    assert session.ply == 0
    assert session.candidates.pragmatic.san != session.candidates.artistic.san


def test_full_cycle_after_human_plays_e4(coach, clock):
    session = coach.execute_candidate(Candidate("e4", "Positional Move", "Center.", "e2", "e4"))

    assert session.phase is Phase.OPPONENT_THINKING
    assert session.overlay.hidden_squares == {"e2", "e4"}
    assert session.overlay.pieces["e4"] == OverlayPiece("p", "w")
    assert session.ply == 0

    # Nothing happens before the thinking delay has elapsed
    coach.pump()
    assert session.phase is Phase.OPPONENT_THINKING

    clock.advance(1.0)
    coach.pump()
    assert session.phase is Phase.RE_EVALUATING
    assert session.game.board.turn == chess.WHITE
    assert session.messages[-1].text.startswith("Opponent responded with")
    assert session.ply == 0

    clock.advance(2.0)
    coach.pump()
    assert session.phase is Phase.AWAITING_HUMAN
    assert session.ply == 1
    board = session.game.board
    for candidate in (session.candidates.pragmatic, session.candidates.artistic):
        assert board.parse_san(candidate.san) in board.legal_moves


def test_opponent_squares_become_visible_before_reevaluation(coach, scheduler, clock):
    coach.execute(ByNotation("d4"))
    clock.advance(1.0)
    coach.pump()
    reply = coach.session.game.board.peek()
    assert chess.square_name(reply.from_square) in coach.session.overlay.hidden_squares
    assert chess.square_name(reply.to_square) in coach.session.overlay.hidden_squares
    assert scheduler.pending() == 1


def test_no_second_move_while_a_cycle_is_in_flight(coach, scheduler):
    coach.execute(ByNotation("e4"))
    fen = coach.session.game.get_full_fen()
    coach.execute(ByNotation("d4"))
    assert coach.session.game.get_full_fen() == fen
    assert scheduler.pending() == 1


def test_unresolvable_request_is_a_no_op(coach, scheduler):
    before = coach.session.to_dict()
    session = coach.execute(ByNotation("Qh5"), ByCoordinates("e2", "e5"))
    assert session is coach.session
    assert session.to_dict() == before
    assert scheduler.pending() == 0


def test_coordinate_fallback_is_used_when_notation_fails(coach):
    coach.execute_candidate(Candidate("Zz9", "", "", "e2", "e4"))
    assert coach.session.phase is Phase.OPPONENT_THINKING
    assert coach.session.overlay.pieces["e4"] == OverlayPiece("p", "w")


def test_checkmated_position_requests_exactly_one_verdict(coach, scheduler, narrator):
    session = coach.start(FOOLS_MATE_FEN)
    assert session.phase is Phase.GAME_OVER
    assert session.pending_verdict is True
    assert session.verdict_requests == 1

    coach.request_verdict()
    assert session.verdict_requests == 1

    scheduler.run_all()
    assert session.pending_verdict is False
    assert session.verdict == "White is winning on material."
    assert narrator.verdict_calls == [FOOLS_MATE_FEN]

    coach.request_verdict()
    scheduler.run_all()
    assert len(narrator.verdict_calls) == 1


def test_human_mate_ends_the_game_without_an_opponent_reply(coach, scheduler, narrator):
    coach.start(BACK_RANK_FEN)
    session = coach.execute_candidate("artistic")
    assert session.phase is Phase.GAME_OVER
    assert session.terminated is False
    scheduler.run_all()
    assert session.game.board.is_checkmate()
    assert len(narrator.verdict_calls) == 1
    assert session.game.result_summary(session.human_color, session.terminated).title == "Victory Achieved"


def test_king_capture_terminates(coach, scheduler):
    # Black was left in check with White to move: the rook can take the king
    coach.start("4k3/8/8/8/8/8/8/4R1K1 w - - 0 1")
    session = coach.execute(ByCoordinates("e1", "e8"))
    assert session.phase is Phase.TERMINATED
    assert session.terminated is True
    assert session.pending_verdict is True
    scheduler.run_all()
    assert session.verdict is not None


def test_castling_records_king_and_rook(coach):
    coach.start(CASTLING_FEN)
    session = coach.execute(ByNotation("O-O"))
    assert {"e1", "g1", "h1", "f1"} <= session.overlay.hidden_squares
    assert session.overlay.pieces["g1"] == OverlayPiece("k", "w")
    assert session.overlay.pieces["f1"] == OverlayPiece("r", "w")
    assert "h1" not in session.overlay.pieces


def test_promotion_adds_a_message(coach):
    coach.start("7k/P7/8/8/8/8/8/K7 w - - 0 1")
    session = coach.execute(ByCoordinates("a7", "a8"))
    assert session.overlay.pieces["a8"] == OverlayPiece("q", "w")
    assert "Promoted to Queen" in session.messages[-1].text


def test_reset_drops_scheduled_work(coach, scheduler):
    coach.execute(ByNotation("e4"))
    old_epoch = coach.session.epoch
    coach.reset()
    assert coach.session.epoch != old_epoch
    scheduler.run_all()
    assert coach.session.game.get_full_fen() == chess.STARTING_FEN
    assert coach.session.phase is Phase.AWAITING_HUMAN
    assert not coach.session.overlay.hidden_squares


def test_ply_cap_requests_verdict_but_play_continues(narrator, scheduler):
    coach = TurnOrchestrator(narrator, settings=Settings(seed=3, ply_cap=1), scheduler=scheduler)
    coach.execute(ByNotation("e4"))
    scheduler.run_all()
    session = coach.session
    assert session.ply == 1
    assert session.phase is Phase.AWAITING_HUMAN
    assert session.verdict is not None
    assert len(narrator.verdict_calls) == 1

    coach.continue_analysis()
    assert session.ply == 0
    assert session.verdict is None

    coach.execute_candidate("pragmatic")
    assert session.phase is Phase.OPPONENT_THINKING


def test_attack_map_follows_position_changes(coach, scheduler):
    session = coach.toggle_attack_map()
    assert session.attack_map == build_attack_map(chess.Board())

    coach.execute(ByNotation("e4"))
    assert session.attack_map == build_attack_map(session.game.board)
    scheduler.run_all()
    assert session.attack_map == build_attack_map(session.game.board)

    coach.toggle_attack_map()
    assert session.attack_map is None


def test_malformed_fen_falls_back_to_start(coach):
    session = coach.start("definitely not fen")
    assert session.game.get_full_fen() == chess.STARTING_FEN
    assert "standard game" in session.messages[-1].text


def test_image_analysis_installs_the_position(coach, scheduler, narrator):
    fen = "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1"
    narrator.analysis = make_analysis(fen)
    session = coach.load_image(b"jpeg-bytes")
    assert session.pending_analysis is True
    assert not session.accepts_moves

    scheduler.run_all()
    session = coach.session
    assert session.game.get_full_fen() == fen
    assert session.human_color == chess.BLACK
    assert session.analysis.opening_name == "Ruy Lopez"
    assert session.messages[0].text.startswith("The board is set. Black to move.")
    assert narrator.history_calls == ["Ruy Lopez"]
    assert session.historical.players == "Kasparov vs Topalov"
    assert session.accepts_moves


def test_image_analysis_failure_loads_recovery_position(coach, scheduler, narrator):
    narrator.analysis = None
    coach.load_image(b"blurry")
    scheduler.run_all()
    session = coach.session
    assert session.game.get_full_fen() == chess.STARTING_FEN
    assert session.analysis.strategy.theme == "Recovery Mode"
    assert "couldn't quite see the board" in session.messages[0].text
    assert narrator.history_calls == []


def test_unparsable_vision_fen_falls_back(coach, scheduler, narrator):
    narrator.analysis = make_analysis("8/8/banana")
    coach.load_image(b"jpeg")
    scheduler.run_all()
    assert coach.session.game.get_full_fen() == chess.STARTING_FEN
    assert "couldn't quite see the board" in coach.session.messages[0].text


def test_stale_analysis_is_discarded_after_reset(coach, scheduler, narrator):
    narrator.analysis = make_analysis("4k3/8/8/8/8/8/8/Q3K3 w - - 0 1")
    coach.load_image(b"jpeg")
    coach.reset()
    scheduler.run_all()
    assert narrator.analysis_calls == []
    assert coach.session.game.get_full_fen() == chess.STARTING_FEN


def test_chat_round_trip(coach, scheduler, narrator):
    coach.session.say("Welcome.")
    session = coach.chat("Nf3?")
    assert session.pending_chat is True
    coach.chat("ignored while waiting")
    scheduler.run_all()
    assert session.pending_chat is False
    assert [m.text for m in session.messages] == ["Welcome.", "Nf3?", "Why Nf3??"]
    history, fen, message = narrator.chat_calls[0]
    assert history == [("model", "Welcome.")]
    assert fen == chess.STARTING_FEN
    assert len(narrator.chat_calls) == 1


def test_verdict_failure_uses_canned_text(scheduler):
    class BrokenNarrator:
        def final_verdict(self, fen):
            raise RuntimeError("boom")

    coach = TurnOrchestrator(BrokenNarrator(), settings=Settings(seed=1), scheduler=scheduler)
    coach.start(FOOLS_MATE_FEN)
    scheduler.run_all()
    assert coach.session.verdict == VERDICT_FALLBACK
    assert coach.session.pending_verdict is False


def test_fifty_move_draw_is_not_declared_early(coach):
    session = coach.start("4k3/8/8/8/8/8/8/R3K3 w - - 99 80")
    assert session.phase is Phase.AWAITING_HUMAN
    assert session.pending_verdict is False


def test_move_before_threefold_keeps_the_game_going(coach):
    board = coach.session.game.board
    for san in ["Nf3", "Nf6", "Ng1", "Ng8", "Nf3", "Nf6"]:
        board.push_san(san)
    session = coach.execute(ByNotation("Ng1"))
    assert session.phase is Phase.OPPONENT_THINKING
    assert session.pending_verdict is False
