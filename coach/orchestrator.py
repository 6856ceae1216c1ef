from __future__ import annotations

import logging
import random
from typing import List, Optional, Sequence, Union

import chess

from .ai import OpponentPlayer
from .attack_map import build_attack_map
from .candidates import Candidate, assess, select_candidates, strategy_for
from .config import Settings
from .errors import MalformedInitialPosition, NarratorError, UnresolvableMove
from .game import Game, Termination
from .moves import ByCoordinates, ByNotation, MoveInfo, MoveRequest
from .narrator import VERDICT_FALLBACK, BoardAnalysis, Narrator, fallback_analysis
from .scheduler import Scheduler
from .session import GameSession, Phase

_LOGGER = logging.getLogger(__name__)


def requests_for(candidate: Candidate) -> List[MoveRequest]:
    """Notation first, then the explicit squares if the candidate carries them."""
    requests: List[MoveRequest] = [ByNotation(candidate.san)]
    if candidate.from_square and candidate.to_square:
        requests.append(ByCoordinates(candidate.from_square, candidate.to_square))
    return requests


class TurnOrchestrator:
    """Runs one game: human move, opponent reply, re-evaluation, repeat.

    The two "thinking" pauses and every call to the narrator are scheduled on
    the cooperative :class:`Scheduler` together with the session epoch, so work
    queued for a session that has since been reset never touches the new one.
    """

    def __init__(
        self,
        narrator: Narrator,
        settings: Optional[Settings] = None,
        scheduler: Optional[Scheduler] = None,
        opponent: Optional[OpponentPlayer] = None,
    ) -> None:
        self.settings = settings or Settings()
        self.narrator = narrator
        self.scheduler = scheduler or Scheduler()
        self.opponent = opponent or OpponentPlayer(
            rng=random.Random(self.settings.seed), error_rate=self.settings.opponent_error_rate
        )
        self._epoch = 0
        self.session = self._install(Game())

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def _next_session(self, game: Game) -> GameSession:
        self._epoch += 1
        return GameSession(game=game, epoch=self._epoch, human_color=game.board.turn)

    def _install(self, game: Game, analysis: Optional[BoardAnalysis] = None) -> GameSession:
        session = self._next_session(game)
        session.analysis = analysis
        self.session = session
        self._refresh_recommendations()
        termination = game.termination()
        if termination is Termination.UNRECOGNIZED:
            self._terminate()
        elif termination.is_standard:
            self._game_over()
        return session

    def reset(self) -> GameSession:
        _LOGGER.info("Session reset")
        return self._install(Game())

    def start(self, fen: Optional[str] = None) -> GameSession:
        """Begin a new game from ``fen`` (or the initial position)."""
        if not fen:
            return self._install(Game())
        try:
            game = Game.from_fen(fen)
        except MalformedInitialPosition as exc:
            _LOGGER.warning("%s; falling back to the starting position", exc)
            session = self._install(Game())
            session.say("That position could not be read, so I set up a standard game.")
            return session
        return self._install(game)

    def load_image(self, image: bytes, mime_type: str = "image/jpeg") -> GameSession:
        """Reset and ask the narrator to read a photographed board."""
        if self.session.pending_analysis:
            return self.session
        session = self._install(Game())
        session.pending_analysis = True
        self.scheduler.call_later(0, self._finish_analysis, session.epoch, image, mime_type)
        return session

    def _finish_analysis(self, epoch: int, image: bytes, mime_type: str) -> None:
        if self._stale(epoch):
            return
        try:
            analysis = self.narrator.analyze_image(image, mime_type)
            failed = False
        except NarratorError as exc:
            _LOGGER.warning("Vision analysis failed, using the starting position: %s", exc)
            analysis, failed = fallback_analysis(), True
        if self._stale(epoch):
            return

        try:
            game = Game.from_fen(analysis.fen)
            malformed = False
        except MalformedInitialPosition as exc:
            _LOGGER.warning("%s; falling back to the starting position", exc)
            game, malformed = Game(), True

        session = self._install(game, analysis)
        if failed or malformed:
            session.say(
                "I couldn't quite see the board perfectly, so I set up a standard game. "
                "You can still play!"
            )
        else:
            side = "White" if game.board.turn == chess.WHITE else "Black"
            session.say(f"The board is set. {side} to move. {analysis.summary}".strip())
            if analysis.opening_name:
                session.pending_history = True
                self.scheduler.call_later(
                    0, self._finish_history, session.epoch, analysis.opening_name
                )

    def _finish_history(self, epoch: int, opening: str) -> None:
        if self._stale(epoch):
            return
        try:
            match = self.narrator.find_historical_match(opening)
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning("Historical lookup failed: %s", exc)
            match = None
        if self._stale(epoch):
            return
        self.session.historical = match
        self.session.pending_history = False

    def _stale(self, epoch: int) -> bool:
        if epoch != self.session.epoch:
            _LOGGER.debug("Dropping continuation for stale epoch %s", epoch)
            return True
        return False

    # ------------------------------------------------------------------
    # Turn cycle
    # ------------------------------------------------------------------

    def execute_candidate(self, candidate: Union[str, Candidate]) -> GameSession:
        """Play the "pragmatic"/"artistic" recommendation, or a given candidate."""
        if isinstance(candidate, str):
            pair = self.session.candidates
            candidate = {"pragmatic": pair.pragmatic, "artistic": pair.artistic}[candidate]
        return self.execute(*requests_for(candidate))

    def execute(self, *requests: MoveRequest) -> GameSession:
        session = self.session
        if not session.accepts_moves:
            _LOGGER.info("Move request ignored in phase %s", session.phase.value)
            return session

        info = self._resolve(requests)
        if info is None:
            return session

        self._apply(info)
        session.phase = Phase.HUMAN_MOVE_APPLIED
        _LOGGER.info("Human played %s", info.san)
        if info.promotion:
            session.say(
                f"Pawn Promoted to {chess.piece_name(info.promotion).capitalize()}! "
                "A decisive advantage."
            )

        if self._check_end(info):
            return session
        session.phase = Phase.OPPONENT_THINKING
        self.scheduler.call_later(self.settings.opponent_delay_s, self._opponent_turn, session.epoch)
        return session

    def _resolve(self, requests: Sequence[MoveRequest]) -> Optional[MoveInfo]:
        for request in requests:
            try:
                return self.session.game.resolve(request)
            except UnresolvableMove as exc:
                _LOGGER.info("%s", exc)
        return None

    def _apply(self, info: MoveInfo) -> None:
        session = self.session
        session.game.play(info)
        session.overlay.record(info)
        if session.attack_map is not None:
            session.attack_map = build_attack_map(session.game.board)

    def _check_end(self, info: MoveInfo) -> bool:
        if info.captured == chess.KING:
            self._terminate()
            return True
        termination = self.session.game.termination()
        if termination is Termination.UNRECOGNIZED:
            self._terminate()
            return True
        if termination.is_standard:
            self._game_over()
            return True
        return False

    def _opponent_turn(self, epoch: int) -> None:
        if self._stale(epoch):
            return
        session = self.session
        info = self.opponent.choose_move(session.game.board)
        if info is None:
            self._terminate()
            return

        self._apply(info)
        session.phase = Phase.OPPONENT_MOVE_APPLIED
        _LOGGER.info("Opponent played %s", info.san)
        session.say(f"Opponent responded with {info.san}.")

        if self._check_end(info):
            return
        session.phase = Phase.RE_EVALUATING
        self.scheduler.call_later(self.settings.reevaluation_delay_s, self._reevaluate, epoch)

    def _reevaluate(self, epoch: int) -> None:
        if self._stale(epoch):
            return
        session = self.session
        self._refresh_recommendations()
        session.ply += 1
        if session.ply >= self.settings.ply_cap:
            self.request_verdict()
        session.phase = Phase.AWAITING_HUMAN

    def _refresh_recommendations(self) -> None:
        session = self.session
        board = session.game.board
        session.candidates = select_candidates(board)
        session.strategy = strategy_for(board, session.candidates, session.human_color)
        session.assessment = assess(board)

    def _terminate(self) -> None:
        _LOGGER.info("Game terminated abnormally at %s", self.session.game.get_full_fen())
        self.session.terminated = True
        self.session.phase = Phase.TERMINATED
        self.request_verdict()

    def _game_over(self) -> None:
        _LOGGER.info("Game over: %s", self.session.game.termination().value)
        self.session.phase = Phase.GAME_OVER
        self._refresh_recommendations()
        self.request_verdict()

    # ------------------------------------------------------------------
    # Narrative side calls
    # ------------------------------------------------------------------

    def request_verdict(self) -> None:
        session = self.session
        if session.pending_verdict or session.verdict is not None:
            return
        session.pending_verdict = True
        session.verdict_requests += 1
        self.scheduler.call_later(
            0, self._deliver_verdict, session.epoch, session.game.get_full_fen()
        )

    def _deliver_verdict(self, epoch: int, fen: str) -> None:
        if self._stale(epoch):
            return
        try:
            verdict = self.narrator.final_verdict(fen)
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning("Final verdict failed: %s", exc)
            verdict = VERDICT_FALLBACK
        if self._stale(epoch):
            return
        self.session.verdict = verdict
        self.session.pending_verdict = False

    def chat(self, text: str) -> GameSession:
        session = self.session
        if session.pending_chat or not text.strip():
            return session
        history = [(m.role, m.text) for m in session.messages]
        session.say(text, role="user")
        session.pending_chat = True
        self.scheduler.call_later(
            0, self._deliver_chat, session.epoch, history, session.game.get_full_fen(), text
        )
        return session

    def _deliver_chat(self, epoch: int, history: list, fen: str, text: str) -> None:
        if self._stale(epoch):
            return
        try:
            reply = self.narrator.chat(history, fen, text)
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning("Chat turn failed: %s", exc)
            reply = None
        if self._stale(epoch):
            return
        if reply:
            self.session.say(reply)
        self.session.pending_chat = False

    # ------------------------------------------------------------------
    # Toggles
    # ------------------------------------------------------------------

    def toggle_attack_map(self) -> GameSession:
        session = self.session
        if session.attack_map is not None:
            session.attack_map = None
        else:
            session.attack_map = build_attack_map(session.game.board)
        return session

    def continue_analysis(self) -> GameSession:
        """Clear the ply counter and verdict so play can go on past the cap."""
        session = self.session
        if session.pending_verdict or session.phase in (Phase.GAME_OVER, Phase.TERMINATED):
            return session
        session.ply = 0
        session.verdict = None
        return session

    def pump(self) -> int:
        return self.scheduler.run_due()
