from __future__ import annotations

import chess
import pytest

from coach import Scheduler, Settings, TurnOrchestrator
from coach.candidates import Candidate, StrategyGuide, VibeLevel
from coach.errors import NarratorError
from coach.narrator import BoardAnalysis, HistoricalGame

FOOLS_MATE_FEN = "rnb1kbnr/pppp1ppp/8/4p3/6Pq/5P2/PPPPP2P/RNBQKBNR w KQkq - 1 3"
BACK_RANK_FEN = "6k1/5ppp/8/8/8/8/8/R5K1 w - - 0 1"
CASTLING_FEN = "r3k2r/pppppppp/8/8/8/8/PPPPPPPP/R3K2R w KQkq - 0 1"
# White to move with exactly two legal moves: Nxg3 and Nf2
TWO_MOVES_FEN = "8/8/8/8/4b3/k5p1/P7/K6N w - - 0 1"


class ManualClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeNarrator:
    def __init__(self) -> None:
        self.analysis = None
        self.historical = None
        self.verdict_calls = []
        self.chat_calls = []
        self.analysis_calls = []
        self.history_calls = []

    def analyze_image(self, image, mime_type="image/jpeg"):
        self.analysis_calls.append((image, mime_type))
        if self.analysis is None:
            raise NarratorError("vision service unavailable")
        return self.analysis

    def chat(self, history, fen, message):
        self.chat_calls.append((list(history), fen, message))
        return f"Why {message}?"

    def final_verdict(self, fen):
        self.verdict_calls.append(fen)
        return "White is winning on material."

    def find_historical_match(self, opening):
        self.history_calls.append(opening)
        return self.historical


def make_analysis(fen: str = chess.STARTING_FEN, opening: str = "Ruy Lopez") -> BoardAnalysis:
    return BoardAnalysis(
        fen=fen,
        turn="w",
        vibe_score=60,
        vibe_label=VibeLevel.FLOW,
        pragmatic=Candidate("e4", "Positional Move", "Take the center."),
        artistic=Candidate("f4", "Positional Move", "Gambit spirit."),
        strategy=StrategyGuide("Opening", "Develop.", "Knights before bishops."),
        summary="A quiet opening.",
        opening_name=opening,
    )


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def scheduler(clock):
    return Scheduler(clock=clock)


@pytest.fixture
def narrator():
    narrator = FakeNarrator()
    narrator.historical = HistoricalGame(
        players="Kasparov vs Topalov",
        year="1999",
        opening="Pirc Defense",
        description="A famous rook sacrifice.",
    )
    return narrator


@pytest.fixture
def settings():
    return Settings(seed=7)


@pytest.fixture
def coach(narrator, settings, scheduler):
    return TurnOrchestrator(narrator, settings=settings, scheduler=scheduler)
