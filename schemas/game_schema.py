from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from schemas.catalog_schema import Vehicle


class GameMode(str, Enum):
    daily = "daily"
    easy = "easy"
    hard = "hard"


class ModeConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    zoom_percent: int
    max_guesses: int
    require_year: bool = False
    # Presentation flags
    prefill_make: bool = False
    show_scoreboard: bool = True


class GuessRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    make: str
    model: str
    year: str = ""


class ClueView(BaseModel):
    """Cosmetic crop parameters, re-rolled for every puzzle."""
    model_config = ConfigDict(frozen=True)

    zoom_percent: int
    pos_x: float = 50.0
    pos_y: float = 50.0


class PuzzleStatus(str, Enum):
    active = "active"
    won = "won"
    lost = "lost"


class SessionState(BaseModel):
    """
    Whole state of one mode run. Immutable: every transition in
    utils.session_machine returns a new instance.
    """
    model_config = ConfigDict(frozen=True)

    mode: GameMode
    puzzle_index: int = 0
    session_results: tuple[bool, ...] = ()
    current_puzzle: Vehicle
    guesses_remaining: int
    has_won: bool = False
    guesses: tuple[GuessRecord, ...] = ()
    clue: ClueView

    @property
    def status(self) -> PuzzleStatus:
        if self.has_won:
            return PuzzleStatus.won
        if self.guesses_remaining <= 0:
            return PuzzleStatus.lost
        return PuzzleStatus.active

    @property
    def is_finished(self) -> bool:
        return self.status != PuzzleStatus.active


class GuessOutcome(str, Enum):
    win = "WIN"
    incorrect_continue = "INCORRECT_CONTINUE"
    loss_out_of_guesses = "LOSS_OUT_OF_GUESSES"
    rejected = "REJECTED"


class GuessResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    outcome: GuessOutcome
    guesses_remaining: int
    message: Optional[str] = None

    @property
    def accepted(self) -> bool:
        return self.outcome != GuessOutcome.rejected

    @property
    def is_terminal(self) -> bool:
        return self.outcome in (GuessOutcome.win, GuessOutcome.loss_out_of_guesses)


class DailyStatePayload(BaseModel):
    """Persisted daily entry. Field names match the browser storage format."""
    model_config = ConfigDict(populate_by_name=True)

    guesses_remaining: int = Field(alias="guessesRemaining", ge=0)
    has_won: bool = Field(alias="hasWon")
    guesses: list[GuessRecord] = []


# === Requests / responses ===

class StartRequest(BaseModel):
    mode: GameMode


class GuessRequest(BaseModel):
    make: str = ""
    model: str = ""
    year: str = ""


class AnswerView(BaseModel):
    make: str
    model: str
    year: str


class ClueImageView(BaseModel):
    image_url: str
    zoom_percent: int
    position: str


class GameView(BaseModel):
    mode: GameMode
    puzzle_number: int
    session_size: int
    session_results: list[bool]
    scoreboard: list[str] = []
    guesses_remaining: int
    max_guesses: int
    has_won: bool
    status: PuzzleStatus
    guesses: list[GuessRecord]
    require_year: bool
    prefilled_make: Optional[str] = None
    clue: ClueImageView
    answer: Optional[AnswerView] = None
    can_advance: bool = False
    next_starts_new_session: bool = False


class GuessResponse(BaseModel):
    outcome: GuessOutcome
    message: Optional[str] = None
    game: GameView
