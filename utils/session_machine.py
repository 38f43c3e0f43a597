"""
Session state machine for one mode run.

Every function takes a SessionState and returns a new one; nothing here
touches storage, the clock or the web layer, so the whole game can be driven
from tests. Per puzzle:

    ACTIVE --correct guess-->                 WON  (terminal)
    ACTIVE --wrong guess, guesses left-->     ACTIVE
    ACTIVE --wrong guess, none left-->        LOST (terminal)

WON and LOST accept an advance, which starts the next puzzle of the session
(or a new session once SESSION_SIZE puzzles have been played).
"""
import logging
import random
from typing import Optional, Sequence

from config import settings
from repository.daily_state_repo import DailyStateStore
from schemas.catalog_schema import Vehicle
from schemas.game_schema import (
    DailyStatePayload,
    GameMode,
    GuessOutcome,
    GuessRecord,
    GuessResult,
    SessionState,
)
from utils.errors import EmptyCatalog, InvalidGuessInput
from utils.game_modes import get_mode_config
from utils.puzzle_selector import roll_clue, select_puzzle

logger = logging.getLogger(__name__)


def _session_size(session_size: Optional[int]) -> int:
    return session_size if session_size is not None else settings.SESSION_SIZE


def _new_puzzle(
    mode: GameMode,
    puzzle_index: int,
    session_results: tuple[bool, ...],
    date_str: str,
    catalog: Sequence[Vehicle],
    rng,
) -> SessionState:
    config = get_mode_config(mode)
    return SessionState(
        mode=mode,
        puzzle_index=puzzle_index,
        session_results=session_results,
        current_puzzle=select_puzzle(mode, date_str, catalog, rng),
        guesses_remaining=config.max_guesses,
        has_won=False,
        guesses=(),
        clue=roll_clue(mode, rng),
    )


def start_session(
    mode: GameMode | str,
    date_str: str,
    catalog: Sequence[Vehicle],
    store: Optional[DailyStateStore] = None,
    rng: Optional[random.Random] = None,
) -> SessionState:
    """
    Begins a new run of `mode` with an empty scoreboard and starts its first
    puzzle (index 1). The car and the clue are drawn once.

    For the daily mode a persisted entry for `date_str` is restored instead:
    guesses remaining, win flag and guesses are taken verbatim and the car is
    recomputed from the date.
    """
    if not catalog:
        raise EmptyCatalog("Catalog has no vehicles")
    mode = GameMode(mode)

    if mode == GameMode.daily and store is not None:
        saved = store.load(date_str)
        if saved is not None:
            logger.info("Restoring daily puzzle for %s", date_str)
            state = restore_daily(saved, date_str, catalog, rng)
            if state.is_finished:
                state = record_outcome(state, state.has_won)
            return state

    return _new_puzzle(mode, 1, (), date_str, catalog, rng)


def restore_daily(
    saved: DailyStatePayload,
    date_str: str,
    catalog: Sequence[Vehicle],
    rng: Optional[random.Random] = None,
) -> SessionState:
    state = _new_puzzle(GameMode.daily, 1, (), date_str, catalog, rng)
    return state.model_copy(update={
        "guesses_remaining": max(0, saved.guesses_remaining),
        "has_won": saved.has_won,
        "guesses": tuple(saved.guesses),
    })


def start_puzzle(
    state: SessionState,
    date_str: str,
    catalog: Sequence[Vehicle],
    rng: Optional[random.Random] = None,
    session_size: Optional[int] = None,
) -> SessionState:
    """
    Moves to the next puzzle. A full session wraps transparently: the index
    goes back to the first slot and the scoreboard is emptied.
    """
    size = _session_size(session_size)
    if state.puzzle_index >= size:
        return _new_puzzle(state.mode, 1, (), date_str, catalog, rng)
    return _new_puzzle(state.mode, state.puzzle_index + 1, state.session_results, date_str, catalog, rng)


def validate_guess(state: SessionState, make: str, model: str, year: str = "") -> GuessRecord:
    """Trimmed guess; raises InvalidGuessInput when a required field is blank."""
    make, model, year = (make or "").strip(), (model or "").strip(), (year or "").strip()
    if not make or not model:
        raise InvalidGuessInput("Make and model are required.")
    if get_mode_config(state.mode).require_year and not year:
        raise InvalidGuessInput("Year is required in this mode.")
    return GuessRecord(make=make, model=model, year=year)


def is_correct(state: SessionState, guess: GuessRecord) -> bool:
    answer = state.current_puzzle
    if guess.make.lower() != answer.make.lower():
        return False
    if guess.model.lower() != answer.model.lower():
        return False
    if get_mode_config(state.mode).require_year and guess.year != answer.year:
        return False
    return True


def outcome_message(outcome: GuessOutcome, guesses_remaining: int) -> Optional[str]:
    if outcome == GuessOutcome.win:
        return "Correct! 🎉"
    if outcome == GuessOutcome.loss_out_of_guesses:
        return "Out of guesses! The answer was revealed."
    if outcome == GuessOutcome.incorrect_continue:
        noun = "guess" if guesses_remaining == 1 else "guesses"
        return f"Incorrect! {guesses_remaining} {noun} remaining."
    return None


def submit_guess(
    state: SessionState,
    make: str,
    model: str,
    year: str = "",
) -> tuple[SessionState, GuessResult]:
    """
    Applies one guess. Rejected guesses (puzzle already finished, blank
    required field) return the same state with outcome REJECTED.
    """
    if state.is_finished:
        return state, GuessResult(outcome=GuessOutcome.rejected, guesses_remaining=state.guesses_remaining)

    try:
        guess = validate_guess(state, make, model, year)
    except InvalidGuessInput as exc:
        return state, GuessResult(
            outcome=GuessOutcome.rejected,
            guesses_remaining=state.guesses_remaining,
            message=str(exc),
        )

    guesses = state.guesses + (guess,)

    if is_correct(state, guess):
        new_state = state.model_copy(update={"guesses": guesses, "has_won": True})
        outcome = GuessOutcome.win
    else:
        remaining = max(0, state.guesses_remaining - 1)
        new_state = state.model_copy(update={"guesses": guesses, "guesses_remaining": remaining})
        outcome = GuessOutcome.loss_out_of_guesses if remaining == 0 else GuessOutcome.incorrect_continue

    result = GuessResult(
        outcome=outcome,
        guesses_remaining=new_state.guesses_remaining,
        message=outcome_message(outcome, new_state.guesses_remaining),
    )
    return new_state, result


def record_outcome(state: SessionState, is_win: bool) -> SessionState:
    """Adds the finished puzzle to the scoreboard, at most once per puzzle."""
    if len(state.session_results) < state.puzzle_index:
        return state.model_copy(update={"session_results": state.session_results + (is_win,)})
    return state


def to_daily_payload(state: SessionState) -> DailyStatePayload:
    return DailyStatePayload(
        guesses_remaining=state.guesses_remaining,
        has_won=state.has_won,
        guesses=list(state.guesses),
    )


def session_complete(state: SessionState, session_size: Optional[int] = None) -> bool:
    return state.puzzle_index >= _session_size(session_size)
