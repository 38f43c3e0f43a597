import logging
import random
import threading
from typing import Callable, Optional

from cachetools import TTLCache

from config import settings
from repository.catalog_repo import CatalogRegistry
from repository.daily_state_repo import DailyStateStore
from schemas.game_schema import AnswerView, ClueImageView, GameMode, GameView, GuessResult, SessionState
from utils import session_machine
from utils.errors import DailyReplayRefused, NoActiveGame, PuzzleInProgress
from utils.game_modes import get_mode_config
from utils.puzzle_selector import today_string

logger = logging.getLogger(__name__)

CLUE_IMAGE_URL = "/game/image"


class GameController:
    """
    Owns the SessionState of one player and applies the start / guess /
    advance actions to it. The daily store is passed per call so the caller
    decides where daily progress lives (database session, memory, ...).

    Each action reads, transitions and writes the state under the
    controller's lock, so concurrent requests of one player are serialized.
    """

    def __init__(
        self,
        catalogs: CatalogRegistry,
        clock: Callable[[], str] = today_string,
        rng: Optional[random.Random] = None,
        session_size: Optional[int] = None,
    ):
        self.catalogs = catalogs
        self.clock = clock
        self.rng = rng or random.Random()
        self.session_size = session_size
        self.state: Optional[SessionState] = None
        self.date_str: Optional[str] = None
        self.lock = threading.Lock()

    def require_state(self) -> SessionState:
        if self.state is None:
            raise NoActiveGame("No game started. Choose a mode first.")
        return self.state

    def start(self, mode: GameMode | str, store: Optional[DailyStateStore] = None) -> SessionState:
        catalog = self.catalogs.require()
        with self.lock:
            self.date_str = self.clock()
            self.state = session_machine.start_session(
                mode,
                self.date_str,
                catalog.vehicles,
                store=store,
                rng=self.rng,
            )
            logger.debug(f"Started {self.state.mode.value} session on {self.date_str}")
            return self.state

    def guess(
        self,
        make: str,
        model: str,
        year: str = "",
        store: Optional[DailyStateStore] = None,
    ) -> GuessResult:
        self.catalogs.require()
        with self.lock:
            state = self.require_state()

            new_state, result = session_machine.submit_guess(state, make, model, year)
            if not result.accepted:
                return result

            if result.is_terminal:
                new_state = session_machine.record_outcome(new_state, new_state.has_won)
            self.state = new_state

            if new_state.mode == GameMode.daily and store is not None:
                store.save(self.date_str, session_machine.to_daily_payload(new_state))
            return result

    def advance(self) -> SessionState:
        catalog = self.catalogs.require()
        with self.lock:
            state = self.require_state()

            if state.mode == GameMode.daily:
                raise DailyReplayRefused()
            if not state.is_finished:
                raise PuzzleInProgress("Finish the current puzzle before moving on.")

            self.date_str = self.clock()
            self.state = session_machine.start_puzzle(
                state, self.date_str, catalog.vehicles, self.rng, session_size=self.session_size
            )
            return self.state


class GameRegistry:
    """
    In-memory controllers, one per anonymous player id.

    Bounded: at most `max_players` controllers are kept and a controller idle
    for `ttl_seconds` is dropped. An evicted player simply starts over (daily
    progress lives in the database and is restored on the next start).
    """

    def __init__(
        self,
        catalogs: CatalogRegistry,
        clock: Callable[[], str] = today_string,
        rng_factory=random.Random,
        max_players: Optional[int] = None,
        ttl_seconds: Optional[float] = None,
        timer: Optional[Callable[[], float]] = None,
    ):
        self.catalogs = catalogs
        self.clock = clock
        self.rng_factory = rng_factory
        cache_args = {}
        if timer is not None:
            cache_args["timer"] = timer
        self._controllers: TTLCache = TTLCache(
            maxsize=max_players or settings.MAX_ACTIVE_PLAYERS,
            ttl=ttl_seconds or settings.PLAYER_TTL_SECONDS,
            **cache_args,
        )
        self._lock = threading.Lock()

    def get(self, player_id: str) -> GameController:
        with self._lock:
            controller = self._controllers.get(player_id)
            if controller is None:
                controller = GameController(self.catalogs, clock=self.clock, rng=self.rng_factory())
            # re-inserting refreshes the idle timer
            self._controllers[player_id] = controller
            return controller

    def __len__(self) -> int:
        with self._lock:
            return len(self._controllers)

    def reset(self) -> None:
        with self._lock:
            self._controllers.clear()


def build_scoreboard(state: SessionState, session_size: int) -> list[str]:
    """Per-slot marks of the session tracker; empty for modes without one."""
    if not get_mode_config(state.mode).show_scoreboard:
        return []
    boxes = []
    for i in range(session_size):
        if i < len(state.session_results):
            boxes.append("✅" if state.session_results[i] else "❌")
        elif i == len(state.session_results) and i < state.puzzle_index:
            boxes.append("❓")
        else:
            boxes.append("⬛")
    return boxes


def build_game_view(controller: GameController) -> GameView:
    state = controller.require_state()
    config = get_mode_config(state.mode)
    session_size = controller.session_size or settings.SESSION_SIZE
    puzzle = state.current_puzzle
    finished = state.is_finished
    can_advance = finished and state.mode != GameMode.daily

    if finished:
        # Revealed: the whole picture, unzoomed
        clue = ClueImageView(image_url=CLUE_IMAGE_URL, zoom_percent=100, position="center")
    else:
        clue = ClueImageView(
            image_url=CLUE_IMAGE_URL,
            zoom_percent=state.clue.zoom_percent,
            position=f"{state.clue.pos_x:.1f}% {state.clue.pos_y:.1f}%",
        )

    return GameView(
        mode=state.mode,
        puzzle_number=state.puzzle_index,
        session_size=session_size,
        session_results=list(state.session_results),
        scoreboard=build_scoreboard(state, session_size),
        guesses_remaining=state.guesses_remaining,
        max_guesses=config.max_guesses,
        has_won=state.has_won,
        status=state.status,
        guesses=list(state.guesses),
        require_year=config.require_year,
        prefilled_make=puzzle.make if config.prefill_make else None,
        clue=clue,
        answer=AnswerView(make=puzzle.make, model=puzzle.model, year=puzzle.year) if finished else None,
        can_advance=can_advance,
        next_starts_new_session=can_advance and session_machine.session_complete(state, session_size),
    )
