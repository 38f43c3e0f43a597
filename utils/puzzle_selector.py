import random
from datetime import date, datetime, timezone
from typing import Sequence

from config import settings
from schemas.catalog_schema import Vehicle
from schemas.game_schema import ClueView, GameMode
from utils.errors import EmptyCatalog
from utils.game_modes import get_mode_config


def today_string(now: datetime | None = None) -> str:
    """Calendar date used for the daily puzzle, in UTC (YYYY-MM-DD)."""
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).date().isoformat()


def date_hash(value: str) -> int:
    """
    Stable string hash used as the daily seed.

    hash = hash * 31 + code point, wrapped to a signed 32-bit integer after
    every step, absolute value at the end. Matches the browser version of the
    game bit for bit, so both pick the same car for the same date.
    """
    h = 0
    for char in value:
        h = (h * 31 + ord(char)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


def daily_index(date_str: str, catalog_size: int) -> int:
    if catalog_size <= 0:
        raise EmptyCatalog("Catalog has no vehicles")
    return date_hash(date_str) % catalog_size


def select_puzzle(
    mode: GameMode | str,
    date_str: str | date,
    catalog: Sequence[Vehicle],
    rng: random.Random | None = None,
) -> Vehicle:
    """
    Picks the vehicle for a new puzzle.

    Daily mode is a pure function of the date string. Other modes sample the
    catalog uniformly on every call; repeats are allowed.
    """
    if not catalog:
        raise EmptyCatalog("Catalog has no vehicles")

    if isinstance(date_str, date):
        date_str = date_str.isoformat()

    if GameMode(mode) == GameMode.daily:
        return catalog[daily_index(date_str, len(catalog))]

    rng = rng or random
    return catalog[rng.randrange(len(catalog))]


def roll_clue(mode: GameMode | str, rng: random.Random | None = None, jitter: float | None = None) -> ClueView:
    """Zoom of the mode and a background position kept near the center (50% +/- jitter)."""
    rng = rng or random
    jitter = settings.CLUE_POS_JITTER if jitter is None else jitter

    def centered() -> float:
        return round(50 + (rng.random() * 2 * jitter - jitter), 1)

    return ClueView(
        zoom_percent=get_mode_config(mode).zoom_percent,
        pos_x=centered(),
        pos_y=centered(),
    )
