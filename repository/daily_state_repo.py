"""
Daily puzzle persistence.

One entry per calendar day, keyed "dailyPuzzle-<YYYY-MM-DD>". The payload is
only {guessesRemaining, hasWon, guesses}: the car itself is never stored, it
is recomputed from the date on load. Entries of past days are kept.
"""
import json
import logging
from datetime import datetime
from typing import Optional, Protocol

from pydantic import ValidationError
from sqlalchemy.orm import Session

from db import models
from schemas.game_schema import DailyStatePayload
from utils.errors import MalformedPersistedState

logger = logging.getLogger(__name__)

KEY_PREFIX = "dailyPuzzle-"


def storage_key(date_str: str) -> str:
    return f"{KEY_PREFIX}{date_str}"


def encode_payload(payload: DailyStatePayload) -> str:
    return payload.model_dump_json(by_alias=True)


def decode_payload(raw: str) -> DailyStatePayload:
    """Raises MalformedPersistedState on anything that is not a valid payload."""
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise MalformedPersistedState(f"Invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise MalformedPersistedState("Payload is not an object")
    try:
        return DailyStatePayload.model_validate(data)
    except ValidationError as e:
        raise MalformedPersistedState(str(e)) from e


def _load_soft(key: str, raw: Optional[str]) -> Optional[DailyStatePayload]:
    if raw is None:
        return None
    try:
        return decode_payload(raw)
    except MalformedPersistedState as e:
        logger.warning(f"Ignoring malformed daily state {key}: {e}")
        return None


class DailyStateStore(Protocol):
    def save(self, date_str: str, payload: DailyStatePayload) -> None: ...

    def load(self, date_str: str) -> Optional[DailyStatePayload]: ...


class MemoryDailyStateStore:
    """Dict-backed store, the in-process equivalent of browser storage."""

    def __init__(self, entries: Optional[dict[str, str]] = None):
        self.entries: dict[str, str] = entries if entries is not None else {}

    def save(self, date_str: str, payload: DailyStatePayload) -> None:
        self.entries[storage_key(date_str)] = encode_payload(payload)

    def load(self, date_str: str) -> Optional[DailyStatePayload]:
        key = storage_key(date_str)
        return _load_soft(key, self.entries.get(key))


class SqlDailyStateStore:
    """
    Store backed by the daily_puzzle_states table. Each player (owner_id)
    gets its own key space, like one browser's local storage.
    """

    def __init__(self, db: Session, owner_id: str):
        self.db = db
        self.owner_id = owner_id

    def _row(self, key: str) -> Optional[models.DailyPuzzleState]:
        return (
            self.db.query(models.DailyPuzzleState)
            .filter(
                models.DailyPuzzleState.owner_id == self.owner_id,
                models.DailyPuzzleState.storage_key == key,
            )
            .first()
        )

    def save(self, date_str: str, payload: DailyStatePayload) -> None:
        key = storage_key(date_str)
        row = self._row(key)
        if row is None:
            row = models.DailyPuzzleState(
                owner_id=self.owner_id,
                storage_key=key,
                created_at=datetime.utcnow(),
            )
            self.db.add(row)
        row.payload = encode_payload(payload)
        row.updated_at = datetime.utcnow()
        self.db.commit()

    def load(self, date_str: str) -> Optional[DailyStatePayload]:
        key = storage_key(date_str)
        row = self._row(key)
        return _load_soft(key, row.payload if row else None)
