import re
from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from config import settings
from db import database
from repository.catalog_repo import CatalogRegistry
from repository.daily_state_repo import SqlDailyStateStore
from repository.game_repo import GameController, GameRegistry

_ANON_ID = re.compile(r"^[a-zA-Z0-9-]+$")

catalog_registry = CatalogRegistry(settings.CATALOG_SOURCE)
game_registry = GameRegistry(catalog_registry)


def get_db():
    db = database.SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_catalogs() -> CatalogRegistry:
    return catalog_registry


def get_games() -> GameRegistry:
    return game_registry


def get_player_id(
    x_anonymous_id: Optional[str] = Header(None, alias="X-Anonymous-Id")
) -> str:
    if not x_anonymous_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Must provide X-Anonymous-Id header"
        )
    if len(x_anonymous_id) > 64 or not _ANON_ID.match(x_anonymous_id):
        raise HTTPException(status_code=400, detail="Invalid anonymous ID format")
    return x_anonymous_id


def get_controller(
    player_id: Annotated[str, Depends(get_player_id)],
    games: Annotated[GameRegistry, Depends(get_games)],
) -> GameController:
    return games.get(player_id)


def get_daily_store(
    player_id: Annotated[str, Depends(get_player_id)],
    db: Annotated[Session, Depends(get_db)],
) -> SqlDailyStateStore:
    return SqlDailyStateStore(db, player_id)
