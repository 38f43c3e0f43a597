import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status

from dependencies import get_controller, get_daily_store
from repository.daily_state_repo import SqlDailyStateStore
from repository.game_repo import GameController, build_game_view
from schemas import game_schema
from utils.errors import (
    CatalogNotReady,
    DailyReplayRefused,
    EmptyCatalog,
    GameError,
    NoActiveGame,
    PuzzleInProgress,
)
from utils.image_processing import crop_clue, load_image_bytes

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/game",
    tags=["Game"]
)


def _to_http(exc: GameError) -> HTTPException:
    if isinstance(exc, (CatalogNotReady, EmptyCatalog)):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Could not load car catalog: {exc}",
        )
    if isinstance(exc, (NoActiveGame, PuzzleInProgress, DailyReplayRefused)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.post("/start", response_model=game_schema.GameView)
def start_game(
    body: game_schema.StartRequest,
    controller: Annotated[GameController, Depends(get_controller)],
    store: Annotated[SqlDailyStateStore, Depends(get_daily_store)],
):
    """Starts (or switches to) a mode. Daily mode resumes today's saved progress."""
    try:
        controller.start(body.mode, store=store)
    except GameError as e:
        raise _to_http(e)
    return build_game_view(controller)


@router.post("/guess", response_model=game_schema.GuessResponse)
def submit_guess(
    guess: game_schema.GuessRequest,
    controller: Annotated[GameController, Depends(get_controller)],
    store: Annotated[SqlDailyStateStore, Depends(get_daily_store)],
):
    try:
        result = controller.guess(guess.make, guess.model, guess.year, store=store)
    except GameError as e:
        raise _to_http(e)
    return game_schema.GuessResponse(
        outcome=result.outcome,
        message=result.message,
        game=build_game_view(controller),
    )


@router.post("/advance", response_model=game_schema.GameView)
def advance(controller: Annotated[GameController, Depends(get_controller)]):
    """Next puzzle of the session, or a new session once the tracker is full."""
    try:
        controller.advance()
    except GameError as e:
        raise _to_http(e)
    return build_game_view(controller)


@router.get("/state", response_model=game_schema.GameView)
def get_state(controller: Annotated[GameController, Depends(get_controller)]):
    try:
        return build_game_view(controller)
    except GameError as e:
        raise _to_http(e)


@router.get("/image")
def get_clue_image(controller: Annotated[GameController, Depends(get_controller)]):
    try:
        state = controller.require_state()
    except GameError as e:
        raise _to_http(e)

    try:
        image_bytes = load_image_bytes(state.current_puzzle.image_ref)
    except FileNotFoundError:
        logger.warning(f"Missing image asset {state.current_puzzle.image_ref}")
        raise HTTPException(status_code=404, detail="Image not found")

    png = crop_clue(
        image_bytes,
        state.clue.zoom_percent,
        state.clue.pos_x,
        state.clue.pos_y,
        reveal=state.is_finished,
    )
    return Response(content=png, media_type="image/png")
