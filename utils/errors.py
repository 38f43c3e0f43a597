"""
Core game errors.

Fatal catalog errors block every game action until the catalog is reloaded.
Everything else is recoverable and is translated to an HTTP status by the
routers.
"""


class GameError(Exception):
    """Base class for every error raised by the game core."""


class CatalogLoadFailure(GameError):
    """The catalog document could not be fetched or parsed."""


class EmptyCatalog(GameError):
    """The catalog loaded but holds no vehicles."""


class CatalogNotReady(GameError):
    """A game action was attempted before a catalog was loaded successfully."""


class InvalidGuessInput(GameError):
    """A required guess field is blank."""


class MalformedPersistedState(GameError):
    """A persisted daily payload could not be decoded."""


class NoActiveGame(GameError):
    """No mode has been started for this player yet."""


class PuzzleInProgress(GameError):
    """Advance was requested while the current puzzle is still active."""


class DailyReplayRefused(GameError):
    """The daily puzzle can only be played once per calendar day."""

    def __init__(self, message: str = "Daily puzzle is once a day. Play another mode!"):
        super().__init__(message)
