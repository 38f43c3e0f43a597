from schemas.game_schema import GameMode, ModeConfig

# Zoom is the CSS background-size percent of the clue image.
GAME_MODES: dict[GameMode, ModeConfig] = {
    GameMode.daily: ModeConfig(zoom_percent=333, max_guesses=3, require_year=False, show_scoreboard=False),
    GameMode.easy: ModeConfig(zoom_percent=100, max_guesses=5, require_year=False, prefill_make=True),
    # Year requirement disabled for now
    GameMode.hard: ModeConfig(zoom_percent=400, max_guesses=1, require_year=False),
}


def get_mode_config(mode: GameMode | str) -> ModeConfig:
    return GAME_MODES[GameMode(mode)]
