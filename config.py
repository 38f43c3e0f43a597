from functools import lru_cache
from typing import Literal
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator, model_validator

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Entorno y CORS
    ENV: Literal["development", "production", "test"] = "development"
    ALLOWED_ORIGINS: list[str] = []
    LOG_LEVEL: str = "INFO"

    DATABASE_URL: str = "sqlite:///./car_guesser.db"

    # Catalogo: ruta local o URL http(s)
    CATALOG_SOURCE: str = "catalog.json"
    IMAGES_DIR: str = "images"

    # Reglas del juego
    SESSION_SIZE: int = 5
    CLUE_POS_JITTER: float = 15.0

    # Jugadores en memoria: tope y expiracion por inactividad
    MAX_ACTIVE_PLAYERS: int = 10000
    PLAYER_TTL_SECONDS: float = 3600.0

    @field_validator("DATABASE_URL")
    @classmethod
    def normalize_db_url(cls, v: str) -> str:
        if v.startswith("postgres://"):
            v = v.replace("postgres://", "postgresql+psycopg2://", 1)
        return v

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def split_origins(cls, v):
        # Permite "a,b,c" en envs además de JSON
        if isinstance(v, str):
            return [o.strip() for o in v.split(",") if o.strip()]
        return v or []

    @field_validator("SESSION_SIZE")
    @classmethod
    def positive_session(cls, v: int) -> int:
        if v < 1:
            raise ValueError("SESSION_SIZE must be at least 1")
        return v

    @field_validator("MAX_ACTIVE_PLAYERS", "PLAYER_TTL_SECONDS")
    @classmethod
    def positive_player_bounds(cls, v):
        if v <= 0:
            raise ValueError("Player cache bounds must be positive")
        return v

    @model_validator(mode="after")
    def validate_cors(self):
        if self.ENV == "production":
            if not self.ALLOWED_ORIGINS:
                raise ValueError("ALLOWED_ORIGINS vacío en producción.")
            if "*" in self.ALLOWED_ORIGINS:
                raise ValueError("CORS wildcard (*) prohibido en producción.")
        return self

@lru_cache
def get_settings() -> Settings:
    return Settings()

settings = get_settings()
