from pydantic import BaseModel, ConfigDict, Field


class Vehicle(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    make: str
    model: str
    year: str
    image_ref: str = Field(alias="filename")


class CatalogDocument(BaseModel):
    """Shape of catalog.json."""
    model_config = ConfigDict(populate_by_name=True)

    makes: list[str] = []
    models_by_make: dict[str, list[str]] = Field(default_factory=dict, alias="modelsByMake")
    vehicles: list[Vehicle] | None = None


class Catalog(BaseModel):
    model_config = ConfigDict(frozen=True)

    makes: tuple[str, ...]
    models_by_make: dict[str, tuple[str, ...]]
    vehicles: tuple[Vehicle, ...]

    def models_for(self, make: str) -> list[str]:
        """Models of the given make, or every known model when the make is unknown."""
        models = self.models_by_make.get(make.strip())
        if models:
            return list(models)
        return [m for ms in self.models_by_make.values() for m in ms]


class CatalogStatus(BaseModel):
    ready: bool
    vehicles: int = 0
    makes: int = 0
    error: str | None = None


class SuggestionsResponse(BaseModel):
    field: str
    query: str
    options: list[str]
