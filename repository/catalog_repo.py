import json
import logging
from pathlib import Path
from typing import Optional

import requests
from pydantic import ValidationError

from schemas.catalog_schema import Catalog, CatalogDocument, CatalogStatus, Vehicle
from utils.errors import CatalogLoadFailure, CatalogNotReady, EmptyCatalog

logger = logging.getLogger(__name__)

# Used when the catalog document carries no "vehicles" list.
DEFAULT_VEHICLES = (
    Vehicle(image_ref="ford_mustang_gt_2022.jpg", make="Ford", model="Mustang GT", year="2022"),
    Vehicle(image_ref="toyota_rav4_2018.jpg", make="Toyota", model="RAV4", year="2018"),
    Vehicle(image_ref="volkswagen_golfr_2019.jpg", make="Volkswagen", model="Golf R", year="2019"),
)


def fetch_catalog_document(source: str, timeout: float = 10.0) -> dict:
    """Reads the raw catalog JSON from a http(s) URL or a local path."""
    if source.startswith(("http://", "https://")):
        try:
            response = requests.get(source, timeout=timeout)
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as e:
            raise CatalogLoadFailure(f"Could not fetch catalog from {source}: {e}") from e

    try:
        return json.loads(Path(source).read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise CatalogLoadFailure(f"Could not read catalog {source}: {e}") from e


def build_catalog(data: dict) -> Catalog:
    try:
        document = CatalogDocument.model_validate(data)
    except ValidationError as e:
        raise CatalogLoadFailure(f"Invalid catalog document: {e}") from e

    vehicles = tuple(document.vehicles) if document.vehicles is not None else DEFAULT_VEHICLES
    if not vehicles:
        raise EmptyCatalog("Catalog has no vehicles")

    return Catalog(
        makes=tuple(document.makes),
        models_by_make={make: tuple(models) for make, models in document.models_by_make.items()},
        vehicles=vehicles,
    )


def load_catalog(source: str) -> Catalog:
    return build_catalog(fetch_catalog_document(source))


class CatalogRegistry:
    """
    Holds the one catalog of the process. Game actions are refused until a
    load has succeeded; a failed load is not retried until reload() is called.
    """

    def __init__(self, source: str):
        self.source = source
        self.catalog: Optional[Catalog] = None
        self.error: Optional[str] = None

    @property
    def ready(self) -> bool:
        return self.catalog is not None

    def reload(self) -> CatalogStatus:
        try:
            catalog = load_catalog(self.source)
        except (CatalogLoadFailure, EmptyCatalog) as e:
            logger.error(f"Failed to load car catalog: {e}")
            self.catalog = None
            self.error = str(e)
        else:
            logger.info(f"Car catalog loaded successfully ({len(catalog.vehicles)} vehicles).")
            self.catalog = catalog
            self.error = None
        return self.status()

    def set_catalog(self, catalog: Catalog) -> None:
        self.catalog = catalog
        self.error = None

    def require(self) -> Catalog:
        if self.catalog is None:
            raise CatalogNotReady(self.error or "Catalog not loaded yet")
        return self.catalog

    def status(self) -> CatalogStatus:
        if self.catalog is None:
            return CatalogStatus(ready=False, error=self.error)
        return CatalogStatus(
            ready=True,
            vehicles=len(self.catalog.vehicles),
            makes=len(self.catalog.makes),
        )
