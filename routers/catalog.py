from typing import Annotated, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from dependencies import get_catalogs
from repository.catalog_repo import CatalogRegistry
from schemas import catalog_schema
from utils.errors import CatalogNotReady
from utils.fuzzy import fuzzy_options

router = APIRouter(prefix="/catalog", tags=["catalog"])


def _require(catalogs: CatalogRegistry) -> catalog_schema.Catalog:
    try:
        return catalogs.require()
    except CatalogNotReady as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Could not load car catalog: {e}",
        )


@router.get("/status", response_model=catalog_schema.CatalogStatus)
def catalog_status(catalogs: Annotated[CatalogRegistry, Depends(get_catalogs)]):
    return catalogs.status()


@router.post("/reload", response_model=catalog_schema.CatalogStatus)
def reload_catalog(catalogs: Annotated[CatalogRegistry, Depends(get_catalogs)]):
    """Manual retry after a failed load. There is no automatic retry."""
    return catalogs.reload()


@router.get("/makes", response_model=list[str])
def list_makes(catalogs: Annotated[CatalogRegistry, Depends(get_catalogs)]):
    return list(_require(catalogs).makes)


@router.get("/models", response_model=list[str])
def list_models(
    catalogs: Annotated[CatalogRegistry, Depends(get_catalogs)],
    make: str = "",
):
    """Models of `make`; every known model when the make is blank or unknown."""
    return _require(catalogs).models_for(make)


@router.get("/suggestions", response_model=catalog_schema.SuggestionsResponse)
def suggestions(
    catalogs: Annotated[CatalogRegistry, Depends(get_catalogs)],
    field: Literal["make", "model"] = "make",
    q: str = "",
    make: Optional[str] = None,
    limit: int = Query(default=8, ge=1, le=100),
):
    catalog = _require(catalogs)
    items = list(catalog.makes) if field == "make" else catalog.models_for(make or "")
    return {"field": field, "query": q, "options": fuzzy_options(q, items, limit)}
