"""FastAPI dependencies for the content catalog."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import CatalogService


async def get_catalog_service(request: Request) -> CatalogService:
    """Get catalog service from app state.

    Args:
        request: FastAPI request

    Returns:
        CatalogService instance
    """
    app_state = request.app.state
    if not getattr(app_state, "catalog_service", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Servico de catalogo nao disponivel",
        )
    return app_state.catalog_service


CatalogServiceDep = Annotated[CatalogService, Depends(get_catalog_service)]
