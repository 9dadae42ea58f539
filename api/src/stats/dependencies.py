"""FastAPI dependencies for statistics."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import StatsService


async def get_stats_service(request: Request) -> StatsService:
    """Get stats service from app state."""
    app_state = request.app.state
    if not getattr(app_state, "stats_service", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Servico de estatisticas nao disponivel",
        )
    return app_state.stats_service


StatsServiceDep = Annotated[StatsService, Depends(get_stats_service)]
