"""Global FastAPI dependencies for database access and the matching service.

Long-lived objects (session factory, catalog index, inference provider) are
created once in the application lifespan and kept on ``app.state``; request
scoped objects are built from them here.
"""

from typing import Generator

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from config import Settings
from infrastructure.repositories import CatalogRepository, OrderItemRepository
from matching.service import MatchingService, assemble_matching_service


def get_db(request: Request) -> Generator[Session, None, None]:
    """Yield a database session for the current request.

    Repositories commit their own writes; the session is always closed.
    """
    session = request.app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_matching_service(
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> MatchingService:
    """Build a MatchingService on the request session.

    The catalog index and the inference provider are shared across
    requests, so no catalog load happens per request.

    Example:
        @router.post("/{item_id}/match")
        async def match_item(service: MatchingService = Depends(get_matching_service)):
            ...
    """
    return assemble_matching_service(
        request.app.state.catalog_index,
        CatalogRepository(db),
        OrderItemRepository(db),
        settings,
        request.app.state.llm_provider,
    )
