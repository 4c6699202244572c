"""Health check: database reachability and which sign-in methods are enabled."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from dynasty_auth.core.config import settings
from dynasty_auth.core.database import check_db_connected, get_db
from dynasty_auth.schemas.health import HealthResponse

router = APIRouter()


@router.get("/", response_model=HealthResponse)
def get_health(
    request: Request,
    db: Annotated[Session, Depends(get_db)],
) -> HealthResponse:
    """Used by load balancers and monitoring; never touches user data."""
    components = request.app.state.auth
    return HealthResponse(
        status="ok",
        environment=settings.APP_ENV,
        database="connected" if check_db_connected(db) else "disconnected",
        google_sign_in="enabled" if components.verifier is not None else "disabled",
    )
