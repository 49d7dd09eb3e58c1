"""Dashboard router - scoped landing-page statistics."""

from fastapi import APIRouter, Depends

from aidcrm.core.deps import get_current_actor, get_store
from aidcrm.db.store import EntityStore
from aidcrm.schemas.auth import Actor
from aidcrm.services import dashboard_service
from aidcrm.services.dashboard_service import DashboardStats

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/stats", response_model=DashboardStats)
def get_dashboard_stats(
    actor: Actor | None = Depends(get_current_actor),
    store: EntityStore = Depends(get_store),
):
    return dashboard_service.get_dashboard_stats(store, actor)
