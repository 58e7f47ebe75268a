from fastapi import APIRouter, Depends, Query
from sqlalchemy.engine import Engine

from services.lending.src.lending.db.events_repository import EventsRepository
from services.lending.src.lending.routes.deps import get_db_engine
from services.lending.src.lending.schemas.responses import (
    EventsResponse,
    PoolEventResponse,
)

router = APIRouter(prefix="/events", tags=["events"])


@router.get("", response_model=EventsResponse)
def get_events(
    limit: int = Query(default=50, ge=1, le=500),
    event_type: str | None = Query(default=None),
    engine: Engine = Depends(get_db_engine),
) -> EventsResponse:
    """
    Get the most recent pool events.

    Optionally filtered by event type (supply, withdraw, borrow, repay,
    liquidation, collateral). Counts cover all stored events.
    """
    repo = EventsRepository(engine)
    events = repo.get_recent_events(limit=limit, event_type=event_type)
    return EventsResponse(
        events=[PoolEventResponse(**e) for e in events],
        counts=repo.get_event_counts(),
    )
