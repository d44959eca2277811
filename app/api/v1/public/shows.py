from uuid import UUID
from typing import List, Optional
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session, joinedload

from app.core.exceptions import NotFoundError
from app.db.session import get_db
from app.models.ensemble import Ensemble
from app.models.show import Show
from app.schemas.seat import SeatMapResponse
from app.schemas.show import (
    Show as ShowSchema,
    EnsembleDetail,
    EnsembleSummary,
    VenueSummary,
)
from app.services.seat_map import build_seat_map, materialize_seats

router = APIRouter(prefix="/shows", tags=["Shows"])
ensemble_router = APIRouter(prefix="/ensembles", tags=["Ensembles"])

LISTED_STATUSES = ("scheduled", "on_sale")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _serialize_show(show: Show) -> ShowSchema:
    return ShowSchema(
        id=show.id,
        title=show.display_title,
        show_datetime=show.show_datetime,
        status=show.status,
        base_price=show.base_price,
        available_seats=show.available_seats,
        venue=VenueSummary.model_validate(show.venue) if show.venue else None,
        ensemble=EnsembleSummary.model_validate(show.ensemble) if show.ensemble else None,
    )


def _upcoming_shows_query(db: Session):
    """Scheduled or on-sale shows that have not started yet, soonest first."""
    return (
        db.query(Show)
        .options(joinedload(Show.ensemble), joinedload(Show.venue))
        .filter(
            Show.status.in_(LISTED_STATUSES),
            Show.show_datetime >= datetime.now(timezone.utc),
        )
        .order_by(Show.show_datetime.asc())
    )


def _load_show(db: Session, show_id: UUID) -> Show:
    show = (
        db.query(Show)
        .options(joinedload(Show.ensemble), joinedload(Show.venue))
        .filter(Show.id == show_id)
        .first()
    )
    if not show:
        raise NotFoundError("Show not found")
    return show


# ---------------------------------------------------------------------------
# Shows
# ---------------------------------------------------------------------------


@router.get("/", response_model=List[ShowSchema])
def list_shows(
    ensemble: Optional[str] = Query(None, description="Filter by ensemble slug"),
    db: Session = Depends(get_db),
):
    """Upcoming shows that can still be booked."""
    query = _upcoming_shows_query(db)
    if ensemble:
        query = query.join(Ensemble, Ensemble.id == Show.ensemble_id).filter(Ensemble.slug == ensemble)
    return [_serialize_show(s) for s in query.all()]


@router.get("/{show_id}", response_model=ShowSchema)
def get_show(show_id: UUID, db: Session = Depends(get_db)):
    return _serialize_show(_load_show(db, show_id))


@router.get("/{show_id}/seats", response_model=SeatMapResponse)
def get_seat_map(show_id: UUID, db: Session = Depends(get_db)):
    """
    Seat map for the seat selection screen.
    Seats are created from the venue layout the first time a show is viewed.
    Lapsed holds are reported as available. No authentication required.
    """
    show = _load_show(db, show_id)
    materialize_seats(db, show)
    return build_seat_map(db, show)


# ---------------------------------------------------------------------------
# Ensembles
# ---------------------------------------------------------------------------


@ensemble_router.get("/{slug}", response_model=EnsembleDetail)
def get_ensemble(slug: str, db: Session = Depends(get_db)):
    ensemble = (
        db.query(Ensemble)
        .filter(Ensemble.slug == slug, Ensemble.is_published == True)  # noqa: E712
        .first()
    )
    if not ensemble:
        raise NotFoundError("Ensemble not found")

    shows = _upcoming_shows_query(db).filter(Show.ensemble_id == ensemble.id).all()
    return EnsembleDetail(
        id=ensemble.id,
        title=ensemble.title,
        slug=ensemble.slug,
        description=ensemble.description,
        image_url=ensemble.image_url,
        upcoming_shows=[_serialize_show(s) for s in shows],
    )
