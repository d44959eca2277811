import logging
import uuid
from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models import Seat
from app.services import reservation
from app.services.reservation import (
    AVAILABLE,
    RESERVED,
    as_utc,
    effective_status,
    reserve_seats,
    utcnow,
)


def _status(db, seat_id):
    db.expire_all()
    return db.query(Seat).filter(Seat.id == seat_id).one().status


def _hold(db, seat_id, until):
    seat = db.query(Seat).filter(Seat.id == seat_id).one()
    seat.status = RESERVED
    seat.reserved_until = until
    db.commit()


def test_reserve_holds_every_seat_for_ten_minutes(db, show, seats):
    now = utcnow()
    result = reserve_seats(db, show.id, [seats["A1"], seats["A2"]], now=now)

    assert result.reserved_until == now + timedelta(minutes=10)
    assert result.seat_ids == [seats["A1"], seats["A2"]]
    assert _status(db, seats["A1"]) == RESERVED
    assert _status(db, seats["A2"]) == RESERVED
    assert _status(db, seats["A3"]) == AVAILABLE


def test_conflict_lists_held_seats_and_holds_nothing(db, show, seats):
    _hold(db, seats["A2"], utcnow() + timedelta(minutes=5))

    with pytest.raises(ConflictError) as exc_info:
        reserve_seats(db, show.id, [seats["A1"], seats["A2"]])

    err = exc_info.value
    assert err.status_code == 409
    assert err.unavailable_seat_ids == [str(seats["A2"])]
    assert "Row A, Seat 2" in err.message
    assert _status(db, seats["A1"]) == AVAILABLE


def test_sold_and_blocked_seats_are_unavailable(db, show, seats):
    for key, status in (("B1", "sold"), ("B2", "blocked")):
        seat = db.query(Seat).filter(Seat.id == seats[key]).one()
        seat.status = status
    db.commit()

    with pytest.raises(ConflictError) as exc_info:
        reserve_seats(db, show.id, [seats["B1"], seats["B2"], seats["B3"]])

    assert set(exc_info.value.unavailable_seat_ids) == {str(seats["B1"]), str(seats["B2"])}
    assert _status(db, seats["B3"]) == AVAILABLE


def test_expired_hold_is_reclaimed(db, show, seats):
    _hold(db, seats["A1"], utcnow() - timedelta(minutes=1))

    result = reserve_seats(db, show.id, [seats["A1"]])

    assert result.seat_ids == [seats["A1"]]
    assert _status(db, seats["A1"]) == RESERVED


def test_expired_hold_reported_as_available(db, show, seats):
    _hold(db, seats["A1"], utcnow() - timedelta(seconds=1))
    seat = db.query(Seat).filter(Seat.id == seats["A1"]).one()

    assert effective_status(seat, utcnow()) == AVAILABLE


def test_empty_selection_rejected(db, show):
    with pytest.raises(ValidationError):
        reserve_seats(db, show.id, [])


def test_duplicate_seat_rejected(db, show, seats):
    with pytest.raises(ValidationError):
        reserve_seats(db, show.id, [seats["A1"], seats["A1"]])
    assert _status(db, seats["A1"]) == AVAILABLE


def test_seat_from_another_show_rejected(db, show, seats, other_seats):
    with pytest.raises(NotFoundError) as exc_info:
        reserve_seats(db, show.id, [seats["A1"], other_seats["A1"]])

    assert exc_info.value.status_code == 400
    assert _status(db, seats["A1"]) == AVAILABLE
    assert _status(db, other_seats["A1"]) == AVAILABLE


def test_unknown_show_is_not_found(db):
    with pytest.raises(NotFoundError) as exc_info:
        reserve_seats(db, uuid.uuid4(), [uuid.uuid4()])
    assert exc_info.value.status_code == 404


def test_cancelled_show_rejected(db, show, seats):
    show.status = "cancelled"
    db.commit()

    with pytest.raises(ValidationError):
        reserve_seats(db, show.id, [seats["A1"]])


def test_lost_race_rolls_back_partial_hold(db, session_factory, show, seats, monkeypatch):
    # A1 has a lapsed hold, so the cleanup step runs between the read and the
    # conditional update. Another buyer grabs A2 right then.
    _hold(db, seats["A1"], utcnow() - timedelta(minutes=1))
    original_release = reservation.release_expired_holds

    def release_then_someone_else_reserves(session, seat_ids, now):
        original_release(session, seat_ids, now)
        rival = session_factory()
        try:
            seat = rival.query(Seat).filter(Seat.id == seats["A2"]).one()
            seat.status = RESERVED
            seat.reserved_until = now + timedelta(minutes=10)
            rival.commit()
        finally:
            rival.close()

    monkeypatch.setattr(reservation, "release_expired_holds", release_then_someone_else_reserves)

    with pytest.raises(ConflictError) as exc_info:
        reserve_seats(db, show.id, [seats["A1"], seats["A2"]])

    assert exc_info.value.failed_count == 1
    # Our hold on A1 was undone; the rival keeps A2.
    assert _status(db, seats["A1"]) == AVAILABLE
    assert _status(db, seats["A2"]) == RESERVED


def test_failed_cleanup_still_reserves_expired_hold(db, show, seats, monkeypatch, caplog):
    _hold(db, seats["A1"], utcnow() - timedelta(minutes=1))
    real_commit = db.commit
    commits = []

    def commit_failing_once():
        commits.append(1)
        if len(commits) == 1:
            raise OperationalError("UPDATE seats", {}, Exception("database is locked"))
        real_commit()

    monkeypatch.setattr(db, "commit", commit_failing_once)

    with caplog.at_level(logging.WARNING, logger="app.services.reservation"):
        result = reserve_seats(db, show.id, [seats["A1"]])

    assert "Failed to clean up expired holds" in caplog.text
    assert result.seat_ids == [seats["A1"]]
    seat = db.query(Seat).filter(Seat.id == seats["A1"]).one()
    db.refresh(seat)
    assert seat.status == RESERVED
    assert as_utc(seat.reserved_until) == result.reserved_until


def test_live_hold_is_not_reclaimed(db, show, seats):
    _hold(db, seats["A1"], utcnow() + timedelta(seconds=30))

    with pytest.raises(ConflictError):
        reserve_seats(db, show.id, [seats["A1"]])

    assert _status(db, seats["A1"]) == RESERVED
