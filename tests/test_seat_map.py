from datetime import timedelta

from app.models import Seat, Show, Venue
from app.services.reservation import utcnow
from app.services.seat_map import build_seat_map, materialize_seats, seats_from_config


def test_rows_and_seats_per_row_config():
    positions = seats_from_config({"rows": 2, "seatsPerRow": 3})

    assert len(positions) == 6
    assert positions[0] == {"section": "Main hall", "row": "A", "number": 1}
    assert positions[-1] == {"section": "Main hall", "row": "B", "number": 3}


def test_sections_config():
    config = {
        "sections": [
            {"name": "Parkett", "rows": [{"number": 1, "seats": [1, 2]}, {"number": 2, "seats": [1]}]},
            {"name": "Balkong", "rows": [{"number": "A", "seats": [5]}]},
        ]
    }

    positions = seats_from_config(config)

    assert positions == [
        {"section": "Parkett", "row": "1", "number": 1},
        {"section": "Parkett", "row": "1", "number": 2},
        {"section": "Parkett", "row": "2", "number": 1},
        {"section": "Balkong", "row": "A", "number": 5},
    ]


def test_empty_config():
    assert seats_from_config(None) == []
    assert seats_from_config({}) == []


def test_materialize_is_idempotent(db, show):
    assert db.query(Seat).filter(Seat.show_id == show.id).count() == 8

    assert materialize_seats(db, show) == 0
    assert db.query(Seat).filter(Seat.show_id == show.id).count() == 8


def test_seats_priced_from_show(db, show, seats):
    prices = {s.price for s in db.query(Seat).filter(Seat.show_id == show.id)}
    assert prices == {show.base_price}


def test_seat_map_groups_and_applies_expiry(db, show, seats):
    lapsed = db.query(Seat).filter(Seat.id == seats["A1"]).one()
    lapsed.status = "reserved"
    lapsed.reserved_until = utcnow() - timedelta(minutes=2)
    held = db.query(Seat).filter(Seat.id == seats["A2"]).one()
    held.status = "reserved"
    held.reserved_until = utcnow() + timedelta(minutes=8)
    db.commit()

    seat_map = build_seat_map(db, show)

    assert seat_map.available_count == 7
    assert [section.name for section in seat_map.sections] == ["Main hall"]
    rows = seat_map.sections[0].rows
    assert [row.label for row in rows] == ["A", "B"]
    statuses = {seat.number: seat.status for seat in rows[0].seats}
    assert statuses == {1: "available", 2: "reserved", 3: "available", 4: "available"}


def test_numeric_rows_in_natural_order(db, ensemble):
    venue = Venue(
        name="Studioscenen",
        city="Oslo",
        seat_map_config={
            "sections": [
                {"name": "Parkett", "rows": [
                    {"number": 10, "seats": [1]},
                    {"number": 2, "seats": [1]},
                    {"number": 1, "seats": [1, 2]},
                ]},
            ]
        },
    )
    db.add(venue)
    db.commit()
    show = Show(
        ensemble_id=ensemble.id,
        venue_id=venue.id,
        show_datetime=utcnow() + timedelta(days=2),
        status="on_sale",
        base_price=20000,
    )
    db.add(show)
    db.commit()
    materialize_seats(db, show)

    seat_map = build_seat_map(db, show)

    assert [row.label for row in seat_map.sections[0].rows] == ["1", "2", "10"]
    assert [s.number for s in seat_map.sections[0].rows[0].seats] == [1, 2]
