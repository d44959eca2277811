import os

# Point the app at SQLite before anything imports app.core.config.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret")

from datetime import datetime, timedelta, timezone  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.api.deps import get_email_sender  # noqa: E402
from app.core.exceptions import ExternalServiceError  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.db.session import get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models import Ensemble, Seat, Show, User, Venue, DiscountCode  # noqa: E402
from app.services.email import EmailProvider  # noqa: E402
from app.services.seat_map import materialize_seats  # noqa: E402

SEAT_PRICE = 25000


class RecordingEmailProvider(EmailProvider):
    """Keeps sent emails in memory; can be told to fail."""

    def __init__(self):
        self.sent = []
        self.fail = False

    def send_email(self, to, subject, body):
        if self.fail:
            raise ExternalServiceError("The ticket email could not be sent")
        self.sent.append({"to": to, "subject": subject, "body": body})


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def outbox():
    return RecordingEmailProvider()


@pytest.fixture
def client(session_factory, outbox):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_sender] = lambda: outbox
    yield TestClient(app)
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Seed data
# ---------------------------------------------------------------------------


def _make_show(db, venue, ensemble, title=None, status="on_sale", days_ahead=7):
    show = Show(
        ensemble_id=ensemble.id,
        venue_id=venue.id,
        title=title,
        show_datetime=datetime.now(timezone.utc) + timedelta(days=days_ahead),
        status=status,
        base_price=SEAT_PRICE,
    )
    db.add(show)
    db.commit()
    db.refresh(show)
    return show


@pytest.fixture
def venue(db):
    venue = Venue(
        name="Hovedscenen",
        address="Storgata 1",
        postal_code="0155",
        city="Oslo",
        seat_map_config={"rows": 2, "seatsPerRow": 4},
    )
    db.add(venue)
    db.commit()
    db.refresh(venue)
    return venue


@pytest.fixture
def ensemble(db):
    ensemble = Ensemble(title="Hamlet", slug="hamlet", is_published=True)
    db.add(ensemble)
    db.commit()
    db.refresh(ensemble)
    return ensemble


@pytest.fixture
def show(db, venue, ensemble):
    show = _make_show(db, venue, ensemble)
    materialize_seats(db, show)
    db.refresh(show)
    return show


@pytest.fixture
def other_show(db, venue, ensemble):
    show = _make_show(db, venue, ensemble, title="Hamlet (matinee)", days_ahead=8)
    materialize_seats(db, show)
    db.refresh(show)
    return show


def _seat_lookup(db, show):
    return {
        f"{s.row}{s.number}": s.id
        for s in db.query(Seat).filter(Seat.show_id == show.id).all()
    }


@pytest.fixture
def seats(db, show):
    """Map of 'A1'..'B4' to seat ids for the main show."""
    return _seat_lookup(db, show)


@pytest.fixture
def other_seats(db, other_show):
    return _seat_lookup(db, other_show)


@pytest.fixture
def user(db):
    user = User(email="ola@teateret.no", full_name="Ola Nordmann", role="user")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def other_user(db):
    user = User(email="kari@teateret.no", full_name="Kari Nordmann", role="user")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def staff(db):
    user = User(email="door@teateret.no", full_name="Door Staff", role="staff")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def discount(db):
    code = DiscountCode(code="STUDENT", percent_off=50, current_uses=3)
    db.add(code)
    db.commit()
    db.refresh(code)
    return code


def auth_headers_for(user):
    return {"Authorization": f"Bearer {create_access_token(subject=str(user.id))}"}


@pytest.fixture
def auth_headers(user):
    return auth_headers_for(user)


@pytest.fixture
def staff_headers(staff):
    return auth_headers_for(staff)
