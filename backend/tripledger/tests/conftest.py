"""
Shared fixtures: an in-memory database, sample group data and an API client.
"""
from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import tripledger.models  # noqa: F401
from tripledger.core.security import create_member_token
from tripledger.db.base import Base
from tripledger.db.session import build_engine, get_db
from tripledger.main import app
from tripledger.models.group import Group, GroupMember
from tripledger.models.trip import Event, Trip, TripDay


@pytest.fixture
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def group(db):
    group = Group(name="Lisbon crew")
    db.add(group)
    db.commit()
    return group


@pytest.fixture
def members(db, group):
    """Three travelers: Ana, Ben and Chloe."""
    people = [
        GroupMember(group_id=group.id, traveler_name=name)
        for name in ("Ana", "Ben", "Chloe")
    ]
    db.add_all(people)
    db.commit()
    return people


@pytest.fixture
def other_group_member(db):
    other = Group(name="Somebody else")
    db.add(other)
    db.flush()
    stranger = GroupMember(group_id=other.id, traveler_name="Stranger")
    db.add(stranger)
    db.commit()
    return stranger


@pytest.fixture
def trip(db, group):
    """A three-day trip with its days."""
    trip = Trip(
        group_id=group.id,
        name="Lisbon",
        destination="Portugal",
        start_date=date(2026, 5, 1),
        end_date=date(2026, 5, 3),
    )
    db.add(trip)
    db.flush()
    for number in range(1, 4):
        db.add(TripDay(trip_id=trip.id, date=date(2026, 5, number), day_number=number))
    db.commit()
    return trip


@pytest.fixture
def event(db, trip):
    first_day = trip.days[0]
    event = Event(trip_id=trip.id, day_id=first_day.id, title="Tram 28")
    db.add(event)
    db.commit()
    return event


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(group, members):
    """Bearer headers for Ana."""
    token = create_member_token(members[0].id, group.id)
    return {"Authorization": f"Bearer {token}"}
