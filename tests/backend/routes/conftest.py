import os

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from backend.database import Base  # noqa: E402
from backend.models.appointment import Appointment  # noqa: E402
from backend.models.provider import Provider  # noqa: E402
from backend.models.service import Service  # noqa: E402
from backend.models.user import User  # noqa: E402
from route_helpers import (  # noqa: E402
    CONSUMER_ID,
    DEFAULT_HOURS_PROVIDER_ID,
    OTHER_CONSUMER_ID,
    PROVIDER_ID,
    SERVICE_ID,
)

TABLES = [User.__table__, Provider.__table__, Service.__table__, Appointment.__table__]


@pytest.fixture
def booking_db(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr('backend.routes.provider_routes.ensure_database_ready', lambda: None)
    monkeypatch.setattr('backend.routes.appointment_routes.ensure_database_ready', lambda: None)

    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine, tables=TABLES)

    db = testing_session_local()
    db.add_all([
        User(id=CONSUMER_ID, email='consumer@utexas.edu', display_name='Casey', role='consumer'),
        User(id=OTHER_CONSUMER_ID, email='other@utexas.edu', display_name='Jordan', role='consumer'),
        User(id=PROVIDER_ID, email='provider@utexas.edu', display_name='Riley', role='provider'),
        User(id=DEFAULT_HOURS_PROVIDER_ID, email='barber@utexas.edu', display_name='Sam', role='provider'),
        Provider(
            id=PROVIDER_ID,
            location='West Campus',
            availability={'days': [1, 2, 3, 4, 5], 'startTime': '9:00 AM', 'endTime': '6:00 PM'},
        ),
        Provider(id=DEFAULT_HOURS_PROVIDER_ID, location='Jester', availability=None),
        Service(id=SERVICE_ID, provider_id=PROVIDER_ID, name='Grocery Run', price=9.99),
        Service(id=SERVICE_ID + 1, provider_id=DEFAULT_HOURS_PROVIDER_ID, name='Haircut', price=15),
    ])
    db.commit()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine, tables=list(reversed(TABLES)))
