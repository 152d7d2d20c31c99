import json
import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("ENV", "test")

from tableside.core.database import Base, get_db  # noqa: E402
from tableside.core.metrics import request_metrics  # noqa: E402
from tableside.models.menu_item import MenuCategory, MenuItem  # noqa: E402
from tableside.models.table import DiningTable, TableStatus  # noqa: E402
from tableside.services.broadcaster import broadcaster  # noqa: E402
from tests.fixtures_data import MENU_ITEMS, TABLES  # noqa: E402


class RecordingSubscriber:
    def __init__(self):
        self.is_open = True
        self.messages = []

    def send(self, message):
        self.messages.append(json.loads(message))

    def types(self):
        return [message["type"] for message in self.messages]

    def of_type(self, event_type):
        return [message["data"] for message in self.messages if message["type"] == event_type]


@pytest.fixture()
def db_session():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    testing_session_local = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    Base.metadata.create_all(bind=engine)

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@pytest.fixture()
def seeded_db(db_session):
    for table in TABLES:
        db_session.add(DiningTable(status=TableStatus.FREE, **table))
    for item in MENU_ITEMS:
        db_session.add(MenuItem(**{**item, "category": MenuCategory(item["category"])}))
    db_session.commit()
    return db_session


@pytest.fixture()
def events():
    recorder = RecordingSubscriber()
    broadcaster.connect(recorder)
    try:
        yield recorder
    finally:
        broadcaster.disconnect(recorder)


@pytest.fixture()
def client(seeded_db, monkeypatch):
    from tableside import main

    monkeypatch.setattr(main, "_startup_tasks", lambda: None)
    main.app.dependency_overrides[get_db] = lambda: seeded_db
    request_metrics.reset()
    try:
        with TestClient(main.app) as test_client:
            yield test_client
    finally:
        main.app.dependency_overrides.clear()
