"""Pytest fixtures for testing"""

import pytest
from datetime import datetime, timedelta
from typing import Generator, List
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from layaway_hub.api.main import create_app
from layaway_hub.domain.exceptions import NotificationDispatchFailed
from layaway_hub.domain.models import FinancingRequest
from layaway_hub.infrastructure.database.models import Base
from layaway_hub.infrastructure.database.session import create_db_engine, init_db
from layaway_hub.services.configuration import ConfigurationService
from layaway_hub.services.lifecycle import LifecycleController


class FakeClock:
    """Controllable replacement for utcnow"""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class RecordingDispatcher:
    """Stands in for NotificationDispatcher; optionally fails every send"""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[FinancingRequest] = []

    def send_delivery_notice(self, request: FinancingRequest) -> str:
        if self.fail:
            raise NotificationDispatchFailed("messaging webhook down")
        self.sent.append(request)
        return f"https://wa.me/test?request={request.id}"


@pytest.fixture
def session_factory(tmp_path) -> Generator[sessionmaker, None, None]:
    """Fresh SQLite database file per test"""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'test.db'}")
    init_db(engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 3, 10, 9, 0, 0))


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def controller(session_factory: sessionmaker, dispatcher: RecordingDispatcher, clock: FakeClock) -> LifecycleController:
    return LifecycleController(session_factory, dispatcher=dispatcher, clock=clock)


@pytest.fixture
def configuration(session_factory: sessionmaker) -> ConfigurationService:
    return ConfigurationService(session_factory)


@pytest.fixture
def client(session_factory: sessionmaker, dispatcher: RecordingDispatcher) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app(session_factory=session_factory, dispatcher=dispatcher)
    return TestClient(app)


@pytest.fixture
def submit(controller: LifecycleController):
    """Submit a phone layaway with sensible defaults; override any field"""

    def _submit(**overrides) -> FinancingRequest:
        fields = dict(
            customer_name="Ada Obi",
            email="ada@example.com",
            phone="08012345678",
            address="12 Marina Road, Lagos",
            product_name="Galaxy S24",
            product_category="phone",
            price=100000,
            plan_months=3,
        )
        fields.update(overrides)
        return controller.submit_request(**fields)

    return _submit
