"""Shared fixtures: in-memory database, model factories and an API client"""

from datetime import datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from repairshop.database import Base, get_db
from repairshop.domain.repairs.router import get_messaging_client
from repairshop.domain.sms.router import get_sms_settings
from repairshop.domain.sms.schemas import SmsSettings
from repairshop.main import app
from repairshop.models import (
    Client,
    ClientPhone,
    Estimate,
    EstimateStatus,
    MessageDirection,
    MessageType,
    Repair,
    RepairPart,
    RepairStatus,
    SmsMessage,
)

from .helpers import AUTH_TOKEN, WEBHOOK_URL, FakeMessagingClient


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
def db_session(engine):
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sms_settings():
    return SmsSettings(
        auth_token=AUTH_TOKEN,
        webhook_url=WEBHOOK_URL,
        shop_name="Sound Technology Inc",
        shop_phone="813-985-1120",
    )


# ----------------------------------------------------------------------------
# Factories
# ----------------------------------------------------------------------------


@pytest.fixture
def make_client(db_session):
    def _make_client(name="Jane Doe", phone=None, phones=(), sms_opted_in=False):
        client = Client(name=name, phone=phone, sms_opted_in=sms_opted_in)
        db_session.add(client)
        db_session.flush()
        for index, number in enumerate(phones):
            db_session.add(
                ClientPhone(client_id=client.id, phone_number=number, is_primary=index == 0)
            )
        db_session.commit()
        return client

    return _make_client


@pytest.fixture
def make_repair(db_session):
    def _make_repair(client, status=RepairStatus.ESTIMATE, **fields):
        fields.setdefault("brand", "Marantz")
        fields.setdefault("model", "2270")
        fields.setdefault("claim_number", "C-1001")
        repair = Repair(client_id=client.id, status=status, **fields)
        db_session.add(repair)
        db_session.commit()
        return repair

    return _make_repair


@pytest.fixture
def make_estimate(db_session):
    def _make_estimate(
        repair, labor_cost="150.00", parts_cost="50.00", status=EstimateStatus.PENDING, total_cost=None
    ):
        labor = Decimal(labor_cost)
        parts = Decimal(parts_cost)
        estimate = Estimate(
            repair_id=repair.id,
            labor_cost=labor,
            parts_cost=parts,
            total_cost=labor + parts if total_cost is None else Decimal(total_cost),
            status=status,
        )
        db_session.add(estimate)
        db_session.commit()
        return estimate

    return _make_estimate


@pytest.fixture
def make_part_line(db_session):
    def _make_part_line(repair, unit_price, quantity=1, name="Output transistor"):
        line = RepairPart(
            repair_id=repair.id, name=name, quantity=quantity, unit_price=Decimal(unit_price)
        )
        db_session.add(line)
        db_session.commit()
        return line

    return _make_part_line


@pytest.fixture
def record_estimate_text(db_session):
    """Log an outbound estimate text, as sending one from the shop would"""

    def _record(client, repair, to_number, created_at=None):
        message = SmsMessage(
            direction=MessageDirection.OUTBOUND,
            message_type=MessageType.ESTIMATE,
            from_number="8135550000",
            to_number=to_number,
            body="Your estimate is ready",
            client_id=client.id,
            repair_id=repair.id,
            created_at=created_at or datetime.utcnow(),
        )
        db_session.add(message)
        db_session.commit()
        return message

    return _record


# ----------------------------------------------------------------------------
# HTTP client
# ----------------------------------------------------------------------------


@pytest.fixture
def messaging_client():
    return FakeMessagingClient()


@pytest.fixture
def api_client(db_session, sms_settings, messaging_client):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_sms_settings] = lambda: sms_settings
    app.dependency_overrides[get_messaging_client] = lambda: messaging_client

    yield TestClient(app)

    app.dependency_overrides.clear()
