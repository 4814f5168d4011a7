"""Shared fixtures: a throwaway SQLite database, a seeded catalog and an API client."""

import os

# must be set before furnishop.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TELEGRAM_TOKEN"] = ""
os.environ["PRICE_FRAME_PLANKS"] = "false"

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from furnishop import config
from furnishop.db import Base, get_db
from furnishop.main import app
from furnishop.models import Item, MaterialOption
from furnishop.services.audit import AuditTrail, DbAuditSink

BUYER = {"X-User-Id": "buyer-1", "X-User-Name": "Juan", "X-User-Role": "buyer"}
OTHER_BUYER = {"X-User-Id": "buyer-2", "X-User-Name": "Maria", "X-User-Role": "buyer"}
ADMIN = {"X-User-Id": "admin-1", "X-User-Name": "Staff", "X-User-Role": "admin"}
WEBHOOK = {"X-Webhook-Secret": config.PAYMENT_WEBHOOK_SECRET}


class RecordingSink:
    """Audit sink that keeps every event in memory."""

    def __init__(self):
        self.events = []

    def emit(self, event):
        self.events.append(event)

    def status_events(self):
        return [e for e in self.events if e.field == "status"]


@pytest.fixture
def engine(tmp_path):
    # file database so that separate sessions see each other's commits
    eng = create_engine(
        f"sqlite:///{tmp_path / 'furnishop.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def recorder():
    return RecordingSink()


@pytest.fixture
def audit(recorder, session_factory):
    return AuditTrail([recorder, DbAuditSink(session_factory)])


@pytest.fixture
def catalog(db):
    """One customizable table and one stock chair."""
    table = Item(
        name="Narra Dining Table",
        price=Decimal("12000"),
        stock=0,
        length=Decimal("6"),
        width=Decimal("3"),
        height=Decimal("2.5"),
        is_customizable=True,
        labor_cost_per_day=Decimal("350"),
        estimated_days=7,
        profit_margin=Decimal("0.5"),
        overhead_cost=Decimal("500"),
    )
    table.materials = [
        MaterialOption(name="Mahogany", plank_3x3_cost=Decimal("200"), plank_2x12_cost=Decimal("650")),
        MaterialOption(name="Narra", plank_3x3_cost=Decimal("320"), plank_2x12_cost=Decimal("800")),
    ]
    chair = Item(
        name="Monobloc Chair",
        price=Decimal("1000"),
        stock=10,
        length=Decimal("2"),
        width=Decimal("2"),
        height=Decimal("3"),
        is_customizable=False,
    )
    db.add_all([table, chair])
    db.commit()
    return {"table": table.id, "chair": chair.id}


@pytest.fixture
def client(session_factory, audit, tmp_path, monkeypatch):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    monkeypatch.setattr(config, "UPLOAD_DIR", tmp_path / "proofs")
    app.dependency_overrides[get_db] = override_get_db
    previous_audit = app.state.audit
    app.state.audit = audit
    with TestClient(app) as c:
        yield c
    app.state.audit = previous_audit
    app.dependency_overrides.clear()


@pytest.fixture
def custom_table():
    return {
        "length": 6,
        "width": 3,
        "height": 2.5,
        "leg_material_name": "Mahogany",
        "top_material_name": "Narra",
        "labor_days": 7,
    }


@pytest.fixture
def address():
    return {
        "full_name": "Juan dela Cruz",
        "phone": "09171234567",
        "address_line1": "12 Rizal St",
        "city": "Cebu City",
        "province": "Cebu",
        "postal_code": "6000",
    }


@pytest.fixture
def make_order(db, catalog):
    """Create an order through the checkout service.

    ``custom=True`` adds one made-to-order table, ``chairs`` stock chairs.
    """
    from types import SimpleNamespace

    from furnishop.services.orders import create_order

    def _make(custom=True, chairs=0, delivery="delivery", payment_type="full_payment", shipping_fee=0, user_id="buyer-1"):
        lines = []
        if custom:
            lines.append(SimpleNamespace(
                item_id=catalog["table"],
                quantity=1,
                custom=SimpleNamespace(
                    length=6, width=3, height=2.5,
                    leg_material_name="Mahogany", top_material_name="Narra", labor_days=7,
                ),
            ))
        if chairs:
            lines.append(SimpleNamespace(item_id=catalog["chair"], quantity=chairs, custom=None))
        address = SimpleNamespace(
            full_name="Juan dela Cruz", phone="09171234567", address_line1="12 Rizal St",
            city="Cebu City", province="Cebu", postal_code="6000",
        )
        order, _ = create_order(
            db, user_id, lines, delivery, payment_type=payment_type,
            shipping_fee=shipping_fee, shipping_address=address if delivery == "delivery" else None,
        )
        return order

    return _make
