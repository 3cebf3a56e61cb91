"""
Pytest fixtures for medtrade backend tests.

Provides an in-memory application, a per-test clean database, a pinned
clock, and factories that build records through the service layer.
"""

from datetime import datetime, timedelta
from itertools import count

import pytest
from medtrade import create_app
from medtrade.extensions import db
from medtrade.commands import CreateBatch, CreateDealer, CreateRequest
from medtrade.services import dealer_service, inventory_service, request_service
from medtrade.time_utils import FixedClock


# Wednesday 15 January 2025, 09:30 UTC
FIXED_NOW = datetime(2025, 1, 15, 9, 30, 0)
TODAY = FIXED_NOW.date()


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'ALLOW_CASCADE_DELETE': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def clock(app):
    """Pin 'now' for the duration of a test."""
    fixed = FixedClock(FIXED_NOW)
    app.config['CLOCK'] = fixed
    yield fixed
    app.config['CLOCK'] = None


@pytest.fixture(scope='function')
def client(app, db_session):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app, clock):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


_seq = count(1)


@pytest.fixture(scope='function')
def make_dealer(db_session):
    """Factory: register a dealer with unique GST/license numbers."""
    def _make(**overrides):
        n = next(_seq)
        payload = {
            "user_id": f"user_{n}",
            "business_name": f"Dealer {n} Pharma",
            "gst_number": f"27AAAAA{n:04d}A1Z5",
            "license_number": f"MH-20A-{n:05d}",
            "address": f"{n}, MG Road, Mumbai",
            "phone": f"98765{n:05d}",
        }
        payload.update(overrides)
        return dealer_service.create_dealer(CreateDealer.from_payload(payload))
    return _make


@pytest.fixture(scope='function')
def make_batch(db_session):
    """Factory: list a batch for a dealer, expiring `expires_in` days from the pinned today."""
    def _make(dealer, *, expires_in=365, quantity=500, **overrides):
        n = next(_seq)
        expiry = TODAY + timedelta(days=expires_in)
        payload = {
            "dealer_id": dealer.id,
            "name": f"Paracetamol {n}",
            "batch_number": f"PCM{n:06d}",
            "manufacturer": "Sun Pharma",
            "quantity": quantity,
            "mrp": "2.50",
            "dealer_price": "1.80",
            "manufacturing_date": (expiry - timedelta(days=730)).isoformat(),
            "expiry_date": expiry.isoformat(),
        }
        payload.update(overrides)
        return inventory_service.create_batch(CreateBatch.from_payload(payload))
    return _make


@pytest.fixture(scope='function')
def make_request(db_session):
    """Factory: open a PENDING request from `buyer` for `quantity` units of `batch`."""
    def _make(buyer, batch, *, quantity=100):
        return request_service.create_request(CreateRequest(
            requesting_dealer_id=buyer.id,
            responding_dealer_id=batch.dealer_id,
            product_id=batch.id,
            quantity=quantity,
        ))
    return _make


@pytest.fixture(scope='function')
def seller(make_dealer):
    return make_dealer(business_name="MediSupply Distributors", gst_number="27AABCU9603R1ZM")


@pytest.fixture(scope='function')
def buyer(make_dealer):
    return make_dealer(business_name="PharmaCare Wholesale", gst_number="29BBCDE1234F1Z5")


@pytest.fixture(scope='function')
def batch(make_batch, seller):
    return make_batch(seller)


@pytest.fixture(scope='function')
def confirmed_request(make_request, buyer, batch):
    req = make_request(buyer, batch, quantity=100)
    return request_service.transition_request(req.id, "CONFIRMED")
