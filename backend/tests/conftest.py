"""
Pytest fixtures for laundry backend tests.

Provides an in-memory database per session (tables cleared per test),
two outlets, admin and staff users with their Callers, and a test client.
Concurrency tests get a file-backed app and a thread runner instead.
"""

import threading
from datetime import timedelta

import pytest

from laundry import create_app
from laundry.extensions import db
from laundry.models import Customer, User
from laundry.services import invoice_service, outlet_service, session_service
from laundry.services.access_policy import Caller
from laundry.services.auth_service import hash_password
from laundry.catalog import ROLE_ADMIN, ROLE_STAFF
from laundry.time_utils import today

PASSWORD = "Password123!"

SYSTEM_ADMIN = Caller(user_id=None, role=ROLE_ADMIN)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='session')
def password_hash():
    """bcrypt at cost 12 is slow; hash the shared test password once."""
    return hash_password(PASSWORD)


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Fresh data for each test; schema is kept."""
    with app.app_context():
        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        db.session.rollback()


# =============================================================================
# OUTLETS
# =============================================================================

@pytest.fixture(scope='function')
def outlet_bd(db_session):
    """Outlet with prefix BD (invoice numbers BD0001, BD0002, ...)."""
    return outlet_service.create_outlet(SYSTEM_ADMIN, name="Bandra", prefix="BD")


@pytest.fixture(scope='function')
def outlet_second(db_session):
    return outlet_service.create_outlet(SYSTEM_ADMIN, name="Andheri", prefix="AN")


# =============================================================================
# USERS + CALLERS
# =============================================================================

def _make_user(db_session, password_hash, email, role, outlet_id=None):
    user = User(
        email=email,
        full_name=email.split("@")[0].title(),
        password_hash=password_hash,
        role=role,
        outlet_id=outlet_id,
        is_active=True,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def admin_user(db_session, password_hash):
    return _make_user(db_session, password_hash, "admin@laundry.test", ROLE_ADMIN)


@pytest.fixture(scope='function')
def staff_user(db_session, password_hash, outlet_bd):
    return _make_user(db_session, password_hash, "staff@laundry.test", ROLE_STAFF, outlet_bd.id)


@pytest.fixture(scope='function')
def other_staff_user(db_session, password_hash, outlet_second):
    return _make_user(db_session, password_hash, "other@laundry.test", ROLE_STAFF, outlet_second.id)


@pytest.fixture(scope='function')
def admin(admin_user):
    return Caller.from_user(admin_user)


@pytest.fixture(scope='function')
def staff(staff_user):
    return Caller.from_user(staff_user)


@pytest.fixture(scope='function')
def other_staff(other_staff_user):
    return Caller.from_user(other_staff_user)


# =============================================================================
# DOMAIN DATA
# =============================================================================

@pytest.fixture(scope='function')
def customer(db_session, outlet_bd):
    customer = Customer(outlet_id=outlet_bd.id, name="Asha Rao", phone="9820000001", address="Hill Road")
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def make_invoice(admin, outlet_bd, customer):
    """Factory: invoice at outlet BD with the given (quantity, rate_paise) lines."""
    def _make(lines=((1, 100000),), caller=None):
        items = [
            {
                "product_category": "Saree",
                "product_type": "Silk",
                "services": ["Polish"],
                "quantity": quantity,
                "rate_paise": rate,
            }
            for quantity, rate in lines
        ]
        return invoice_service.create_invoice(
            caller or admin,
            outlet_id=outlet_bd.id,
            customer_id=customer.id,
            delivery_date=today() + timedelta(days=3),
            items=items,
        )
    return _make


# =============================================================================
# HTTP AUTH
# =============================================================================

def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    _, token = session_service.create_session(admin_user.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def staff_headers(staff_user):
    _, token = session_service.create_session(staff_user.id)
    return auth_headers(token)


# =============================================================================
# CONCURRENCY (file-backed SQLite, one app context per thread)
# =============================================================================

@pytest.fixture
def file_app(tmp_path):
    """Separate app on a file database so threads really share it."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'concurrency.sqlite3'}",
        'SQLALCHEMY_ENGINE_OPTIONS': {"connect_args": {"timeout": 30}},
    })
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


def _run_threads(target, count):
    errors = []
    results = []
    lock = threading.Lock()

    def worker(index):
        try:
            value = target(index)
        except Exception as e:  # surfaced through the caller's assertions
            with lock:
                errors.append(e)
            return
        with lock:
            results.append(value)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return results, errors


@pytest.fixture
def run_threads():
    """run_threads(target, count) -> (results, errors); target gets the thread index."""
    return _run_threads


@pytest.fixture
def file_invoice(file_app):
    """Factory: invoice at outlet BD in the file database, committed before threads start."""
    def _make(lines=((1, 100000),)):
        outlet = outlet_service.create_outlet(SYSTEM_ADMIN, name="Bandra", prefix="BD")
        customer = Customer(outlet_id=outlet.id, name="Asha Rao", phone="9820000001")
        db.session.add(customer)
        db.session.commit()
        return invoice_service.create_invoice(
            SYSTEM_ADMIN,
            outlet_id=outlet.id,
            customer_id=customer.id,
            delivery_date=today() + timedelta(days=3),
            items=[
                {
                    "product_category": "Saree",
                    "product_type": "Silk",
                    "services": ["Polish"],
                    "quantity": quantity,
                    "rate_paise": rate,
                }
                for quantity, rate in lines
            ],
        )
    return _make
