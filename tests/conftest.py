from datetime import date
from decimal import Decimal

import pytest
from flask_jwt_extended import create_access_token

from hotel_api import create_app
from hotel_api.extensions import db, cache
from hotel_api.common.auth import user_claims
from hotel_api.models.booking import Booking
from hotel_api.models.employee import Employee
from hotel_api.models.establishment import Establishment, Accommodation
from hotel_api.models.finance import Invoice, Expense
from hotel_api.models.user import User
from hotel_api.services.establishment_context import EstablishmentServiceContext


@pytest.fixture(scope="function")
def app(tmp_path):
    app = create_app(test_config={
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        "JWT_SECRET_KEY": "test-secret",
        "REPORTS_STORAGE_ROOT": str(tmp_path / "reports"),
        "CACHE_TYPE": "SimpleCache",
    })
    with app.app_context():
        cache.clear()
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()
        cache.clear()


@pytest.fixture(scope="function")
def session(app):
    with app.app_context():
        yield db.session


@pytest.fixture
def client(app):
    return app.test_client()


# ---------- factories ----------

_seq = {"n": 0}

def _next():
    _seq["n"] += 1
    return _seq["n"]


def make_user(session, role="staff", establishment=None, email=None, password="secret"):
    u = User(
        email=email or f"user{_next()}@test.local",
        full_name=f"{role.title()} User",
        role=role,
        status="active",
        establishment_id=establishment.id if establishment else None,
    )
    u.set_password(password)
    session.add(u)
    session.commit()
    return u


def make_establishment(session, name=None, city="Lyon"):
    est = Establishment(name=name or f"Hotel {_next()}", city=city, pricing_mode="nightly",
                        services=[], is_active=True)
    session.add(est)
    session.commit()
    return est


def make_employee(session, establishment, salary="2000", status="active", first_name="Emma"):
    n = _next()
    emp = Employee(
        establishment_id=establishment.id,
        employee_number=f"EMP-2025-{n:04d}",
        first_name=first_name,
        last_name=f"Tester{n}",
        position="Receptionist",
        hire_date=date(2024, 1, 1),
        salary=Decimal(salary),
        status=status,
    )
    session.add(emp)
    session.commit()
    return emp


def make_accommodation(session, establishment, name=None, type_="standard_room"):
    a = Accommodation(establishment_id=establishment.id, name=name or f"Room {_next()}",
                      type=type_, base_price=Decimal("90"))
    session.add(a)
    session.commit()
    return a


def make_booking(session, accommodation, check_in, check_out, status="confirmed", total="200"):
    b = Booking(
        establishment_id=accommodation.establishment_id,
        accommodation_id=accommodation.id,
        booking_code=f"BK-{_next():06d}",
        check_in=check_in,
        check_out=check_out,
        status=status,
        total_price=Decimal(total),
    )
    session.add(b)
    session.commit()
    return b


def make_invoice(session, establishment, total, balance, status, issued_at):
    inv = Invoice(
        establishment_id=establishment.id,
        invoice_number=f"INV-{_next():06d}",
        total=Decimal(total),
        balance=Decimal(balance),
        status=status,
        issued_at=issued_at,
    )
    session.add(inv)
    session.commit()
    return inv


def make_expense(session, establishment, amount, category="utilities", status="approved", on=date(2025, 1, 5)):
    e = Expense(establishment_id=establishment.id, category=category, amount=Decimal(amount),
                date=on, status=status, description="test")
    session.add(e)
    session.commit()
    return e


def ctx_for(role, establishment=None, user_id=1):
    return EstablishmentServiceContext(user_id, role, establishment.id if establishment else None)


def auth_headers(user):
    token = create_access_token(identity=str(user.id), additional_claims=user_claims(user))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def two_hotels(session):
    """Establishments A and B, one employee each."""
    a = make_establishment(session, "Hotel A")
    b = make_establishment(session, "Hotel B", city="Nice")
    return {
        "a": a,
        "b": b,
        "emp_a": make_employee(session, a),
        "emp_b": make_employee(session, b, first_name="Bob"),
    }
