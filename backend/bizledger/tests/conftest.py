import os

# Must be set before bizledger.core.config is imported
os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from bizledger.core.database import Database, enable_sqlite_foreign_keys, get_db
from bizledger.core.roles import Role
from bizledger.core.session import PrincipalSession
from bizledger.main import app
from bizledger.models import Base
from bizledger.schemas import CustomerCreate, InvoiceCreate, UserCreate
from bizledger.services.auth_service import AuthService
from bizledger.services.customer_service import CustomerService
from bizledger.services.invoice_service import InvoiceService


PASSWORD = "secret123"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    with session_factory() as session:
        yield Database(session)


def register_user(db: Database, username: str, role: Role = Role.employee, password: str = PASSWORD) -> int:
    return AuthService(db).register(
        UserCreate(username=username, password=password, full_name=username.title(), role=role)
    )


def login_principal(db: Database, username: str, password: str = PASSWORD):
    session = PrincipalSession()
    assert AuthService(db).login(session, username, password)
    return session.current_principal()


@pytest.fixture
def admin(db):
    register_user(db, "admin", Role.admin)
    return login_principal(db, "admin")


@pytest.fixture
def manager(db):
    register_user(db, "manager", Role.manager)
    return login_principal(db, "manager")


@pytest.fixture
def employee(db):
    register_user(db, "employee", Role.employee)
    return login_principal(db, "employee")


@pytest.fixture
def make_customer(db, employee):
    def _make(name: str = "Ali", **fields) -> int:
        return CustomerService(db).add_customer(CustomerCreate(name=name, **fields), employee)

    return _make


@pytest.fixture
def make_invoice(db, employee):
    def _make(customer_id: int, amount: str = "500.00", issued: date = date(2025, 7, 1), due: date = date(2025, 7, 31), principal=None) -> int:
        data = InvoiceCreate(customer_id=customer_id, amount=Decimal(amount), issued_date=issued, due_date=due)
        return InvoiceService(db).create_invoice(data, principal or employee)

    return _make


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    with session_factory() as session:
        seed_db = Database(session)
        register_user(seed_db, "admin", Role.admin)
        register_user(seed_db, "clerk", Role.employee)

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(client: TestClient, username: str, password: str = PASSWORD) -> dict:
    r = client.post("/auth/login", json={"username": username, "password": password})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}
