import pytest
import os
from datetime import date
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

from hr_evidence.database import Base, get_db
from hr_evidence.main import app
from fastapi.testclient import TestClient

# SQLite in-memory database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

@pytest.fixture(scope="function")
def engine():
    """Fresh in-memory database per test so commits and rollbacks are real."""
    engine = create_engine(
        SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()

@pytest.fixture(scope="function")
def db_session(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()

@pytest.fixture(scope="function")
def make_employee(db_session):
    """Factory for employees; numbers are unique per test."""
    from hr_evidence.models.employee import Employee
    counter = {"n": 0}

    def _make_employee(**kw):
        counter["n"] += 1
        data = {
            "employee_number": f"EMP{counter['n']:04d}",
            "first_name": "Test",
            "last_name": f"Employee{counter['n']}",
            "position": "Engineer",
            "department": "Engineering",
        }
        data.update(kw)
        employee = Employee(**data)
        db_session.add(employee)
        db_session.commit()
        return employee
    return _make_employee

@pytest.fixture(scope="function")
def manager(make_employee):
    return make_employee(first_name="Maria", last_name="Manager", position="Engineering Manager")

@pytest.fixture(scope="function")
def employee(make_employee, manager):
    return make_employee(first_name="Evan", last_name="Employee", manager_id=manager.id)

@pytest.fixture(scope="function")
def period(db_session):
    from hr_evidence.models.evaluation_period import EvaluationPeriod
    period = EvaluationPeriod(
        period_name="2024 Q1 Evaluation",
        period_type="quarterly",
        start_date=date(2024, 1, 1),
        end_date=date(2024, 3, 31),
        status="active",
    )
    db_session.add(period)
    db_session.commit()
    return period

@pytest.fixture(scope="function")
def evaluation(db_session, employee, manager, period):
    from hr_evidence.models.evaluation import Evaluation
    evaluation = Evaluation(employee_id=employee.id, evaluator_id=manager.id, period_id=period.id)
    db_session.add(evaluation)
    db_session.commit()
    return evaluation

@pytest.fixture(scope="function")
def add_entry(db_session, employee, manager):
    """Adds a journal entry for the default employee unless told otherwise."""
    from hr_evidence.models.evidence_entry import EvidenceEntry

    def _add_entry(dimension, star_rating, entry_date=date(2024, 2, 15), **kw):
        entry = EvidenceEntry(
            employee_id=kw.pop("employee_id", employee.id),
            manager_id=kw.pop("manager_id", manager.id),
            content=kw.pop("content", f"{dimension} observation rated {star_rating}"),
            star_rating=star_rating,
            dimension=dimension,
            entry_date=entry_date,
        )
        db_session.add(entry)
        db_session.commit()
        return entry
    return _add_entry

@pytest.fixture(scope="function")
def client(db_session):
    """Get a TestClient that uses the test database session via dependency override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
