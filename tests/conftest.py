import os

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DEDUPLICATION_ENABLED"] = "false"
os.environ["SEED_DEFAULT_CATEGORIES"] = "false"
os.environ["BILLING_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ.pop("REDIS_URL", None)
os.environ.pop("REDIS_HOST", None)

from datetime import date, datetime, time, timedelta  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from barbershop.database import Base, get_db  # noqa: E402
from barbershop.deduplication import reset_request_cache  # noqa: E402
from barbershop.domain.categories.loyalty import seed_default_categories  # noqa: E402
from barbershop.main import app  # noqa: E402
from barbershop.models import (  # noqa: E402
    Appointment,
    AppointmentStatus,
    Branch,
    Category,
    CategoryAssignment,
    Haircut,
    User,
)
from barbershop.rate_limiter import reset_rate_limits  # noqa: E402
from barbershop.security_monitor import security_monitor  # noqa: E402
from barbershop.security_utils import create_access_token, hash_password  # noqa: E402

PASSWORD = "Secreta#2024"
PASSWORD_HASH = hash_password(PASSWORD)

engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.user_type)}"}


def next_weekday(offset_days: int = 1) -> date:
    return date.today() + timedelta(days=offset_days)


@pytest.fixture(autouse=True)
def reset_security_state():
    security_monitor.clear()
    reset_rate_limits()
    reset_request_cache()
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def categories(db):
    seed_default_categories(db)
    return {c.name: c for c in db.query(Category).all()}


@pytest.fixture
def branch(db):
    branch = Branch(street="Avenida Corrientes", number=1234)
    db.add(branch)
    db.commit()
    db.refresh(branch)
    return branch


class Factory:
    """Builds rows straight in the test database"""

    def __init__(self, db):
        self.db = db
        self._dni = 30000000

    def _next_dni(self) -> str:
        self._dni += 1
        return str(self._dni)

    def user(self, first_name="Juan", last_name="Perez", cuil=False, is_admin=False, branch=None, **kwargs):
        dni = kwargs.pop("dni", None) or self._next_dni()
        user = User(
            dni=dni,
            cuil=f"20-{dni}-3" if cuil else None,
            first_name=first_name,
            last_name=last_name,
            email=kwargs.pop("email", None) or f"user{dni}@example.com",
            password_hash=PASSWORD_HASH,
            branch_id=branch.id if branch else None,
            is_admin=is_admin,
            **kwargs,
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def client(self, category=None, started_at=None, **kwargs):
        user = self.user(**kwargs)
        if category is not None:
            self.assign(user, category, started_at or datetime.now() - timedelta(minutes=5))
        return user

    def barber(self, branch=None, **kwargs):
        kwargs.setdefault("first_name", "Carlos")
        kwargs.setdefault("last_name", "Gomez")
        return self.user(cuil=True, branch=branch, **kwargs)

    def admin(self, **kwargs):
        kwargs.setdefault("first_name", "Ana")
        kwargs.setdefault("last_name", "Lopez")
        return self.user(is_admin=True, **kwargs)

    def assign(self, user, category, started_at):
        assignment = CategoryAssignment(client_id=user.id, category_id=category.id, started_at=started_at)
        self.db.add(assignment)
        self.db.commit()
        return assignment

    def haircut(self, name="Corte clásico", base_price=1000.0):
        haircut = Haircut(name=name, base_price=base_price)
        self.db.add(haircut)
        self.db.commit()
        self.db.refresh(haircut)
        return haircut

    def appointment(
        self,
        client,
        barber,
        on_date=None,
        start=time(10, 0),
        end=time(10, 30),
        status=AppointmentStatus.SCHEDULED,
        haircut=None,
        **kwargs,
    ):
        appointment = Appointment(
            client_id=client.id,
            barber_id=barber.id,
            haircut_id=haircut.id if haircut else None,
            date=on_date or date.today(),
            start_time=start,
            end_time=end,
            status=status,
            **kwargs,
        )
        self.db.add(appointment)
        self.db.commit()
        self.db.refresh(appointment)
        return appointment


@pytest.fixture
def factory(db):
    return Factory(db)
