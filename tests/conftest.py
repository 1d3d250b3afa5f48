import pytest
import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["CRON_API_KEY"] = "test-cron-key"
os.environ["RATE_LIMIT_PUBLIC"] = "1000/minute"
os.environ["DEFAULT_CC"] = ""
os.environ["ADMIN_EMAIL"] = "admin-inbox@example.com"
os.environ.pop("MJ_APIKEY_PUBLIC", None)
os.environ.pop("MJ_APIKEY_PRIVATE", None)

from portal.core.exceptions import EmailDeliveryError
from portal.database import Base, get_db
from portal.main import app
from portal.services.mailer import get_mailer
from portal.services.storage import StoredFile, build_object_name, get_storage
from fastapi.testclient import TestClient

# SQLite in-memory database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

STAFF_PASSWORD = "StaffPassword123!"


class FakeMailer:
    """Records every message instead of calling Mailjet."""

    def __init__(self):
        self.sent = []
        self.fail = False

    def send_email(self, to, subject, body, reply_to=None, cc=None, from_email=None):
        if self.fail:
            raise EmailDeliveryError("Mail service unavailable")
        self.sent.append({
            "to": to, "subject": subject, "body": body,
            "reply_to": reply_to, "cc": list(cc or []), "from_email": from_email,
        })
        return {"Messages": [{"Status": "success"}]}

    def subjects(self):
        return [message["subject"] for message in self.sent]


class FakeStorage:
    """In-memory stand-in for the MinIO bucket."""

    def __init__(self):
        self.objects = {}
        self.deleted = []

    def upload(self, data, file_name, content_type, prefix=None):
        object_name = build_object_name(file_name, prefix)
        self.objects[object_name] = data
        return StoredFile(
            object_name=object_name,
            file_name=file_name,
            content_type=content_type,
            size_bytes=len(data),
            url=f"http://storage.test/bucket/{object_name}",
        )

    def signed_url(self, object_name, expires_minutes=None):
        return f"http://storage.test/bucket/{object_name}?signature=abc"

    def delete(self, object_name):
        self.objects.pop(object_name, None)
        self.deleted.append(object_name)


@pytest.fixture(scope="session", autouse=True)
def setup_database():
    """Create tables once for the whole test session."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """Get a clean database session for each test function with rollback safety."""
    connection = engine.connect()
    transaction = connection.begin()
    session = TestingSessionLocal(bind=connection)

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture(scope="function")
def mailer():
    return FakeMailer()


@pytest.fixture(scope="function")
def storage():
    return FakeStorage()


@pytest.fixture(scope="function")
def department(db_session):
    from portal.models.department import Department
    dept = Department(name="Kitchen", email="kitchen@example.com")
    db_session.add(dept)
    db_session.commit()
    return dept


def _make_user(db_session, email, role, first_name, last_name, department_id=None, password=STAFF_PASSWORD):
    from portal.models.user import User
    from portal.services import auth as auth_service

    user = User(
        email=email,
        hashed_password=auth_service.get_password_hash(password),
        first_name=first_name,
        last_name=last_name,
        role=role,
        department_id=department_id,
        is_active=True,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope="function")
def admin_user(db_session):
    from portal.models.user import UserRole
    return _make_user(db_session, "admin@example.com", UserRole.admin, "Ada", "Admin")


@pytest.fixture(scope="function")
def manager_user(db_session):
    from portal.models.user import UserRole
    return _make_user(db_session, "manager@example.com", UserRole.manager, "Mere", "Manager")


@pytest.fixture(scope="function")
def staff_user(db_session, department):
    from portal.models.user import UserRole
    return _make_user(db_session, "staff@example.com", UserRole.user, "Sam", "Staff", department_id=department.id)


@pytest.fixture(scope="function")
def other_staff_user(db_session):
    from portal.models.user import UserRole
    return _make_user(db_session, "other@example.com", UserRole.user, "Olive", "Other")


@pytest.fixture(scope="function")
def induction(db_session):
    from portal.models.induction import Induction
    item = Induction(
        name="Food Safety",
        department="Kitchen",
        description="Handling food safely",
        questions=[],
        is_draft=False,
    )
    db_session.add(item)
    db_session.commit()
    return item


@pytest.fixture(scope="function")
def make_assignment(db_session):
    """Factory for UserInduction rows in a given state."""
    from portal.models.user_induction import InductionStatus, UserInduction

    def _make(user, induction, status=InductionStatus.assigned, **fields):
        record = UserInduction(
            user_id=user.id,
            induction_id=induction.id,
            induction_name=induction.name,
            status=status,
            **fields,
        )
        db_session.add(record)
        db_session.commit()
        return record
    return _make


@pytest.fixture(scope="function")
def get_token():
    """Helper fixture to create access tokens."""
    from portal.services.auth import create_access_token

    def _get_token(user):
        return create_access_token(data={"sub": user.email, "role": user.role.value, "user_id": user.id})
    return _get_token


@pytest.fixture(scope="function")
def auth_headers(get_token):
    def _headers(user):
        return {"Authorization": f"Bearer {get_token(user)}"}
    return _headers


@pytest.fixture(scope="function")
def client(db_session, mailer, storage):
    """TestClient wired to the test session and the in-memory mail and storage fakes."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_storage] = lambda: storage
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
