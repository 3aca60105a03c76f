import os

import bcrypt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ledger_helpers import ADMIN_PASSWORD, AGENT_API_KEY

ADMIN_PASSWORD_HASH = bcrypt.hashpw(ADMIN_PASSWORD.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("AGENT_API_KEY", AGENT_API_KEY)
os.environ.setdefault("ADMIN_PASSWORD_HASH", ADMIN_PASSWORD_HASH)

import lotledger.models  # noqa: E402,F401
from lotledger.core.config import settings  # noqa: E402
from lotledger.core.deps import get_db  # noqa: E402
from lotledger.core.security import create_access_token  # noqa: E402
from lotledger.db.base import Base  # noqa: E402
from lotledger.main import app  # noqa: E402


@pytest.fixture()
def test_context():
    original_secret = settings.secret_key
    original_agent_key = settings.agent_api_key
    original_admin_hash = settings.admin_password_hash
    settings.secret_key = "test-secret-key"
    settings.agent_api_key = AGENT_API_KEY
    settings.admin_password_hash = ADMIN_PASSWORD_HASH

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    def override_get_db():
        db = session_local()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as client:
        yield client, session_local

    app.dependency_overrides.clear()
    Base.metadata.drop_all(bind=engine)
    settings.secret_key = original_secret
    settings.agent_api_key = original_agent_key
    settings.admin_password_hash = original_admin_hash


@pytest.fixture()
def admin_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token('admin', 'admin')}"}


@pytest.fixture()
def agent_headers() -> dict[str, str]:
    return {"X-API-Key": AGENT_API_KEY}
