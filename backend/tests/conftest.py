import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import control_center.main as main_module
from control_center.database import Base, get_db, init_db
from control_center.main import app
from control_center.middleware.rate_limit import limiter
from control_center.services.encryption import TokenCipher, get_token_cipher

TEST_SECRET = "test-secret-key-32-bytes-minimum!"


@pytest.fixture
def db_session():
    """Create a fresh in-memory database for each test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def cipher():
    """Token cipher bound to a fixed test secret."""
    return TokenCipher(TEST_SECRET)


@pytest.fixture
def client(db_session, cipher):
    """Test client using the test database and cipher, with rate limiting disabled."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_token_cipher] = lambda: cipher

    # Disable rate limiting for tests
    limiter.enabled = False

    # Point startup table creation at the test database
    original_engine = main_module.engine
    main_module.engine = db_session.get_bind()

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    limiter.enabled = True
    main_module.engine = original_engine
