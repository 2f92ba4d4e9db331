"""
Test configuration and fixtures for the CRM test suite
"""
from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterator, Tuple

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from packages.crm import security
from packages.crm.api import create_app
from packages.crm.models import Company, User
from packages.crm.service import CRMDatabase, CRMService, init_engine
from packages.crm.settings import CRMSettings

TEST_SECRET = "test-secret-key-with-at-least-32-bytes!!"


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch):
    """Use the minimum bcrypt cost so auth tests stay fast."""
    original_gensalt = security.bcrypt.gensalt
    monkeypatch.setattr(
        security.bcrypt, "gensalt", lambda rounds=4, prefix=b"2b": original_gensalt(4, prefix)
    )
    security._dummy_hash.cache_clear()
    yield
    security._dummy_hash.cache_clear()


@pytest.fixture()
def temp_db_path(tmp_path: Path) -> Path:
    return tmp_path / "crm.db"


@pytest.fixture()
def make_settings(temp_db_path: Path) -> Callable[..., CRMSettings]:
    def _make(**overrides) -> CRMSettings:
        values = {
            "database_url": f"sqlite:///{temp_db_path}",
            "secret_key": TEST_SECRET,
        }
        values.update(overrides)
        return CRMSettings(**values)

    return _make


@pytest.fixture()
def service(make_settings) -> Iterator[CRMService]:
    settings = make_settings()
    engine = init_engine(settings)
    CRMDatabase(engine).create_all()
    SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)
    session = SessionLocal()
    try:
        yield CRMService(session=session, settings=settings)
    finally:
        session.close()
        engine.dispose()


@pytest.fixture()
def owner_and_company(service: CRMService) -> Tuple[User, Company]:
    """A user to act as caller and a company to attach projects to."""
    from packages.crm import schemas

    user = service.create_user(
        schemas.UserCreateRequest(email="pm@example.com", first_name="Pat", last_name="Mason")
    )
    company = service.create_company(
        schemas.CompanyCreateRequest(name="Acme Builders", industry="Construction")
    )
    return user, company


@pytest.fixture()
def client() -> Iterator[TestClient]:
    settings = CRMSettings(
        database_url="sqlite+pysqlite:///:memory:",
        secret_key=TEST_SECRET,
    )
    with TestClient(create_app(settings)) as test_client:
        yield test_client


def pytest_configure(config):
    """Configure pytest"""
    config.addinivalue_line("markers", "unit: fast tests without external services")
    config.addinivalue_line("markers", "api: tests driving the FastAPI app through TestClient")


def pytest_collection_modifyitems(config, items):
    """Auto-mark API tests."""
    for item in items:
        if "test_api" in item.nodeid:
            item.add_marker(pytest.mark.api)
        else:
            item.add_marker(pytest.mark.unit)
