import os
import sys
from pathlib import Path

# Ajoute la racine du projet au PYTHONPATH EN PREMIER
sys.path.insert(0, str(Path(__file__).parent.parent))

# SQLite pour les tests AVANT d'importer l'app (engine créé à l'import)
os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["APP_ENV"] = "test"

import json
import pytest
from fastapi.testclient import TestClient

from launchbio.core.config import Settings, get_settings
from launchbio.core.database import Base, engine, SessionLocal
from launchbio.main import app
from launchbio.models.user import User
from launchbio.services.render_cache import render_cache

VALID_PASSWORD = "ValidPass123"


@pytest.fixture(autouse=True)
def setup_teardown():
    """Crée et nettoie la DB avant/après chaque test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    render_cache.clear()
    yield
    render_cache.clear()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def test_settings():
    """Settings isolées de l'environnement, modifiables par test"""
    settings = Settings()
    settings.APP_ENV = "test"
    settings.AUTH_SECRET = None
    settings.STRIPE_SECRET_KEY = None
    settings.STRIPE_WEBHOOK_SECRET = None
    settings.SESSION_CLEANUP_PROBABILITY = 0.0
    app.dependency_overrides[get_settings] = lambda: settings
    yield settings
    app.dependency_overrides.pop(get_settings, None)


@pytest.fixture
def client():
    """Client de test FastAPI"""
    return TestClient(app)


@pytest.fixture
def db():
    """Session DB pour les tests"""
    db = SessionLocal()
    yield db
    db.close()


@pytest.fixture
def make_user(db):
    """Crée un utilisateur directement en base"""
    def _make_user(email="owner@example.com", password=VALID_PASSWORD):
        user = User(email=email)
        if password is not None:
            user.set_password(password)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make_user


@pytest.fixture
def login():
    """Connecte un client existant (cookie lb_session conservé par le client)"""
    def _login(client, email="owner@example.com", password=VALID_PASSWORD):
        response = client.post("/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return response
    return _login


@pytest.fixture
def page_form():
    """Champs de formulaire d'une page valide"""
    def _page_form(**overrides):
        data = {
            "title": "Test Launch",
            "description": "Coming soon",
            "eventDate": "2030-12-31",
            "eventTime": "12:00",
            "bgType": "dark-gradient",
            "buttons": json.dumps([{"label": "Join", "url": "https://example.com"}]),
        }
        data.update(overrides)
        return {key: value for key, value in data.items() if value is not None}
    return _page_form
