"""
Shared fixtures for the Minna no Nasu App test suite.
"""

from typing import Any, Dict, Optional
import pytest
from unittest.mock import MagicMock
from fastapi.testclient import TestClient
from google.cloud import firestore

from nasu_app.app import create_app
from nasu_app.dependencies import get_current_user
from nasu_app.schemas.user import AuthenticatedUser, UserRole


def make_snapshot(doc_id: str, data: Optional[Dict[str, Any]]) -> MagicMock:
    """Firestore DocumentSnapshot stand-in; `data=None` means the document is missing."""
    snapshot = MagicMock()
    snapshot.id = doc_id
    snapshot.exists = data is not None
    snapshot.to_dict.return_value = data
    snapshot.reference = MagicMock(name=f"ref:{doc_id}")
    return snapshot


@pytest.fixture
def mock_firebase():
    """FirebaseClient with a MagicMock Firestore and Auth."""
    firebase = MagicMock()
    firebase.get_user.return_value = None
    firebase.get_document.return_value = None
    return firebase


@pytest.fixture
def regular_user():
    return AuthenticatedUser(uid="user_001", role=UserRole.USER.value)


@pytest.fixture
def partner_user():
    return AuthenticatedUser(uid="partner_001", role=UserRole.PARTNER.value)


@pytest.fixture
def paid_partner_user():
    return AuthenticatedUser(uid="partner_002", role=UserRole.PARTNER.value, plan="pro", is_paid=True)


@pytest.fixture
def admin_user():
    return AuthenticatedUser(uid="admin_001", role=UserRole.ADMIN.value)


@pytest.fixture
def app():
    """Fresh FastAPI app per test so dependency overrides never leak."""
    return create_app()


@pytest.fixture
def client(app):
    """TestClient without a signed-in user."""
    return TestClient(app)


@pytest.fixture
def login(app):
    """Sign in as the given user for the rest of the test."""

    def _login(user: AuthenticatedUser) -> TestClient:
        app.dependency_overrides[get_current_user] = lambda: user
        return TestClient(app)

    return _login


@pytest.fixture
def make_doc():
    """Factory for Firestore snapshot stand-ins."""
    return make_snapshot


@pytest.fixture
def inline_transactions(monkeypatch):
    """Run `@firestore.transactional` bodies directly against the mock transaction."""
    monkeypatch.setattr(firestore, "transactional", lambda fn: fn)


@pytest.fixture
def collections(mock_firebase):
    """Separate MagicMock per Firestore collection name."""
    named: Dict[str, MagicMock] = {}

    def collection(name: str) -> MagicMock:
        return named.setdefault(name, MagicMock(name=f"collection:{name}"))

    mock_firebase.db.collection.side_effect = collection
    return collection
