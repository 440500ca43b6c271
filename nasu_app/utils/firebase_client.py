"""
Firebase Admin access for the Minna no Nasu App backend.
Wraps Firebase Auth and Firestore behind lazily created clients.
"""

from typing import Any, Dict, Optional
import firebase_admin
from firebase_admin import auth, credentials, firestore
from loguru import logger

from ..config import settings


class FirebaseClient:
    """Client for Firebase Auth and Firestore."""

    def __init__(self, credentials_path: Optional[str] = None, project_id: Optional[str] = None):
        """Initialize Firebase settings; the app itself is created on first use."""
        self.credentials_path = credentials_path or settings.firebase_credentials_path
        self.project_id = project_id or settings.firebase_project_id

        # Lazy initialization of clients
        self._app = None
        self._db = None

    @property
    def app(self):
        """Get or create the Firebase Admin app."""
        if self._app is None:
            try:
                self._app = firebase_admin.get_app()
            except ValueError:
                options = {"projectId": self.project_id} if self.project_id else None
                if self.credentials_path:
                    cred = credentials.Certificate(self.credentials_path)
                else:
                    cred = credentials.ApplicationDefault()
                self._app = firebase_admin.initialize_app(cred, options)
                logger.info(f"Firebase Admin initialized (project: {self.project_id or 'default'})")
        return self._app

    @property
    def auth(self):
        """Firebase Auth module bound to the initialized app."""
        _ = self.app
        return auth

    @property
    def db(self):
        """Get or create the Firestore client."""
        if self._db is None:
            self._db = firestore.client(app=self.app)
        return self._db

    def collection(self, name: str):
        """Top-level collection reference."""
        return self.db.collection(name)

    def artifact_collection(self, *path: str):
        """
        Collection under the per-app artifact namespace.

        Args:
            *path: Path segments below `artifacts/{app_id}`, e.g.
                ("users", uid, "moodLogs")

        Returns:
            Firestore collection reference
        """
        return self.db.collection("artifacts", settings.app_id, *path)

    def get_document(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Get a document as a dict, or None when it does not exist."""
        doc = self.db.collection(collection).document(doc_id).get()
        if doc.exists:
            return doc.to_dict()
        return None

    def get_user(self, uid: str) -> Optional[Dict[str, Any]]:
        """Get a `users/{uid}` document."""
        return self.get_document(settings.firestore_collection_users, uid)


# Global client instance
firebase_client = FirebaseClient()
