# storefront/services/identity.py
"""Bearer-token verification against the identity provider (Firebase)."""
import firebase_admin
from firebase_admin import auth as firebase_auth, credentials
from flask import current_app


class IdentityError(Exception):
    pass


def normalize_claims(decoded: dict) -> dict:
    return {
        "uid": decoded.get("uid") or decoded.get("sub"),
        "email": decoded.get("email"),
        "name": decoded.get("name"),
        "picture": decoded.get("picture"),
        "phone_number": decoded.get("phone_number"),
    }


class FirebaseVerifier:
    def __init__(self, credentials_path=None, project_id=None, app_name="storefront"):
        self.credentials_path = credentials_path
        self.project_id = project_id
        self.app_name = app_name
        self._app = None

    def _firebase_app(self):
        # initialised on first use so the API boots without credentials
        if self._app is None:
            try:
                self._app = firebase_admin.get_app(self.app_name)
            except ValueError:
                cred = credentials.Certificate(self.credentials_path) if self.credentials_path else None
                options = {"projectId": self.project_id} if self.project_id else None
                self._app = firebase_admin.initialize_app(cred, options, name=self.app_name)
        return self._app

    def verify(self, token: str) -> dict:
        try:
            decoded = firebase_auth.verify_id_token(token, app=self._firebase_app())
        except (
            firebase_auth.InvalidIdTokenError,
            firebase_auth.CertificateFetchError,
            ValueError,
        ) as e:
            raise IdentityError(str(e)) from e
        return normalize_claims(decoded)


def build_identity_verifier(config):
    return FirebaseVerifier(
        credentials_path=config.get("FIREBASE_CREDENTIALS"),
        project_id=config.get("FIREBASE_PROJECT_ID"),
    )


def get_identity_verifier():
    return current_app.extensions["identity_verifier"]
