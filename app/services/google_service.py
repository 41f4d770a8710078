"""Google ID token verification for federated sign-in."""
from dataclasses import dataclass

from google.auth.exceptions import GoogleAuthError
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token
from starlette.concurrency import run_in_threadpool

from app.core.errors import Internal, Unauthenticated, ValidationError


@dataclass
class GoogleIdentity:
    subject: str
    email: str
    name: str | None = None
    picture: str | None = None


class GoogleIdentityVerifier:
    """Checks a Google-signed ID token against our OAuth client id."""

    def __init__(self, client_id: str | None):
        self.client_id = client_id
        self._request = google_requests.Request()

    def _verify_sync(self, credential: str) -> dict:
        return id_token.verify_oauth2_token(credential, self._request, audience=self.client_id)

    async def verify(self, credential: str) -> GoogleIdentity:
        if not credential:
            raise ValidationError("Google credential is required")
        if not self.client_id:
            raise Internal("Google sign-in is not configured (GOOGLE_CLIENT_ID)")
        try:
            # Fetches Google's signing certs over HTTP
            payload = await run_in_threadpool(self._verify_sync, credential)
        except (ValueError, GoogleAuthError) as e:
            print(f"[Auth] Google token rejected: {e}")
            raise Unauthenticated("Invalid Google credential") from e
        email = payload.get("email")
        if not email:
            raise Unauthenticated("Google account has no email")
        return GoogleIdentity(
            subject=payload["sub"],
            email=email,
            name=payload.get("name"),
            picture=payload.get("picture"),
        )
