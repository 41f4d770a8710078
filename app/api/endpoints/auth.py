"""Auth endpoints: signup, login, Google login, current user."""
from fastapi import APIRouter, status

from app.api.deps import DB, CurrentUser, GoogleVerifier, Tokens
from app.schemas.envelope import Envelope
from app.schemas.user import AuthData, GoogleLoginRequest, LoginRequest, SignupRequest, UserData
from app.services.auth_service import (
    auth_response,
    authenticate_user,
    google_login as google_login_svc,
    signup as signup_svc,
    user_to_response,
)

router = APIRouter(prefix="/auth", tags=["auth"])


def _log(msg: str, *args):
    print(f"[Auth] {msg}", *args)


@router.post("/signup", response_model=Envelope[AuthData], status_code=status.HTTP_201_CREATED)
async def signup(data: SignupRequest, db: DB, tokens: Tokens):
    user = await signup_svc(db, data)
    await db.commit()
    return Envelope(message="Signup complete", data=auth_response(user, tokens))


@router.post("/login", response_model=Envelope[AuthData])
async def login(data: LoginRequest, db: DB, tokens: Tokens):
    _log("Login attempt")
    user = await authenticate_user(db, data.email, data.password)
    _log("Login success:", user.id)
    return Envelope(message="Login successful", data=auth_response(user, tokens))


@router.post("/google", response_model=Envelope[AuthData])
async def google_login(data: GoogleLoginRequest, db: DB, tokens: Tokens, verifier: GoogleVerifier):
    identity = await verifier.verify(data.credential)
    user = await google_login_svc(db, identity)
    await db.commit()
    return Envelope(message="Google login successful", data=auth_response(user, tokens))


@router.get("/me", response_model=Envelope[UserData])
async def me(current_user: CurrentUser):
    return Envelope(data=UserData(user=user_to_response(current_user)))
