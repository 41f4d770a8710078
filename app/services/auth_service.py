"""Authentication business logic: signup, login, Google login, token identity."""
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import undefer

from app.core.errors import Conflict, InvalidCredentials, Unauthenticated, UserNotFound, ValidationError
from app.core.security import TokenService, get_password_hash, get_unusable_password_hash, verify_password
from app.models.user import User
from app.schemas.user import AuthData, SignupRequest, UserResponse
from app.services.google_service import GoogleIdentity

BEARER_PREFIX = "Bearer "


def _log(msg: str, *args):
    print(f"[Auth] {msg}", *args)


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def get_user_by_email(db: AsyncSession, email: str, with_password: bool = False) -> User | None:
    q = select(User).where(User.email == normalize_email(email))
    if with_password:
        q = q.options(undefer(User.password_hash))
    result = await db.execute(q)
    return result.scalar_one_or_none()


async def get_user_by_id(db: AsyncSession, user_id: UUID) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def signup(db: AsyncSession, data: SignupRequest) -> User:
    name = data.name.strip()
    if not name or not data.password:
        raise ValidationError("Email, password and name are required")
    email = normalize_email(data.email)
    if await get_user_by_email(db, email):
        raise Conflict("Email already registered")
    user = User(
        email=email,
        password_hash=get_password_hash(data.password),
        name=name,
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError as e:
        # Lost a race with a concurrent signup for the same email
        raise Conflict("Email already registered") from e
    _log("Signup:", user.id)
    return user


async def authenticate_user(db: AsyncSession, email: str, password: str) -> User:
    user = await get_user_by_email(db, email, with_password=True)
    if not user or not verify_password(password, user.password_hash):
        raise InvalidCredentials("Invalid email or password")
    return user


async def _flush_google_user(db: AsyncSession) -> None:
    try:
        await db.flush()
    except IntegrityError as e:
        raise Conflict("Google account is already linked to another user") from e


async def google_login(db: AsyncSession, identity: GoogleIdentity) -> User:
    """Sign in with a verified Google identity.

    Creates the account on first sight of the email. An existing email account gets
    the Google id and picture attached the first time it signs in through Google.
    """
    user = await get_user_by_email(db, identity.email)
    if user is None:
        user = User(
            email=normalize_email(identity.email),
            name=(identity.name or identity.email.split("@")[0])[:50],
            password_hash=get_unusable_password_hash(),
            google_id=identity.subject,
            profile_picture=identity.picture,
        )
        db.add(user)
        await _flush_google_user(db)
        _log("New Google user:", user.id)
    elif not user.google_id:
        user.google_id = identity.subject
        user.profile_picture = identity.picture
        await _flush_google_user(db)
        _log("Linked Google account to existing user:", user.id)
    return user


async def resolve_identity(db: AsyncSession, tokens: TokenService, authorization: str | None) -> User:
    """Turn an Authorization header into the user it authenticates."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise Unauthenticated("Authentication required")
    token = authorization[len(BEARER_PREFIX):]
    if not token or " " in token:
        raise Unauthenticated("Authentication required")
    user_id = tokens.verify(token)
    if user_id is None:
        raise Unauthenticated("Invalid or expired token")
    user = await get_user_by_id(db, user_id)
    if user is None:
        raise UserNotFound("User not found")
    return user


def user_to_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        profile_picture=user.profile_picture,
        created_at=user.created_at,
    )


def auth_response(user: User, tokens: TokenService) -> AuthData:
    return AuthData(user=user_to_response(user), token=tokens.issue(user.id))
