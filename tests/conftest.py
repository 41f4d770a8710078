import pytest
from httpx import ASGITransport, AsyncClient

from app.core.config import Settings
from app.core.errors import Unauthenticated
from app.main import create_app
from app.services.google_service import GoogleIdentity


class FakeGoogleVerifier:
    """Accepts credentials registered in `identities`, rejects everything else."""

    def __init__(self):
        self.identities: dict[str, GoogleIdentity] = {}

    async def verify(self, credential: str) -> GoogleIdentity:
        if credential not in self.identities:
            raise Unauthenticated("Invalid Google credential")
        return self.identities[credential]


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        JWT_SECRET_KEY="test-secret",
        UPLOAD_DIR=str(tmp_path / "uploads"),
        MEDIA_BASE_URL="http://testserver",
        STORAGE_BACKEND="local",
        MAX_UPLOAD_SIZE_MB=1,
        MAX_UPLOAD_FILES=5,
        GOOGLE_CLIENT_ID="test-client-id",
    )


@pytest.fixture
async def app(settings):
    app = create_app(settings)
    app.state.google_verifier = FakeGoogleVerifier()
    await app.state.database.create_all()
    yield app
    await app.state.database.dispose()


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as c:
        yield c


@pytest.fixture
async def db(app):
    async with app.state.database.session() as session:
        yield session


@pytest.fixture
def signup(client):
    """Sign up a user through the API; returns (auth headers, user json)."""

    async def _signup(email: str, name: str = "Tester", password: str = "secret1"):
        resp = await client.post("/api/auth/signup", json={"email": email, "password": password, "name": name})
        assert resp.status_code == 201, resp.text
        data = resp.json()["data"]
        return {"Authorization": f"Bearer {data['token']}"}, data["user"]

    return _signup
