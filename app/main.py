"""Blog API - FastAPI application."""
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles

from app.api.errors import register_exception_handlers
from app.api.router import api_router
from app.core.config import Settings, settings as default_settings
from app.core.security import TokenService
from app.db.session import Database
from app.services.google_service import GoogleIdentityVerifier
from app.services.storage_service import ImageUploader


@asynccontextmanager
async def lifespan(app: FastAPI):
    database: Database = app.state.database
    try:
        await database.ping()
        print("[Backend] Database: OK")
    except Exception as e:
        # Requests will get 503 until the database comes back
        print("[Backend] WARNING: Database connection failed:", e)
    print("[Backend] API: /api | Docs: /docs | Health: /health | Ready (DB): /ready")
    yield
    await database.dispose()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Composition root: builds the store handle and services and wires the routes."""
    settings = settings or default_settings
    app = FastAPI(
        title=settings.APP_NAME,
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings
    app.state.database = Database(
        settings.DATABASE_URL,
        echo=settings.DEBUG,
        connect_timeout=settings.DATABASE_CONNECT_TIMEOUT,
    )
    app.state.tokens = TokenService(
        settings.JWT_SECRET_KEY,
        settings.JWT_ALGORITHM,
        settings.ACCESS_TOKEN_EXPIRE_DAYS,
    )
    app.state.uploader = ImageUploader.from_settings(settings)
    app.state.google_verifier = GoogleIdentityVerifier(settings.GOOGLE_CLIENT_ID)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app, debug=settings.DEBUG)
    app.include_router(api_router, prefix="/api")

    # Serve locally stored images
    uploads_dir = Path(settings.UPLOAD_DIR).resolve()
    uploads_dir.mkdir(parents=True, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=str(uploads_dir)), name="uploads")

    @app.get("/api")
    async def root():
        return {
            "success": True,
            "message": f"{settings.APP_NAME} is running",
            "data": {
                "endpoints": {
                    "health": "GET /health",
                    "signup": "POST /api/auth/signup",
                    "login": "POST /api/auth/login",
                    "google": "POST /api/auth/google",
                    "me": "GET /api/auth/me",
                    "posts": "GET|POST /api/posts",
                    "comments": "GET|POST /api/posts/{post_id}/comments",
                },
            },
        }

    @app.get("/favicon.ico", include_in_schema=False)
    async def favicon():
        return Response(status_code=204)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/ready")
    async def ready():
        """Health check including DB - use to verify backend is fully operational."""
        try:
            await app.state.database.ping()
            return {"status": "ok", "database": "connected"}
        except Exception as e:
            print("[Backend] Readiness check failed:", type(e).__name__)
            return JSONResponse(
                status_code=503,
                content={"status": "error", "database": "unavailable"},
            )

    return app


app = create_app()
