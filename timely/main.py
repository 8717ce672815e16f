# timely/main.py
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from timely.config import Settings
from timely.errors import install_exception_handlers
from timely.routers import auth, profile, sessions
from timely.services.rate_limit import build_limiters, limit
from timely.utils.database import build_engine, build_sessionmaker, create_tables
from timely.utils.logging_setup import configure_logging


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    logger = configure_logging(settings.log_level)
    engine = build_engine(settings.database_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Application Startup: Creating database tables...")
        await create_tables(engine)
        logger.info("Application Startup: Tables created successfully.")
        yield
        await engine.dispose()
        logger.info("Application Shutdown: Goodbye!")

    app = FastAPI(title="Timely API", lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.sessionmaker = build_sessionmaker(engine)
    app.state.limiters = build_limiters()

    install_exception_handlers(app)

    # --- Standard CORS Middleware ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Include Routers ---
    logger.info("Including routers...")
    api_limit = [Depends(limit("api"))]
    app.include_router(auth.router, dependencies=api_limit)      # /api/auth/...
    app.include_router(profile.router, dependencies=api_limit)   # /api/user/...
    app.include_router(sessions.router, dependencies=api_limit)  # /api/sessions...
    logger.info("Routers included.")

    @app.get("/api/health")
    def health_check():
        return {
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": "Timely API",
        }

    return app


def run():
    import uvicorn

    uvicorn.run(create_app(), host="127.0.0.1", port=4000)


if __name__ == "__main__":
    run()
