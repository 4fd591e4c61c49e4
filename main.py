from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from notifyhub.application.use_cases.notifications import seed_notification_types
from notifyhub.infrastructure.database import SessionLocal, engine, initialize_database
from notifyhub.interfaces.api.routes import register_routes


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the tables and default notification types, then release the engine on exit."""

    initialize_database()
    with SessionLocal() as session:
        seed_notification_types(session)
    yield
    engine.dispose()


def create_app() -> FastAPI:
    """Build the FastAPI application serving the notification backend."""

    app = FastAPI(title="notifyhub", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_routes(app)
    return app


app = create_app()
