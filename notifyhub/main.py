from fastapi import FastAPI

from notifyhub.interfaces.api.routes import register_routes


def create_app() -> FastAPI:
    """Application without startup hooks; callers manage the database."""

    app = FastAPI(title="notifyhub")
    register_routes(app)
    return app


app = create_app()
