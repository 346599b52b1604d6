"""
Health check endpoints for liveness probing
"""
from typing import Optional
from fastapi import FastAPI
from fastapi.responses import JSONResponse, PlainTextResponse
import logging
from database import Database

logger = logging.getLogger(__name__)


def setup_health_routes(app: FastAPI, database: Optional[Database] = None):
    """Add health check routes to FastAPI app"""

    @app.get("/", response_class=PlainTextResponse)
    async def root():
        """Static liveness acknowledgement"""
        return "Bot is running"

    @app.get("/health")
    async def health_check():
        """Database connectivity check"""
        try:
            database_ok = await database.test_connection() if database is not None else False
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            database_ok = False

        return JSONResponse(
            content={
                "status": "healthy" if database_ok else "unhealthy",
                "database": database_ok,
            },
            status_code=200 if database_ok else 503
        )


def create_health_app(database: Optional[Database] = None) -> FastAPI:
    app = FastAPI(title="Auction Bot Health", docs_url=None, redoc_url=None)
    setup_health_routes(app, database)
    return app
