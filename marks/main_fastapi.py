from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import Response

from marks.routers.bookmarks import router as bookmarks_router
from marks.routers.health import router as health_router
from marks.services.change_feed import close_redis
from marks.utils.telemetry import init_otel
from marks.db.base import async_engine
from marks.middleware.error_handler import ErrorHandlerMiddleware, setup_exception_handlers
from marks.observability.logger import configure_logging
from marks import config


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(config)
    yield
    # release shared connections on shutdown
    await close_redis()
    await async_engine.dispose()


app = FastAPI(
    title="Marks API",
    description="Bookmark persistence gateway with a live change feed",
    version="1.0.0",
    lifespan=lifespan,
)

# Error handler is the outermost middleware so it catches everything
app.add_middleware(ErrorHandlerMiddleware, debug=config.DEBUG)

setup_exception_handlers(app)

app.include_router(health_router)  # Health checks at root level
app.include_router(bookmarks_router, prefix="/api")


@app.get("/favicon.ico", include_in_schema=False)
async def favicon():
    """Return empty response for favicon to prevent 404 errors."""
    return Response(status_code=204)


# Initialize OpenTelemetry after app is constructed
init_otel(app=app, engine=async_engine)


def get_app() -> FastAPI:
    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "marks.main_fastapi:app",
        host=config.HOST,
        port=config.PORT,
        log_level=config.LOG_LEVEL.lower(),
    )
