# livewatch/main.py
import logging
import uvicorn
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from contextlib import asynccontextmanager
from .config import Settings, settings as default_settings
from .routes import frames
from .services.event_store import EventStore
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # startup
    s = app.state.settings
    logger.info("event store ready (history=%s, cooldown=%sms)", s.HISTORY_LIMIT, s.COOLDOWN_MS)
    yield
    # shutdown; in-memory state is dropped with the process
    logger.info("Shutting down...")


async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = jsonable_encoder(exc.errors())
    first = errors[0] if errors else {}
    where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"{where}: {first.get('msg')}" if where else str(first.get("msg", "invalid request"))
    return JSONResponse({"error": message, "details": errors}, status_code=400)


def create_app(settings: Settings = None) -> FastAPI:
    settings = settings or default_settings
    app = FastAPI(title="Livewatch", version="1.0", lifespan=lifespan)
    app.state.settings = settings
    # one store per app instance; every write goes through the ingestion service
    app.state.store = EventStore(history_limit=settings.HISTORY_LIMIT, cooldown_ms=settings.COOLDOWN_MS)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.include_router(frames.router)

    @app.get("/health")
    async def health():
        return JSONResponse({"status": "ok"})

    return app


app = create_app()


def main():
    logging.basicConfig(
        level=default_settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run("livewatch.main:app", host=default_settings.HOST, port=default_settings.PORT)


if __name__ == "__main__":
    main()
