from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.auth import AuthMiddleware, SessionResolver
from app.routes import chat, pages, profile, trends
from config.settings import Settings, get_settings
from trendseer import __version__


logger = logging.getLogger("trendseer")


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="[%(asctime)s] %(levelname)s - %(message)s",
    )


def create_app(
    settings: Optional[Settings] = None,
    session_resolver: Optional[SessionResolver] = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(title="TrendSeer AI", version=__version__)

    app.add_middleware(AuthMiddleware, settings=settings, session_resolver=session_resolver)
    # CORS: allow local frontend during development
    if settings.app_env.lower() in {"dev", "development", "local"}:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse({"error": exc.detail}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc.errors())
        return JSONResponse(
            {"error": "Invalid request", "details": jsonable_encoder(exc.errors())},
            status_code=400,
        )

    @app.get("/health")
    def health():
        return {"status": "ok"}

    app.include_router(chat.router)
    app.include_router(profile.router)
    app.include_router(trends.router)
    app.include_router(pages.router)

    logger.info(
        "Config: env=%s model=%s key_set=%s auth=%s",
        settings.app_env,
        settings.gemini_model,
        bool(settings.google_api_key),
        settings.auth_enabled,
    )
    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=8000)


if __name__ == "__main__":
    run()
