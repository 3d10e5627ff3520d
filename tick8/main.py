import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_503_SERVICE_UNAVAILABLE,
)

from tick8.core.config import get_settings
from tick8.core.errors import Conflict, GeneratorUnavailable, InvalidInput, NotFound, Tick8Error
from tick8.core.logging import setup_logging
from tick8.routers import courses, generate, maintenance, snapshots, system, vocab

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = (
    (NotFound, HTTP_404_NOT_FOUND),
    (InvalidInput, HTTP_400_BAD_REQUEST),
    (Conflict, HTTP_409_CONFLICT),
    (GeneratorUnavailable, HTTP_503_SERVICE_UNAVAILABLE),
)


async def tick8_error_handler(request: Request, exc: Tick8Error) -> JSONResponse:
    if not exc.operational:
        # détail complet côté serveur uniquement
        logger.error("%s %s: %s", request.method, request.url.path, exc, exc_info=exc)
        return JSONResponse(
            status_code=HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Erreur interne de stockage"},
        )

    status = next((code for cls, code in _STATUS_BY_ERROR if isinstance(exc, cls)), HTTP_400_BAD_REQUEST)
    return JSONResponse(status_code=status, content={"detail": exc.message})


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # corps ou paramètres mal formés : même contrat que InvalidInput
    errors = exc.errors()
    where = ".".join(str(p) for p in errors[0].get("loc", ())) if errors else ""
    message = errors[0].get("msg", "") if errors else ""
    return JSONResponse(
        status_code=HTTP_400_BAD_REQUEST,
        content={"detail": f"Requête invalide ({where}): {message}"},
    )


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="API tick8 : cours, vocabulaire, snapshots et maintenance par utilisateur",
    )

    # Middleware CORS
    origins = [o.strip() for o in (settings.CORS_ORIGINS or "").split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],  # fallback si mal configuré
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(Tick8Error, tick8_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    # Routers
    app.include_router(system.router)
    app.include_router(courses.router)
    app.include_router(vocab.router)
    app.include_router(snapshots.router)
    app.include_router(maintenance.router)
    app.include_router(generate.router)

    # Redirect root → docs
    @app.get("/", include_in_schema=False)
    async def root():
        return RedirectResponse(url="/docs")

    return app


app = create_app()
