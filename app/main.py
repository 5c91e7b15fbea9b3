from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging
from app.core.config import settings
from app.core.exceptions import BackendRejected, BackendUnavailable, Unauthorized, ValidationError
from app.core.logging import setup_logger
from app.crud.crud_flgo import FlgoRepository
from app.crud.record_cache import RecordCacheRegistry
from app.db.ragic import create_gateway
from app.api.endpoints import auth, flgo, reports
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

# Ciclo de vida: abre el cliente de Ragic y crea el cache de registros.
# Ambos quedan en app.state, no como globales de modulo.
@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logger("app", settings.LOG_LEVEL)
    app.state.ragic = create_gateway()
    app.state.record_caches = RecordCacheRegistry(FlgoRepository(app.state.ragic).list_entries)
    yield
    await app.state.ragic.close()
    logger.info("Cliente Ragic cerrado.")

app = FastAPI(
    title="API FLGO",
    description="Mediciones y bunkerings de combustible y lubricantes por barco, sobre Ragic.",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,    # La sesion viaja en cookie
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(Unauthorized)
async def unauthorized_handler(request: Request, exc: Unauthorized):
    return JSONResponse(status_code=401, content={"error": str(exc)})


# 403, 404 y demas HTTPException con la misma forma que los errores del nucleo
@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(BackendUnavailable)
async def backend_unavailable_handler(request: Request, exc: BackendUnavailable):
    logger.error("Ragic no disponible en %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=503,
        content={"error": "The data service is unavailable. Please try again."},
    )


@app.exception_handler(BackendRejected)
async def backend_rejected_handler(request: Request, exc: BackendRejected):
    # El detalle de Ragic solo va al log
    logger.error("Ragic rechazo %s (%s): %s", request.url.path, exc.status_code, exc.detail)
    return JSONResponse(
        status_code=502,
        content={"error": "Failed to submit entry. Please try again."},
    )


# Incluir los routers
app.include_router(auth.router, prefix="/api", tags=["Auth"])
app.include_router(flgo.router, prefix="/api/flgo", tags=["FLGO"])
app.include_router(reports.router, prefix="/api/flgo/reports", tags=["Reports"])

@app.get("/api/health")
def health_check():
    return {"status": "ok"}
