import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from .core.config import settings
from .core.db import create_all_tables
from .core.init_data import init_data
from .routers import (
    abastecedor, admin_abastecedores, admin_abastecimentos, admin_clients, admin_comprovantes,
    admin_drivers, admin_freights, admin_outros_insumos, admin_payments, auth, cliente,
    driver_location, driver_portal
)
from .services.verification_service import sweep_expired_codes

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Iniciando a aplicação...")
    create_all_tables()
    init_data()
    sweeper = asyncio.create_task(sweep_expired_codes())
    yield
    sweeper.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sweeper
    logger.info("Encerrando a aplicação...")

app = FastAPI(
    lifespan=lifespan,
    title=settings.APP_NAME,
    description="API de gestão da transportadora: motoristas, fretes, abastecimentos e pagamentos",
    version=settings.APP_VERSION
)

# Configuração CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_CREDENTIALS,
    allow_methods=settings.CORS_METHODS,
    allow_headers=settings.CORS_HEADERS,
)

# Comprovantes gravados em disco quando não há blob store configurado
Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)
app.mount(settings.STATIC_URL_PREFIX, StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
    message = first.get("msg", "Dados inválidos")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": f"{field}: {message}" if field else message}
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"}
    )


@app.get("/api/health", tags=["HEALTH"])
def health():
    return {"status": "ok", "timestamp": datetime.utcnow().isoformat()}


# Routers
app.include_router(auth.router)
app.include_router(admin_drivers.router)
app.include_router(admin_freights.router)
app.include_router(admin_abastecimentos.router)
app.include_router(admin_outros_insumos.router)
app.include_router(admin_payments.router)
app.include_router(admin_comprovantes.router)
app.include_router(admin_clients.router)
app.include_router(admin_abastecedores.router)
app.include_router(driver_portal.router)
app.include_router(driver_location.router)
app.include_router(abastecedor.router)
app.include_router(cliente.router)
