from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
import logging

from .config import get_settings
from .errors import StoreError
from .middleware.rate_limit import build_rate_limiter
from .routers import auth, bookings, pets, services

# Configurar logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

settings = get_settings()

# Configurar rate limiting
limiter = Limiter(key_func=get_remote_address)

app = FastAPI(title=settings.app_name)
app.state.limiter = limiter
app.state.rate_limiter = build_rate_limiter()
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Configuración de CORS según entorno
if settings.env == "dev":
    cors_origins = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]
    cors_regex = r"https?://(localhost|127\.0\.0\.1)(:\d+)?"
    cors_headers = ["Authorization", "Content-Type", "Accept", "Origin", "X-Requested-With"]
else:
    frontend_url = settings.frontend_base_url
    cors_origins = [frontend_url] if frontend_url else []
    cors_regex = None
    cors_headers = ["Authorization", "Content-Type", "Accept"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_origin_regex=cors_regex,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=cors_headers,
    expose_headers=["Content-Type"],
)

@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    # sin reintentos: el cliente de Mongo decide su propia política
    logger.error("Fallo de persistencia en %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Error interno del servidor"})

@app.get("/health")
async def health():
    return {"status": "ok", "env": settings.env}

# Routers
app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(pets.router, prefix="/pets", tags=["pets"])
app.include_router(services.router, prefix="/services", tags=["services"])
app.include_router(bookings.router, prefix="/bookings", tags=["bookings"])
