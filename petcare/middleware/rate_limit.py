"""
Rate limiting por endpoint.

La estrategia de ``limits`` vive en ``app.state.rate_limiter``; la clave es la
IP del cliente tal y como la resuelve slowapi.
"""
from fastapi import Request, HTTPException
from slowapi.util import get_remote_address
from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import FixedWindowRateLimiter, RateLimiter

def build_rate_limiter() -> RateLimiter:
    return FixedWindowRateLimiter(MemoryStorage())

def apply_rate_limit(request: Request, limit: str):
    """
    Aplica rate limiting a un endpoint concreto.
    Uso: apply_rate_limit(request, "5/minute")

    Si no hay rate_limiter en app.state (por ejemplo, en tests), no hace nada.
    """
    rate_limiter = getattr(request.app.state, "rate_limiter", None)
    if rate_limiter is None:
        return

    key = get_remote_address(request)
    if not rate_limiter.hit(parse(limit), request.url.path, key):
        raise HTTPException(
            status_code=429,
            detail=f"Demasiadas solicitudes. Límite: {limit}. Intenta más tarde."
        )
