from fastapi import Request
import logging
from starlette.middleware.base import BaseHTTPMiddleware

from penpal.core.config import settings

logger = logging.getLogger(__name__)

# Routes reachable without a bearer token
PUBLIC_PREFIXES = (
    f"{settings.API_V1_STR}/auth/",
    f"{settings.API_V1_STR}/users/username-availability",
    f"{settings.API_V1_STR}/openapi.json",
    "/docs",
    "/redoc",
)

class AuthLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        if not request.headers.get("Authorization") and path.startswith(settings.API_V1_STR):
            if not path.startswith(PUBLIC_PREFIXES):
                logger.warning(f"Protected endpoint {path} accessed without auth header")

        response = await call_next(request)

        if response.status_code in (401, 403):
            logger.warning(f"Auth error: {response.status_code} on {request.method} {path}")

        return response
