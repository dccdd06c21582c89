"""CORS settings for the browser clients listed in ALLOWED_ORIGINS."""

from app.core.config import settings

_EXPOSED_HEADERS = ["X-Request-Id"]


def get_cors_config() -> dict:
    """Keyword arguments for ``CORSMiddleware``."""
    return {
        "allow_origins": settings.allowed_origins_list,
        "allow_credentials": False,
        "allow_methods": ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        # X-Tenant-Id selects the acting tenant
        "allow_headers": ["Authorization", "Content-Type", "X-Request-Id", "X-Tenant-Id"],
        "expose_headers": _EXPOSED_HEADERS,
    }
