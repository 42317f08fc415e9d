"""
Rate Limiting

Per-client-address limits for the expensive endpoints (slowapi).
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from app.config.settings import get_settings


limiter = Limiter(
    key_func=get_remote_address,
    enabled=get_settings().rate_limit_enabled,
)


def analysis_rate_limit() -> str:
    """Limit string for the analysis route, e.g. ``50/hour``."""
    return get_settings().analysis_rate_limit
