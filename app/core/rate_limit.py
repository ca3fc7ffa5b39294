from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import settings

# Public runner endpoints are keyed by client IP
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)
