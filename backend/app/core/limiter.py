"""Shared slowapi limiter; routes import it from here so main.py stays free of route imports."""
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import settings

# keyed on client address; import endpoints apply IMPORT_RATE_LIMIT
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)
