"""Rate limiter shared by main.py and the routers.

Kept in its own module so routers can decorate endpoints without importing
main.py.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from models.config import settings

limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)
