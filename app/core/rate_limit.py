"""
Request rate limiting.
A single slowapi Limiter shared by the application and its routers.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.config import settings

limiter = Limiter(key_func=get_remote_address)

# e.g. "30/minute"
message_rate_limit = f"{settings.rate_limit_messages_per_minute}/minute"
