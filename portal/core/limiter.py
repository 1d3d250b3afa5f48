from slowapi import Limiter
from slowapi.util import get_remote_address

# Shared limiter for unauthenticated endpoints (contact form, certificate verification)
limiter = Limiter(key_func=get_remote_address)
