"""Rate limiter singleton: shared by routers that expose manual scheduler triggers."""
from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)
