# Routers package
from . import phone_auth_router

__all__ = [
    "phone_auth_router",
]
