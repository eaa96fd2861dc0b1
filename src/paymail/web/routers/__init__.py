from paymail.web.routers.auth import router as auth_router
from paymail.web.routers.email import router as email_router
from paymail.web.routers.logs import router as logs_router

__all__ = [
    "auth_router",
    "email_router",
    "logs_router",
]
