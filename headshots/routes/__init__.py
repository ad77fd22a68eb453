from .auth import router as auth_router
from .studios import router as studios_router
from .shoot import router as shoot_router
from .predictions import router as predictions_router
from .favorites import router as favorites_router
from .gallery import router as gallery_router
from .webhooks import router as webhooks_router

__all__ = [
    "auth_router",
    "studios_router",
    "shoot_router",
    "predictions_router",
    "favorites_router",
    "gallery_router",
    "webhooks_router",
]
