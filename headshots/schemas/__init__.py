from .auth import UserCreate, UserLogin, UserResponse
from .studio import StudioCreate
from .prediction import ShootCreate, ReconcileRequest, ShareUpdate

__all__ = [
    "UserCreate", "UserLogin", "UserResponse",
    "StudioCreate",
    "ShootCreate", "ReconcileRequest", "ShareUpdate",
]
