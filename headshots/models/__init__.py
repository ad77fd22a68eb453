from .user import User
from .studio import Studio
from .prediction import Prediction, PredictionStatus
from .favorite import Favorite

__all__ = [
    "User",
    "Studio",
    "Prediction",
    "PredictionStatus",
    "Favorite",
]
