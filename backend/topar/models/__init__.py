from .base import Base, BaseModel
from .user import User
from .listing import Listing
from .deal import Deal
from .favorite import Favorite

__all__ = ["Base", "BaseModel", "User", "Listing", "Deal", "Favorite"]
