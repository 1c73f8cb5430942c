from app.models.profile import Profile
from app.models.sale import GarageSale, Item, ItemImage
from app.models.user_flag import UserFlag

__all__ = [
    "GarageSale",
    "Item",
    "ItemImage",
    "Profile",
    "UserFlag",
]
