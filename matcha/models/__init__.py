"""Database model type definitions."""

from matcha.models.interaction import Block, Like, Rejection, Visit
from matcha.models.photo import Photo, PhotoCreate
from matcha.models.profile import Profile, ProfileColumns, User

__all__ = [
    "Block",
    "Like",
    "Photo",
    "PhotoCreate",
    "Profile",
    "ProfileColumns",
    "Rejection",
    "User",
    "Visit",
]
