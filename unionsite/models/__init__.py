# Re-export all models for convenient imports
from unionsite.models.user import User, UserRole
from unionsite.models.member import Member
from unionsite.models.post import Post
from unionsite.models.site_setting import SiteSetting
from unionsite.models.push import PushSubscription, PushSettings

__all__ = [
    "User",
    "UserRole",
    "Member",
    "Post",
    "SiteSetting",
    "PushSubscription",
    "PushSettings",
]
