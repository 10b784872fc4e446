"""
The warp entity, its builder and the authorization contract.
"""

from warpstore.models.enums import WarpType
from warpstore.warp.model import EulerDirection, Vector3, Warp
from warpstore.warp.builder import WarpBuilder, build_warp, default_welcome_message
from warpstore.warp.authorization import AuthorizationResolver, DefaultAuthorizationResolver

__all__ = [
    "WarpType",
    "EulerDirection",
    "Vector3",
    "Warp",
    "WarpBuilder",
    "build_warp",
    "default_welcome_message",
    "AuthorizationResolver",
    "DefaultAuthorizationResolver",
]
