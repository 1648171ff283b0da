from postboard.domains.identity.entities import User
from postboard.domains.identity.services import IdentityResolver, JwtIdentityResolver

__all__ = [
    "User",
    "IdentityResolver",
    "JwtIdentityResolver",
]
