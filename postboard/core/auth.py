import uuid
from typing import Optional

from fastapi import Header

from postboard.core.exceptions import Unauthenticated
from postboard.core.security import extract_token_from_header
from postboard.domains.identity.services import IdentityResolver


class AccessGuard:
    """Определение вызывающего пользователя перед записью"""

    def __init__(self, resolver: IdentityResolver):
        self.resolver = resolver

    async def authorize(self, principal_token: Optional[str]) -> uuid.UUID:
        if not principal_token or not principal_token.strip():
            raise Unauthenticated("Authentication token is missing")

        user_id = await self.resolver.resolve_principal(principal_token)
        if user_id is None:
            raise Unauthenticated("Authentication token is invalid")
        return user_id

    async def authorize_optional(self, principal_token: Optional[str]) -> Optional[uuid.UUID]:
        """Для чтения: без токена анонимный доступ, с неверным токеном отказ"""
        if principal_token is None:
            return None
        return await self.authorize(principal_token)


async def get_principal_token(authorization: Optional[str] = Header(None)) -> Optional[str]:
    """Bearer-токен из заголовка; заголовок другого вида отклоняется, а не считается анонимным"""
    if authorization is None:
        return None

    token = extract_token_from_header(authorization)
    if token is None:
        raise Unauthenticated("Authorization header must be \"Bearer <token>\"")
    return token
