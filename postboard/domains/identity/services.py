import logging
import uuid
from typing import Optional, Protocol

from postboard.core.security import verify_token
from postboard.db.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)


class IdentityResolver(Protocol):
    async def resolve_principal(self, token: str) -> Optional[uuid.UUID]:
        ...


class JwtIdentityResolver:
    """Сопоставление токена внешнего провайдера внутреннему id пользователя.

    В claim ``sub`` лежит ссылка на учетную запись провайдера (User.external_id).
    """

    def __init__(self, users: UserRepository):
        self.users = users

    async def resolve_principal(self, token: str) -> Optional[uuid.UUID]:
        payload = verify_token(token)
        if not payload:
            logger.info("Rejected token: invalid signature or expired")
            return None

        external_id = payload.get("sub")
        if not external_id:
            return None

        user = await self.users.get_by_external_id(str(external_id))
        if user is None:
            logger.info(f"Token subject {external_id} has no local user")
            return None
        return user.id
