"""
Mock Identity Service

Keeps accounts and access tokens in memory. Used in development mode and
in tests, where tokens are registered up front with add_token().
"""

import logging
import secrets
import uuid
from typing import Optional

from menuca.core.errors import ServiceError
from menuca.services.identity.base import BaseIdentityService, IdentityUser

logger = logging.getLogger(__name__)


class MockIdentityService(BaseIdentityService):

    def __init__(self):
        self.users: dict[str, IdentityUser] = {}
        self.tokens: dict[str, str] = {}
        logger.info("MockIdentityService initialized")

    @property
    def provider_name(self) -> str:
        return "mock"

    def add_token(self, token: str, email: Optional[str], user_id: Optional[str] = None) -> IdentityUser:
        """Register an access token for a (possibly new) account."""
        user = self.users.get(user_id) if user_id else None
        if user is None:
            user = IdentityUser(id=user_id or str(uuid.uuid4()), email=email)
            self.users[user.id] = user
        self.tokens[token] = user.id
        return user

    def issue_token(self, user_id: str) -> str:
        token = secrets.token_urlsafe(24)
        self.tokens[token] = user_id
        return token

    def reset(self) -> None:
        self.users.clear()
        self.tokens.clear()

    async def get_user(self, access_token: str) -> Optional[IdentityUser]:
        user_id = self.tokens.get(access_token)
        if user_id is None:
            return None
        return self.users.get(user_id)

    async def create_user(
        self,
        email: str,
        password: str,
        user_metadata: Optional[dict] = None,
    ) -> IdentityUser:
        if any(u.email == email for u in self.users.values()):
            raise ServiceError("A user with this email address has already been registered", 422)

        user = IdentityUser(id=str(uuid.uuid4()), email=email, user_metadata=user_metadata or {})
        self.users[user.id] = user
        logger.info(f"Mock: created auth user {user.id} for {email}")
        return user

    async def delete_user(self, user_id: str) -> bool:
        removed = self.users.pop(user_id, None)
        self.tokens = {t: uid for t, uid in self.tokens.items() if uid != user_id}
        return removed is not None

    async def health_check(self) -> bool:
        return True
