"""
Identity Service Abstract Base Class

Resolves bearer access tokens to users and manages auth accounts for new
admin users. The hosted auth server (Supabase GoTrue) is the source of
truth for who a token belongs to; authorization is decided locally.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class IdentityUser:
    """
    An authenticated account.

    Attributes:
        id: Auth provider user id (UUID string)
        email: Account email, may be missing for phone-only accounts
        user_metadata: Free-form profile data stored with the account
    """
    id: str
    email: Optional[str] = None
    user_metadata: dict = field(default_factory=dict)


class BaseIdentityService(ABC):
    """Abstract base class for identity services."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        pass

    @abstractmethod
    async def get_user(self, access_token: str) -> Optional[IdentityUser]:
        """
        Look up the user an access token belongs to.

        Returns:
            IdentityUser, or None when the token is invalid or expired
        """
        pass

    @abstractmethod
    async def create_user(
        self,
        email: str,
        password: str,
        user_metadata: Optional[dict] = None,
    ) -> IdentityUser:
        """
        Create a confirmed account.

        Raises:
            ServiceError: If the provider rejects the account
        """
        pass

    @abstractmethod
    async def delete_user(self, user_id: str) -> bool:
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        pass
