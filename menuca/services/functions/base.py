"""
Edge Function Service Abstract Base Class

Edge functions are independently deployed serverless functions invoked by
name with a JSON payload. Onboarding, franchise management, schedule
templates and domain verification run there; the API only forwards the
payload and the caller's access token.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class FunctionResult:
    """
    Outcome of an edge function call.

    Attributes:
        success: True when the function answered with a 2xx status
        data: Decoded JSON body
        error_message: Error reported by the function or transport
        status_code: HTTP status returned by the function runtime
    """
    success: bool
    data: Any = None
    error_message: Optional[str] = None
    status_code: Optional[int] = None


class BaseFunctionService(ABC):

    @property
    @abstractmethod
    def provider_name(self) -> str:
        pass

    @abstractmethod
    async def invoke(
        self,
        name: str,
        payload: dict,
        access_token: Optional[str] = None,
    ) -> FunctionResult:
        """Invoke the function called name with payload."""
        pass
