"""
Mock Edge Function Service

Records every invocation and answers with canned responses. Unknown
functions succeed with an echo of the payload.
"""

import logging
import random
from typing import Any, Optional

from menuca.services.functions.base import BaseFunctionService, FunctionResult

logger = logging.getLogger(__name__)


class MockFunctionService(BaseFunctionService):

    def __init__(self, failure_rate: float = 0.0):
        self.failure_rate = failure_rate
        self.calls: list[tuple[str, dict]] = []
        self.responses: dict[str, FunctionResult] = {}

    @property
    def provider_name(self) -> str:
        return "mock"

    def set_response(self, name: str, data: Any = None, error: Optional[str] = None, status_code: int = 200) -> None:
        self.responses[name] = FunctionResult(
            success=error is None,
            data=data,
            error_message=error,
            status_code=status_code,
        )

    def reset(self) -> None:
        self.calls.clear()
        self.responses.clear()

    async def invoke(
        self,
        name: str,
        payload: dict,
        access_token: Optional[str] = None,
    ) -> FunctionResult:
        self.calls.append((name, payload))
        logger.debug(f"Mock: edge function {name} invoked")

        if random.random() < self.failure_rate:
            return FunctionResult(success=False, error_message="Simulated edge function failure", status_code=500)

        if name in self.responses:
            return self.responses[name]
        return FunctionResult(success=True, data={"success": True, "data": payload}, status_code=200)
