"""
localdb Core - Awaitable contract.

Builders resolve through execute(); awaiting one simply calls execute() at
await time, so reads stay lazy until the caller asks for the result.
"""

from abc import ABC, abstractmethod
from typing import Any, Generator

from localdb.schemas import APIResponse


class Executable(ABC):
    """Base for anything that resolves to an APIResponse."""

    @abstractmethod
    def execute(self) -> APIResponse:
        """Evaluate and return the response."""
        pass

    async def _evaluate(self) -> APIResponse:
        return self.execute()

    def __await__(self) -> Generator[Any, None, APIResponse]:
        return self._evaluate().__await__()
