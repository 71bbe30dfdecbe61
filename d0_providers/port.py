"""
Provider fetch port

Provider implementations are reached only through this interface; how they
talk to the outside world is their own business.
"""
import asyncio
import inspect
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict


class ProviderFetchPort(ABC):
    """Abstract base class for all enrichment data providers"""

    @abstractmethod
    async def fetch(self, type: str, parameters: Dict[str, Any]) -> Any:
        """
        Fetch structured data for an enrichment type

        Args:
            type: Enrichment type being requested (e.g. "company-profile")
            parameters: Provider-specific request parameters

        Returns:
            Structured provider data (mapping, pydantic model or dataclass)
        """


class CallableProvider(ProviderFetchPort):
    """Adapts a plain function or coroutine function to the fetch port

    Synchronous callables run in the default executor so they never block
    the event loop.
    """

    def __init__(self, func: Callable[[str, Dict[str, Any]], Any], name: str | None = None):
        if not callable(func):
            raise TypeError(f"Provider handler must be callable, got {type(func).__name__}")
        self.func = func
        self.name = name or getattr(func, "__name__", "callable_provider")

    async def fetch(self, type: str, parameters: Dict[str, Any]) -> Any:
        if inspect.iscoroutinefunction(self.func):
            return await self.func(type, parameters)

        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(None, self.func, type, parameters)
        if inspect.isawaitable(result):
            return await result
        return result

    def __repr__(self) -> str:
        return f"CallableProvider({self.name!r})"
