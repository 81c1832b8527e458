from __future__ import annotations

import functools
from abc import ABC
from collections.abc import Callable
from typing import Any

from loguru import logger


def require_operator(fn: Callable) -> Callable:
    """Return ``(False, ...)`` early if ``self.operator`` is not set."""

    @functools.wraps(fn)
    async def wrapper(self: BaseAdapter, *args: Any, **kwargs: Any) -> Any:
        if not getattr(self, "operator", None):
            return False, "operator address not configured"
        return await fn(self, *args, **kwargs)

    return wrapper


class BaseAdapter(ABC):
    adapter_type: str | None = None

    def __init__(self, name: str, config: dict[str, Any] | None = None):
        self.name = name
        self.config = config or {}
        self.logger = logger.bind(adapter=self.__class__.__name__)

    async def close(self) -> None:
        pass
