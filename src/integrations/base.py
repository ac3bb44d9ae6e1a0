#!/usr/bin/env python3
"""
Common contract for external service adapters.

Every adapter exposes an async initialize() -> bool that never raises and
a connected flag. Analysis calls return an AdapterResult instead of
raising, so callers decide explicitly what to do with a failure.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from core.exceptions import AdapterError, AdapterNotInitializedError

logger = logging.getLogger(__name__)


@dataclass
class AdapterResult:
    """Success with a payload, or failure carrying an AdapterError."""
    payload: Optional[Dict[str, Any]] = None
    error: Optional[AdapterError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, payload: Dict[str, Any]) -> 'AdapterResult':
        return cls(payload=payload)

    @classmethod
    def failure(cls, error: AdapterError) -> 'AdapterResult':
        return cls(error=error)


class ServiceAdapter(ABC):
    """Base class for a wrapper around one external API."""

    service_name = 'service'

    def __init__(self):
        self._connected = False

    @property
    def connected(self) -> bool:
        return self._connected

    async def initialize(self) -> bool:
        """
        Check the service and record whether it is usable.

        Returns:
            True when the service answered, False on missing configuration
            or any failure
        """
        try:
            self._connected = bool(await self._connect())
        except Exception as e:
            logger.warning(f"{self.service_name} initialization failed: {e}")
            self._connected = False

        if self._connected:
            logger.info(f"{self.service_name} connected")
        return self._connected

    @abstractmethod
    async def _connect(self) -> bool:
        """Service-specific connection check."""
        pass

    async def _call(self, operation: str, request: Callable[[], Awaitable[Dict[str, Any]]]) -> AdapterResult:
        """
        Run one API request and wrap its outcome.

        Args:
            operation: Operation name for error context
            request: Zero-argument coroutine factory producing the payload

        Returns:
            AdapterResult with the payload or the failure
        """
        if not self._connected:
            return AdapterResult.failure(AdapterNotInitializedError(self.service_name, operation))

        try:
            return AdapterResult.success(await request())
        except AdapterError as e:
            logger.warning(f"{self.service_name} {operation} failed: {e}")
            return AdapterResult.failure(e)
        except Exception as e:
            logger.warning(f"{self.service_name} {operation} failed: {e}")
            return AdapterResult.failure(AdapterError(self.service_name, operation, e))
