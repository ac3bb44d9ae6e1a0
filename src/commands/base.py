#!/usr/bin/env python3
"""
Base command class for the modular command architecture.

Provides common functionality and interface that all commands inherit.
Uses dependency injection for better testability and maintainability.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import List, Optional
from argparse import Namespace

from core.container import get_container
from core.exceptions import MediaError, ExportError, ValidationError

logger = logging.getLogger(__name__)


class BaseCommand(ABC):
    """
    Base class for all command endpoints.

    Provides access to configuration, the analysis orchestrator and the
    report services through the dependency injection container.
    """

    def __init__(self, container=None):
        """
        Initialize base command with dependency injection container.

        Args:
            container: Optional container instance. If None, uses global container.
        """
        self.logger = logging.getLogger(self.__class__.__name__)
        self._container = container or get_container()

    @property
    def config(self):
        """Get configuration from container."""
        return self._container.get('config')

    @property
    def report_generator(self):
        return self._container.get('report_generator')

    @property
    def report_exporter(self):
        return self._container.get('report_exporter')

    @property
    def supabase(self):
        return self._container.get('supabase')

    def create_orchestrator(self):
        """Create an orchestrator wired to the shared adapters."""
        return self._container.get('orchestrator')

    def run_async(self, coroutine):
        """Drive a coroutine to completion from synchronous command code."""
        return asyncio.run(coroutine)

    @abstractmethod
    def execute(self, subcommand: str, args: Namespace) -> int:
        """
        Execute the command with given subcommand and arguments.

        Args:
            subcommand: The specific action to perform
            args: Parsed command line arguments

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        pass

    def get_available_subcommands(self) -> List[str]:
        """Public methods of the command, excluding the base helpers."""
        skipped = {'execute', 'get_available_subcommands', 'handle_error', 'validate_args',
                   'create_orchestrator', 'run_async'}
        methods = []
        for attr_name in dir(type(self)):
            if attr_name.startswith('_') or attr_name in skipped:
                continue
            if callable(getattr(type(self), attr_name)):
                methods.append(attr_name)
        return methods

    def handle_error(self, error: BaseException, context: str = "") -> int:
        """
        Standard error handling for commands.

        Args:
            error: The exception that occurred
            context: Additional context about where the error occurred

        Returns:
            Appropriate exit code
        """
        error_msg = f"{context}: {error}" if context else str(error)

        if isinstance(error, KeyboardInterrupt):
            self.logger.info("Command interrupted by user")
            return 130

        # Expected user-facing failures do not need a traceback
        if isinstance(error, (MediaError, ExportError, ValidationError)):
            self.logger.error(error_msg)
        else:
            self.logger.error(error_msg, exc_info=True)

        if isinstance(error, FileNotFoundError):
            return 2
        elif isinstance(error, PermissionError):
            return 13
        elif isinstance(error, (ValueError, ValidationError)):
            return 22
        else:
            return 1

    def validate_args(self, args: Namespace, required_args: Optional[List[str]] = None) -> bool:
        """
        Validate that required arguments are present.

        Args:
            args: Parsed arguments
            required_args: List of required argument names

        Returns:
            True if valid, False otherwise
        """
        if not required_args:
            return True

        missing = [name for name in required_args if getattr(args, name, None) is None]
        if missing:
            self.logger.error(f"Missing required arguments: {', '.join(missing)}")
            return False

        return True
