#!/usr/bin/env python3
"""
Command endpoints for the Blind Spot analyzer.

Each major functionality is handled by a dedicated command class.
"""

from typing import Dict, Type
from .base import BaseCommand
from .analyze import AnalyzeCommand
from .report import ReportCommand
from .integrations import IntegrationsCommand
from .health import HealthCommand

# Command registry for easy extension
COMMANDS: Dict[str, Type[BaseCommand]] = {
    'analyze': AnalyzeCommand,
    'report': ReportCommand,
    'integrations': IntegrationsCommand,
    'health': HealthCommand,
}


def get_command(command_name: str) -> BaseCommand:
    """Get a command instance by name."""
    if command_name not in COMMANDS:
        available = ', '.join(COMMANDS.keys())
        raise ValueError(f"Unknown command '{command_name}'. Available: {available}")

    command_class = COMMANDS[command_name]
    return command_class()


def list_commands() -> Dict[str, str]:
    """Get list of available commands with descriptions."""
    return {name: getattr(command_class, '__doc__', 'No description available')
            for name, command_class in COMMANDS.items()}
