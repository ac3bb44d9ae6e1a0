#!/usr/bin/env python3
"""
Health check command for monitoring system status.

Covers configuration validation, integration configuration and the local
media stack.
"""

import logging
from argparse import Namespace

from .base import BaseCommand
from core.config import get_config_manager

logger = logging.getLogger(__name__)


class HealthCommand(BaseCommand):
    """Handle system health monitoring and diagnostics."""

    def execute(self, subcommand: str, args: Namespace) -> int:
        """Execute health subcommand."""
        try:
            if subcommand == "check":
                return self.check(args)
            else:
                available = ", ".join(self.get_available_subcommands())
                self.logger.error(f"Unknown subcommand '{subcommand}'. Available: {available}")
                return 1

        except Exception as e:
            return self.handle_error(e, f"health {subcommand}")

    def check(self, args: Namespace) -> int:
        """Run comprehensive health check."""
        print("🏥 System Health Check")
        print("=" * 50)

        overall_healthy = True

        print("\n⚙️  Configuration:")
        try:
            config = get_config_manager().get_config(force_reload=True)
            print(f"  ✅ Configuration valid (environment: {config.environment})")
            print(f"  📋 Default context: {config.app.default_context_preset}, "
                  f"culture: {config.app.default_cultural_context}")
        except ValueError as e:
            print(f"  ❌ {e}")
            overall_healthy = False

        print("\n🔌 Integration Status:")
        status = get_config_manager().get_integration_status() if overall_healthy else {}
        for name, configured in status.items():
            print(f"  {'✅' if configured else '⚪'} {name}: {'configured' if configured else 'not configured (fallback data)'}")
        if status and not any(status.values()):
            print("  ℹ️  No services configured; every analysis will use fallback signals")

        print("\n🎥 Media Stack:")
        try:
            import cv2
            print(f"  ✅ OpenCV {cv2.__version__} available")
        except ImportError as e:
            print(f"  ❌ OpenCV unavailable: {e}")
            overall_healthy = False

        print("\n" + "=" * 50)
        if overall_healthy:
            print("✅ System healthy")
            return 0

        print("❌ System has issues")
        return 1
