#!/usr/bin/env python3
"""
Integrations command endpoints for managing external service connections.
"""

import logging
from argparse import Namespace

from .base import BaseCommand
from core.config import get_config_manager

logger = logging.getLogger(__name__)

SERVICE_LABELS = {
    'supabase': '💾 Supabase storage',
    'github': '📁 GitHub archive',
    'openai': '🤖 OpenAI (voice, text, narrative)',
    'anthropic': '🧠 Anthropic (narrative)',
    'google_vision': '👁️  Google Vision (faces, gestures)',
    'google_video': '🎬 Google Video (posture)',
}


class IntegrationsCommand(BaseCommand):
    """Handle external integration operations."""

    def execute(self, subcommand: str, args: Namespace) -> int:
        """Execute integrations subcommand."""
        try:
            if subcommand == "test":
                return self.test(args)
            elif subcommand == "status":
                return self.status(args)
            else:
                available = ", ".join(self.get_available_subcommands())
                self.logger.error(f"Unknown subcommand '{subcommand}'. Available: {available}")
                return 1

        except Exception as e:
            return self.handle_error(e, f"integrations {subcommand}")

    def test(self, args: Namespace) -> int:
        """Initialize every adapter concurrently and report the outcome."""
        print("🔍 Testing integrations...")
        orchestrator = self.create_orchestrator()
        status = self.run_async(orchestrator.initialize_services())

        print("\n=== Integration Test Results ===")
        for name, connected in status.items():
            print(f"{SERVICE_LABELS.get(name, name)}: {'✅ Connected' if connected else '❌ Failed'}")

        if all(status.values()):
            print("✅ All integrations working")
            return 0

        print("⚠️  Some integrations failed - analysis will use fallback data for them")
        return 1

    def status(self, args: Namespace) -> int:
        """Show which integrations are configured (no network calls)."""
        print("📊 Integration Status:")
        for name, configured in get_config_manager().get_integration_status().items():
            print(f"   • {SERVICE_LABELS.get(name, name)}: {'✅ Configured' if configured else '❌ Missing'}")
        return 0
