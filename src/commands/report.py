#!/usr/bin/env python3
"""
Report command endpoints: re-render saved results and list stored analyses.
"""

import json
import logging
from argparse import Namespace

from .analyze import export_result
from .base import BaseCommand
from core.formatters import percent
from core.models.analysis import AnalysisResult

logger = logging.getLogger(__name__)


class ReportCommand(BaseCommand):
    """Forensic report generation and analysis history."""

    def execute(self, subcommand: str, args: Namespace) -> int:
        """Execute report subcommand."""
        try:
            if subcommand == "generate":
                return self.generate(args)
            elif subcommand == "history":
                return self.history(args)
            else:
                available = ", ".join(self.get_available_subcommands())
                self.logger.error(f"Unknown subcommand '{subcommand}'. Available: {available}")
                return 1

        except Exception as e:
            return self.handle_error(e, f"report {subcommand}")

    def generate(self, args: Namespace) -> int:
        """Re-render a forensic report from a saved AnalysisResult JSON file."""
        if not self.validate_args(args, ['result_path']):
            return 1

        with open(args.result_path, 'r', encoding='utf-8') as f:
            result = AnalysisResult.from_dict(json.load(f))

        if result.has_failed_sources():
            print("⚠️  This result contains failed analysis sources; the report may be incomplete")

        export_result(self, result, args)
        return 0

    def history(self, args: Namespace) -> int:
        """List the most recent stored analyses."""
        limit = getattr(args, 'limit', 10)

        async def fetch():
            store = self.supabase
            if not await store.initialize():
                return None
            return await store.get_analyses(limit)

        rows = self.run_async(fetch())
        if rows is None:
            print("❌ Supabase is not configured or unreachable")
            return 1

        print(f"📚 Recent analyses ({len(rows)}):")
        for row in rows:
            print(f"  • {row.get('created_at', '?')} {row.get('session_id')} "
                  f"[{row.get('analysis_mode')}/{row.get('context_preset')}] "
                  f"trust {percent(row.get('trust_vector') or 0)}%")
        return 0
