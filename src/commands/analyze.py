#!/usr/bin/env python3
"""
Analyze command endpoints: upload, text and live sessions.

Each session initializes the service adapters, runs the orchestrator,
prints a summary and exports the forensic report.
"""

import asyncio
import json
import logging
from argparse import Namespace

from .base import BaseCommand
from core.formatters import format_analysis_summary
from core.models.analysis import AnalysisResult
from core.reporting import ExportOptions, build_subjects

logger = logging.getLogger(__name__)


def export_result(command: BaseCommand, result: AnalysisResult, args: Namespace) -> str:
    """
    Generate and export the forensic report for a result.

    Returns:
        Path of the exported report
    """
    config = command.config
    context_preset = getattr(args, 'context', None) or result.context_preset
    cultural = getattr(args, 'cultural', None) or config.app.default_cultural_context
    labels = [label.strip() for label in (getattr(args, 'subjects', None) or '').split(',') if label.strip()]

    report = command.report_generator.generate(
        result, context_preset, subjects=build_subjects(labels), cultural_context=cultural
    )
    options = ExportOptions(
        format=getattr(args, 'format', None) or 'markdown',
        include_advanced_analysis=getattr(args, 'advanced', True),
        include_raw_data=getattr(args, 'raw', False),
        confidence_threshold=getattr(args, 'threshold', 0.0) or 0.0,
    )
    path = command.report_exporter.save(report, options, getattr(args, 'output', None))
    print(f"📄 Forensic report ({options.format}): {path}")
    return path


class AnalyzeCommand(BaseCommand):
    """Run behavioral analysis sessions."""

    def execute(self, subcommand: str, args: Namespace) -> int:
        """Execute analyze subcommand."""
        try:
            if subcommand == "upload":
                return self.upload(args)
            elif subcommand == "text":
                return self.text(args)
            elif subcommand == "live":
                return self.live(args)
            else:
                available = ", ".join(self.get_available_subcommands())
                self.logger.error(f"Unknown subcommand '{subcommand}'. Available: {available}")
                return 1

        except Exception as e:
            return self.handle_error(e, f"analyze {subcommand}")

    def _context(self, args: Namespace) -> str:
        return getattr(args, 'context', None) or self.config.app.default_context_preset

    def upload(self, args: Namespace) -> int:
        """Analyze an uploaded image, audio or video file."""
        if not self.validate_args(args, ['path']):
            return 1

        async def run():
            orchestrator = self.create_orchestrator()
            await orchestrator.initialize_services()
            return await orchestrator.analyze_upload(args.path, self._context(args))

        print(f"🔍 Analyzing {args.path}...")
        return self._finish(self.run_async(run()), args)

    def text(self, args: Namespace) -> int:
        """Analyze a free-text description of an interaction."""
        text = getattr(args, 'text', None)
        if getattr(args, 'file', None):
            with open(args.file, 'r', encoding='utf-8') as f:
                text = f.read()

        if not text or not text.strip():
            self.logger.error("Provide the text to analyze or --file")
            return 1

        async def run():
            orchestrator = self.create_orchestrator()
            await orchestrator.initialize_services()
            return await orchestrator.analyze_text(text, self._context(args))

        print("📝 Analyzing text description...")
        return self._finish(self.run_async(run()), args)

    def live(self, args: Namespace) -> int:
        """Record from the camera for a fixed duration, then analyze."""
        duration = getattr(args, 'duration', 15)

        async def run():
            orchestrator = self.create_orchestrator()
            await orchestrator.initialize_services()
            session = await orchestrator.start_live_session(self._context(args))
            print(f"🔴 Live session {session.session_id} recording for {duration}s...")
            try:
                await asyncio.sleep(duration)
            finally:
                result = await session.stop()
            return result

        return self._finish(self.run_async(run()), args)

    def _finish(self, result: AnalysisResult, args: Namespace) -> int:
        print(format_analysis_summary(result.to_dict()))

        if result.has_failed_sources():
            print("⚠️  Some analysis sources reported failures; results may be incomplete")

        save_path = getattr(args, 'save_result', None)
        if save_path:
            with open(save_path, 'w', encoding='utf-8') as f:
                json.dump(result.to_dict(), f, indent=2, ensure_ascii=False)
            print(f"💾 Result saved to {save_path}")

        export_result(self, result, args)
        return 0
