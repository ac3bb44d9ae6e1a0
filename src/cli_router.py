#!/usr/bin/env python3
"""
CLI Router for the Blind Spot behavioral analyzer.

Modular command architecture: each top-level command maps to a command
class in the commands package.
"""

import argparse
import logging
import sys
from typing import Optional, List

# Load environment variables first
import core.env_loader  # noqa: F401

from commands import get_command, COMMANDS
from core.models.analysis import CONTEXT_PRESETS
from core.reporting import EXPORT_FORMATS

logger = logging.getLogger(__name__)


class CLIRouter:
    """
    CLI router for analysis commands.

    Command structure:
    - python run.py analyze upload meeting.mp4 --context interview
    - python run.py analyze text "Subject leans forward with a genuine smile"
    - python run.py analyze live --duration 20
    - python run.py report generate result.json --format pdf
    """

    def __init__(self):
        """Initialize CLI router."""
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """Create the main argument parser."""
        parser = argparse.ArgumentParser(
            description="Blind Spot behavioral trust analysis",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog=self._get_examples_text()
        )

        subparsers = parser.add_subparsers(
            dest='command',
            help='Available commands',
            metavar='{command}'
        )

        self._add_analyze_parser(subparsers)
        self._add_report_parser(subparsers)
        self._add_integrations_parser(subparsers)
        self._add_health_parser(subparsers)

        return parser

    @staticmethod
    def _add_report_options(parser: argparse.ArgumentParser, with_context: bool = True):
        """Options shared by every command that renders a forensic report."""
        if with_context:
            parser.add_argument('--context', choices=CONTEXT_PRESETS, default=None,
                                help='Interaction context (default: DEFAULT_CONTEXT_PRESET)')
        parser.add_argument('--cultural', default=None,
                            help='Cultural context for signal interpretation (default: DEFAULT_CULTURAL_CONTEXT)')
        parser.add_argument('--subjects', default=None, help='Comma-separated subject labels, e.g. "Alice,Bob"')
        parser.add_argument('--format', choices=EXPORT_FORMATS, default='markdown', help='Report format (default: markdown)')
        parser.add_argument('--output', default=None, help='Report file path (default: generated name in EXPORT_DIR)')
        parser.add_argument('--advanced', dest='advanced', action='store_true', default=True,
                            help='Include advanced behavioral analysis (default)')
        parser.add_argument('--no-advanced', dest='advanced', action='store_false',
                            help='Omit advanced behavioral analysis')
        parser.add_argument('--threshold', type=float, default=0.0,
                            help='Drop observations below this confidence (default: 0)')
        parser.add_argument('--raw', action='store_true', help='Keep every observation regardless of threshold')

    def _add_analyze_parser(self, subparsers):
        """Add analyze command parser."""
        analyze_parser = subparsers.add_parser(
            'analyze',
            help='Run behavioral analysis sessions'
        )

        analyze_subparsers = analyze_parser.add_subparsers(
            dest='subcommand',
            help='Session types',
            metavar='{upload,text,live}'
        )

        upload_parser = analyze_subparsers.add_parser('upload', help='Analyze an image, audio or video file')
        upload_parser.add_argument('path', help='Media file to analyze')

        text_parser = analyze_subparsers.add_parser('text', help='Analyze a text description of an interaction')
        text_parser.add_argument('text', nargs='?', default=None, help='Description text')
        text_parser.add_argument('--file', default=None, help='Read the description from a file')

        live_parser = analyze_subparsers.add_parser('live', help='Record from the camera, then analyze')
        live_parser.add_argument('--duration', type=int, default=15, help='Recording length in seconds (default: 15)')

        for session_parser in (upload_parser, text_parser, live_parser):
            self._add_report_options(session_parser)
            session_parser.add_argument('--save-result', default=None, help='Write the AnalysisResult JSON to this path')
            session_parser.add_argument('--verbose', action='store_true', help='Verbose output')

    def _add_report_parser(self, subparsers):
        """Add report command parser."""
        report_parser = subparsers.add_parser(
            'report',
            help='Forensic report rendering and analysis history'
        )

        report_subparsers = report_parser.add_subparsers(
            dest='subcommand',
            help='Report operations',
            metavar='{generate,history}'
        )

        generate_parser = report_subparsers.add_parser('generate', help='Render a report from a saved result JSON')
        generate_parser.add_argument('result_path', help='AnalysisResult JSON file')
        self._add_report_options(generate_parser)

        history_parser = report_subparsers.add_parser('history', help='List stored analyses')
        history_parser.add_argument('--limit', type=int, default=10, help='Number of analyses to show (default: 10)')

    def _add_integrations_parser(self, subparsers):
        """Add integrations command parser."""
        integrations_parser = subparsers.add_parser(
            'integrations',
            help='External integration management'
        )

        integrations_subparsers = integrations_parser.add_subparsers(
            dest='subcommand',
            help='Integration operations',
            metavar='{test,status}'
        )

        integrations_subparsers.add_parser('test', help='Initialize all adapters and show the status map')
        integrations_subparsers.add_parser('status', help='Show configured integrations')

    def _add_health_parser(self, subparsers):
        """Add health command parser."""
        health_parser = subparsers.add_parser(
            'health',
            help='System health diagnostics'
        )

        health_subparsers = health_parser.add_subparsers(
            dest='subcommand',
            help='Health operations',
            metavar='{check}'
        )

        health_subparsers.add_parser('check', help='Run comprehensive health check')

    def _get_examples_text(self) -> str:
        """Get examples text for help."""
        return """
Examples:
  # Analyze recorded media
  python run.py analyze upload meeting.mp4 --context negotiation --format pdf
  python run.py analyze upload portrait.jpg --subjects "Alice,Bob"

  # Analyze a written description
  python run.py analyze text "Subject leans forward with a genuine smile" --context interview

  # Record from the default camera
  python run.py analyze live --duration 20 --save-result session.json

  # Other commands
  python run.py report generate session.json --format html --cultural eastern
  python run.py report history --limit 5
  python run.py integrations test
  python run.py health check

"""

    def route_command(self, args: Optional[List[str]] = None) -> int:
        """
        Route command to appropriate handler.

        Args:
            args: Command line arguments (uses sys.argv if None)

        Returns:
            Exit code
        """
        try:
            if args is None:
                args = sys.argv[1:]

            parsed_args = self.parser.parse_args(args)

            if not parsed_args.command:
                self.parser.print_help()
                return 1

            if getattr(parsed_args, 'verbose', False):
                logging.getLogger().setLevel(logging.DEBUG)

            return self._handle_command(parsed_args)

        except SystemExit as e:
            # argparse calls sys.exit() on error or help
            return e.code if e.code is not None else 0
        except Exception as e:
            logger.error(f"CLI routing error: {e}", exc_info=True)
            return 1

    def _handle_command(self, args: argparse.Namespace) -> int:
        """Handle command structure."""
        logger.debug(f"Handling command: {args.command}")

        if args.command not in COMMANDS:
            available = ', '.join(COMMANDS.keys())
            logger.error(f"Unknown command '{args.command}'. Available: {available}")
            return 1

        subcommand = getattr(args, 'subcommand', None)
        if not subcommand:
            logger.error(f"No subcommand specified for '{args.command}'")
            try:
                self.parser.parse_args([args.command, '--help'])
            except SystemExit:
                # argparse exits after printing help
                pass
            return 1

        try:
            command = get_command(args.command)
            return command.execute(subcommand, args)
        except Exception as e:
            logger.error(f"Error executing {args.command} {subcommand}: {e}", exc_info=True)
            return 1


def main(args: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        args: Command line arguments (uses sys.argv if None)

    Returns:
        Exit code
    """
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    router = CLIRouter()
    return router.route_command(args)


if __name__ == '__main__':
    exit_code = main()
    sys.exit(exit_code)
