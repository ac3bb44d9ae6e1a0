#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
LLM Interaction Logger

Logs every model interaction of an analysis session to a plain debug file:
the session signals sent, prompts, raw responses, token usage and the
parsed result. Writing to this log never raises.
"""

import json
import logging
from datetime import datetime
from typing import Dict, Any, Optional
from pathlib import Path

logger = logging.getLogger(__name__)


class LLMLogger:
    """Appends LLM interactions and parsed outputs to a debug file."""

    def __init__(self, log_file_path: str = "llm_debug.log"):
        """Initialize the LLM logger.

        Args:
            log_file_path: Path to the debug log file (relative to project root)
        """
        path = Path(log_file_path)
        if not path.is_absolute():
            # Project root, assuming we're in src/core/
            path = Path(__file__).parent.parent.parent / path
        self.log_file_path = path

        self._clear_log()

    def _clear_log(self):
        """Start a fresh log for this process."""
        try:
            with open(self.log_file_path, 'w', encoding='utf-8') as f:
                f.write(f"=== LLM DEBUG LOG - {datetime.now().isoformat()} ===\n\n")
        except OSError as e:
            logger.error(f"Failed to clear LLM log file: {e}")

    def _write_section(self, title: str, content: str):
        """Write a section to the log file."""
        try:
            with open(self.log_file_path, 'a', encoding='utf-8') as f:
                f.write(f"\n{'=' * 80}\n")
                f.write(f"{title}\n")
                f.write(f"{'=' * 80}\n")
                f.write(f"{content}\n")
        except OSError as e:
            logger.error(f"Failed to write to LLM log file: {e}")

    def log_session_input(self, session_id: str, context_preset: str, signals: Dict[str, Any]):
        """Log the signal snapshot handed to a narrative model."""
        content = f"Timestamp: {datetime.now().isoformat()}\n"
        content += f"Session: {session_id}\n"
        content += f"Context: {context_preset}\n\n"

        for name, signal in signals.items():
            content += f"  {name}: {signal.get('confidence', 0):.2f} "
            content += f"[{', '.join(signal.get('indicators', []))}] via {signal.get('api_source', 'none')}\n"

        self._write_section("🎥 SESSION INPUT", content)

    def log_llm_interaction(self,
                            system_prompt: str,
                            user_prompt: str,
                            response: str,
                            token_usage: Dict[str, int],
                            analysis_type: str = "Unknown"):
        """Log complete LLM interaction."""
        content = f"Timestamp: {datetime.now().isoformat()}\n"
        content += f"Analysis Type: {analysis_type}\n"
        content += (f"Token Usage: {token_usage.get('prompt_tokens', 0)} prompt + "
                    f"{token_usage.get('completion_tokens', 0)} completion = "
                    f"{token_usage.get('total_tokens', 0)} total\n\n")

        content += "SYSTEM PROMPT:\n"
        content += f"{system_prompt}\n\n"

        content += "USER PROMPT:\n"
        content += f"{user_prompt}\n\n"

        content += "LLM RESPONSE:\n"
        content += f"{response}\n"

        self._write_section(f"🤖 LLM INTERACTION ({analysis_type})", content)

    def log_parsed_analysis(self, parsed_data: Dict[str, Any], analysis_type: str = "Unknown"):
        """Log the parsed result after JSON decoding."""
        content = f"Timestamp: {datetime.now().isoformat()}\n"
        content += f"Analysis Type: {analysis_type}\n"
        content += (f"Validation Status: "
                    f"{'✅ Success' if not parsed_data.get('_validation_error') else '❌ Failed (using defaults)'}\n\n")

        content += "PARSED ANALYSIS DATA:\n"
        content += json.dumps(parsed_data, indent=2, ensure_ascii=False, default=str)

        self._write_section(f"📊 PARSED ANALYSIS ({analysis_type})", content)

    def log_error(self, error_type: str, error_message: str, context: Optional[str] = None):
        """Log errors that occur during processing."""
        content = f"Timestamp: {datetime.now().isoformat()}\n"
        content += f"Error Type: {error_type}\n"
        if context:
            content += f"Context: {context}\n"
        content += f"\nError Message:\n{error_message}\n"

        self._write_section("❌ ERROR", content)


# Global logger instance
_llm_logger = None


def get_llm_logger() -> LLMLogger:
    """Get the global LLM logger instance."""
    global _llm_logger
    if _llm_logger is None:
        _llm_logger = LLMLogger()
    return _llm_logger
