#!/usr/bin/env python3
"""
Formatting utilities for timecodes, percentages and analysis display.

Shared by the orchestrator, the heuristics layer, the report generator
and the CLI so every surface renders times the same way.
"""

import re
from typing import Any, Dict, List


def format_timecode(seconds: float) -> str:
    """Format elapsed seconds as MM:SS."""
    seconds = max(0, int(seconds))
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


def parse_timecode(value: str) -> int:
    """
    Parse a MM:SS (or bare seconds) timecode into elapsed seconds.

    Args:
        value: Timecode string such as "01:05" or "65"

    Returns:
        Elapsed seconds, 0 when the value cannot be parsed
    """
    if value is None:
        return 0
    parts = str(value).strip().split(':')
    try:
        numbers = [int(float(part)) for part in parts]
    except ValueError:
        return 0
    if len(numbers) == 2:
        return numbers[0] * 60 + numbers[1]
    if len(numbers) == 3:
        return numbers[0] * 3600 + numbers[1] * 60 + numbers[2]
    return numbers[0]


def percent(value: float) -> int:
    """Convert a [0, 1] confidence to a rounded percentage."""
    return int(round((value or 0) * 100))


def slugify(text: str) -> str:
    """Lowercase text and collapse whitespace runs into single hyphens."""
    return re.sub(r'\s+', '-', text.strip().lower())


def humanize_signal(signal_name: str) -> str:
    """Render a signal key like 'voice_tone' as 'voice tone' (first underscore only)."""
    return signal_name.replace('_', ' ', 1)


def format_analysis_summary(result: Dict[str, Any]) -> str:
    """Format an analysis result dictionary for terminal display."""
    lines = [
        "",
        "=== Blind Spot Analysis ===",
        f"🆔 Session: {result.get('session_id')}",
        f"🎬 Media: {result.get('media_type')} | Context: {result.get('context_preset')}",
        f"🎯 Trust vector: {percent(result.get('trust_vector', 0))}%",
        "",
        "📡 Signals:",
    ]

    for name, signal in result.get('signals', {}).items():
        indicators = ', '.join(signal.get('indicators', []))
        lines.append(f"  • {name}: {percent(signal.get('confidence', 0))}% "
                     f"[{signal.get('api_source')}] {indicators}")

    alerts: List[Dict[str, Any]] = result.get('alerts', [])
    if alerts:
        lines.extend(["", f"🚨 Alerts ({len(alerts)}):"])
        for alert in alerts:
            lines.append(f"  • [{alert.get('severity')}] {alert.get('type')}: {alert.get('description')}")

    if result.get('supabase_id'):
        lines.append(f"\n💾 Stored as #{result['supabase_id']}")
    if result.get('github_url'):
        lines.append(f"📁 Archived at {result['github_url']}")

    lines.append("=" * 50)
    return "\n".join(lines)
