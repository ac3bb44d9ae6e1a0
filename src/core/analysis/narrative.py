#!/usr/bin/env python3
"""
Narrative generation for analysis results.

Tries Anthropic first, then OpenAI, and falls back to a deterministic
template report so every session ends with a narrative.
"""

import logging
from typing import List, Optional, Tuple

from ..formatters import percent, humanize_signal
from ..llm_logger import get_llm_logger
from ..models.analysis import AnalysisResult

logger = logging.getLogger(__name__)

TEMPLATE_RECOMMENDATIONS = [
    'Continue monitoring for pattern consistency',
    'Consider contextual factors that may influence behavior',
    'Cross-reference with baseline behavioral patterns',
    'Monitor for escalation of any identified stress indicators',
]


def build_narrative_prompt(result: AnalysisResult) -> str:
    """Prompt describing the session for an LLM narrative."""
    signal_lines = "\n".join(
        f"- {humanize_signal(name)}: {percent(signal.confidence)}% confidence, "
        f"indicators: {', '.join(signal.indicators)} (source: {signal.api_source})"
        for name, signal in result.signals.items()
    )
    alert_lines = "\n".join(
        f"- {alert.type} ({alert.severity}): {alert.description}" for alert in result.alerts
    ) or "- none"

    return f"""Please analyze the following behavioral data for a {result.context_preset} context:

Trust Vector: {percent(result.trust_vector)}%

Signals:
{signal_lines}

Alerts:
{alert_lines}

Generate:
1. Comprehensive behavioral analysis
2. Key insights and patterns
3. Risk assessment
4. Recommendations for interpretation

Format as a professional markdown analysis report with evidence citations."""


def template_narrative(result: AnalysisResult) -> str:
    """Deterministic report used when no LLM provider is available."""
    trust = percent(result.trust_vector)
    lines = [
        "# Behavioral Analysis Report",
        "",
        "## Executive Summary",
        f"Based on the multi-signal analysis, the subject demonstrates a trust vector of {trust}% "
        f"in the {result.context_preset} context. The analysis reveals several key behavioral patterns worth noting.",
        "",
        "## Signal Analysis",
    ]

    for name, signal in result.signals.items():
        lines += [
            "",
            f"### {humanize_signal(name).title()} ({percent(signal.confidence)}% confidence)",
            f"Observed indicators: {', '.join(signal.indicators)} (source: {signal.api_source}).",
        ]

    lines += ["", "## Risk Assessment"]
    if result.alerts:
        lines.append(f"{len(result.alerts)} behavioral alert(s) detected:")
        lines += [f"- {alert.description} ({alert.severity} severity)" for alert in result.alerts]
    else:
        lines.append("No significant behavioral alerts detected.")

    lines += ["", "## Recommendations"]
    lines += [f"{index}. {text}" for index, text in enumerate(TEMPLATE_RECOMMENDATIONS, 1)]

    lines += ["", "## Confidence Assessment", f"Overall analysis confidence: {trust}%"]
    return "\n".join(lines)


class NarrativeGenerator:
    """Provider chain for session narratives."""

    def __init__(self, anthropic=None, openai=None):
        """
        Args:
            anthropic: Anthropic adapter (primary), optional
            openai: OpenAI adapter (secondary), optional
        """
        self.anthropic = anthropic
        self.openai = openai

    def _providers(self) -> List[Tuple[str, object]]:
        return [(name, adapter) for name, adapter in (('anthropic', self.anthropic), ('openai', self.openai))
                if adapter is not None and adapter.connected]

    async def generate(self, result: AnalysisResult) -> Tuple[str, str]:
        """
        Narrative for one result.

        Returns:
            (narrative text, source) where source is anthropic, openai or template
        """
        providers = self._providers()
        if providers:
            prompt = build_narrative_prompt(result)
            get_llm_logger().log_session_input(
                result.session_id, result.context_preset,
                {name: signal.to_dict() for name, signal in result.signals.items()}
            )

            for name, adapter in providers:
                outcome = await adapter.generate_narrative(prompt)
                if outcome.ok:
                    logger.info(f"Narrative generated by {name}")
                    return outcome.payload['narrative'], name
                logger.warning(f"Narrative from {name} failed, trying next provider: {outcome.error}")

        logger.info("Using template narrative")
        return template_narrative(result), 'template'
