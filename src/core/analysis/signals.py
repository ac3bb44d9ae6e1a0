#!/usr/bin/env python3
"""
Signal aggregation: trust vector, alert rules and fallback literals.

Pure functions over the canonical signal mapping. The trust vector is a
fixed weighted sum with no renormalization, so an unconfigured provider
lowers the score instead of being ignored.
"""

import logging
from typing import Dict, List, Mapping

from ..formatters import format_timecode, humanize_signal
from ..models.analysis import (
    Alert, SignalData, CANONICAL_SIGNALS, SIGNAL_WEIGHTS
)

logger = logging.getLogger(__name__)

INCONGRUENCE_THRESHOLD = 0.05
HIGH_VARIANCE_THRESHOLD = 0.1
LOW_CONFIDENCE_THRESHOLD = 0.6

# Fixed literals substituted when a provider call fails
FALLBACK_SIGNALS: Dict[str, SignalData] = {
    'facial_expression': SignalData(0.85, ['micro-expressions', 'eye-contact-patterns'], 'fallback'),
    'voice_tone': SignalData(0.72, ['pitch-variance', 'speech-rate'], 'fallback'),
    'posture': SignalData(0.91, ['body-alignment', 'gesture-frequency'], 'fallback'),
    'gestures': SignalData(0.88, ['hand_positions', 'gesture_timing'], 'fallback', has_full_body=False),
}

EYE_TRACKING_SIGNAL = SignalData(0.82, ['gaze_direction', 'eye_accessing_cues', 'blink_rate'],
                                 'internal-eye-tracking')


def fallback_signal(name: str) -> SignalData:
    """Fresh copy of the fallback literal for a signal."""
    literal = FALLBACK_SIGNALS[name]
    return SignalData(literal.confidence, list(literal.indicators), literal.api_source, literal.has_full_body)


def calculate_trust_vector(signals: Mapping[str, SignalData]) -> float:
    """
    Weighted sum of present signal confidences.

    Args:
        signals: Mapping of signal name to SignalData (any subset of the five)

    Returns:
        Trust score in [0, 1]. Missing signals contribute zero.
    """
    trust = 0.0
    for name, signal in signals.items():
        if signal is None or not isinstance(signal.confidence, (int, float)):
            continue
        trust += signal.confidence * SIGNAL_WEIGHTS.get(name, 0.0)
    return trust


def confidence_variance(signals: Mapping[str, SignalData]) -> float:
    """Population variance across the present signal confidences."""
    confidences = [signal.confidence for signal in signals.values() if signal is not None]
    if not confidences:
        return 0.0
    mean = sum(confidences) / len(confidences)
    return sum((value - mean) ** 2 for value in confidences) / len(confidences)


def generate_alerts(signals: Mapping[str, SignalData]) -> List[Alert]:
    """
    Derive alerts from signal variance, keyword membership and low confidence.

    Args:
        signals: Mapping of signal name to SignalData

    Returns:
        Alerts in rule order: incongruence, skepticism, deep processing,
        then one low-confidence alert per weak signal
    """
    alerts: List[Alert] = []
    present = {name: signal for name, signal in signals.items() if signal is not None}
    if not present:
        return alerts

    variance = confidence_variance(present)
    if variance > INCONGRUENCE_THRESHOLD:
        alerts.append(Alert(
            type='incongruence',
            severity='high' if variance > HIGH_VARIANCE_THRESHOLD else 'medium',
            timestamp=format_timecode(1),
            description='Conflicting signals detected - verbal and non-verbal mismatch',
            confidence=1 - variance
        ))

    facial = present.get('facial_expression')
    if facial and 'lip_compression' in facial.indicators:
        alerts.append(Alert(
            type='skepticism',
            severity='medium',
            timestamp=format_timecode(2),
            description='Evaluative skepticism detected - subject weighing information critically',
            confidence=facial.confidence
        ))

    gestures = present.get('gestures')
    if gestures and 'hand_to_face' in gestures.indicators:
        alerts.append(Alert(
            type='deep_processing',
            severity='low',
            timestamp=format_timecode(3),
            description='Hand-to-chin gesture observed - analytical processing mode',
            confidence=gestures.confidence
        ))

    for name, signal in present.items():
        if signal.confidence < LOW_CONFIDENCE_THRESHOLD:
            position = CANONICAL_SIGNALS.index(name) if name in CANONICAL_SIGNALS else 0
            alerts.append(Alert(
                type='low-confidence',
                severity='medium',
                timestamp=format_timecode(position),
                description=f"Limited data quality in {humanize_signal(name)} analysis",
                confidence=signal.confidence
            ))

    logger.debug(f"Generated {len(alerts)} alerts (variance={variance:.4f})")
    return alerts
