#!/usr/bin/env python3
"""
Core data models for behavioral analysis.

Contains all data structures used throughout the application.
"""

from .analysis import (
    AnalysisResult, SignalData, TimelineEvent, DetailedTimelineEvent, Alert,
    CANONICAL_SIGNALS, SIGNAL_WEIGHTS, CONTEXT_PRESETS
)
from .behavior import (
    BaselineBehavior, SignalCluster, TemporalPattern, StressComfortIndicator, CulturalProfile
)
from .report import (
    ForensicReport, ForensicPhase, ForensicObservation, DecisionIndicator,
    Subject, SummaryJudgment, KeyFinding, Recommendation
)

__all__ = [
    'AnalysisResult', 'SignalData', 'TimelineEvent', 'DetailedTimelineEvent', 'Alert',
    'CANONICAL_SIGNALS', 'SIGNAL_WEIGHTS', 'CONTEXT_PRESETS',
    'BaselineBehavior', 'SignalCluster', 'TemporalPattern', 'StressComfortIndicator', 'CulturalProfile',
    'ForensicReport', 'ForensicPhase', 'ForensicObservation', 'DecisionIndicator',
    'Subject', 'SummaryJudgment', 'KeyFinding', 'Recommendation',
]
