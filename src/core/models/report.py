#!/usr/bin/env python3
"""
Forensic report data models.

A ForensicReport is a read-only view derived from one AnalysisResult.
Every part serializes to plain dictionaries so the JSON export can be
parsed back into an equal report.
"""

from dataclasses import dataclass, field, asdict
from typing import List, Dict, Any, Optional

from .behavior import (
    BaselineBehavior, SignalCluster, TemporalPattern, StressComfortIndicator
)

PRIORITY_ORDER = {'High': 0, 'Medium': 1, 'Low': 2}


@dataclass
class ForensicObservation:
    cue: str
    observation: str
    implication: str
    confidence: float
    timestamp: Optional[str] = None
    micro_expressions: Optional[List[str]] = None
    api_source: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ForensicPhase:
    phase_name: str
    time_range: str
    observations: List[ForensicObservation] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'phase_name': self.phase_name,
            'time_range': self.time_range,
            'observations': [obs.to_dict() for obs in self.observations],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ForensicPhase':
        return cls(
            phase_name=data['phase_name'],
            time_range=data['time_range'],
            observations=[ForensicObservation(**obs) for obs in data.get('observations', [])],
        )


@dataclass
class DecisionIndicator:
    indicator: str
    presence: str  # Present, Absent, Partial
    weight: str
    significance: str


@dataclass
class Subject:
    id: str
    label: str
    description: str
    role: str


@dataclass
class KeyFinding:
    category: str
    level: str
    evidence: List[str]
    confidence: float


@dataclass
class SummaryJudgment:
    overall_assessment: str
    key_findings: List[KeyFinding]
    trust_vector: float
    engagement_level: str  # Low, Moderate, High
    skepticism_level: str  # Low, Moderate, High
    openness_to_next: str  # Poor, Fair, Good, Excellent

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SummaryJudgment':
        values = dict(data)
        values['key_findings'] = [KeyFinding(**finding) for finding in data.get('key_findings', [])]
        return cls(**values)


@dataclass
class Recommendation:
    priority: str  # High, Medium, Low
    action: str
    rationale: str
    expected_outcome: str


@dataclass
class ForensicReport:
    """Structured forensic body-language report."""
    title: str
    subjects: List[Subject]
    baseline_calibration: ForensicPhase
    analysis_phases: List[ForensicPhase]
    decision_indicators: List[DecisionIndicator]
    summary_judgment: SummaryJudgment
    recommendations: List[Recommendation]
    confidence_note: str
    timestamp: str
    baseline_behavior: Optional[BaselineBehavior] = None
    signal_clusters: Optional[List[SignalCluster]] = None
    temporal_patterns: Optional[List[TemporalPattern]] = None
    stress_comfort_indicators: Optional[List[StressComfortIndicator]] = None
    advanced_insights: Optional[List[str]] = None
    cultural_context: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'title': self.title,
            'subjects': [asdict(subject) for subject in self.subjects],
            'baseline_calibration': self.baseline_calibration.to_dict(),
            'analysis_phases': [phase.to_dict() for phase in self.analysis_phases],
            'decision_indicators': [asdict(indicator) for indicator in self.decision_indicators],
            'summary_judgment': asdict(self.summary_judgment),
            'recommendations': [asdict(rec) for rec in self.recommendations],
            'confidence_note': self.confidence_note,
            'timestamp': self.timestamp,
            'baseline_behavior': self.baseline_behavior.to_dict() if self.baseline_behavior else None,
            'signal_clusters': _list_to_dicts(self.signal_clusters),
            'temporal_patterns': _list_to_dicts(self.temporal_patterns),
            'stress_comfort_indicators': _list_to_dicts(self.stress_comfort_indicators),
            'advanced_insights': list(self.advanced_insights) if self.advanced_insights is not None else None,
            'cultural_context': self.cultural_context,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ForensicReport':
        baseline_behavior = data.get('baseline_behavior')
        return cls(
            title=data['title'],
            subjects=[Subject(**subject) for subject in data.get('subjects', [])],
            baseline_calibration=ForensicPhase.from_dict(data['baseline_calibration']),
            analysis_phases=[ForensicPhase.from_dict(phase) for phase in data.get('analysis_phases', [])],
            decision_indicators=[DecisionIndicator(**item) for item in data.get('decision_indicators', [])],
            summary_judgment=SummaryJudgment.from_dict(data['summary_judgment']),
            recommendations=[Recommendation(**rec) for rec in data.get('recommendations', [])],
            confidence_note=data.get('confidence_note', ''),
            timestamp=data.get('timestamp', ''),
            baseline_behavior=BaselineBehavior.from_dict(baseline_behavior) if baseline_behavior else None,
            signal_clusters=_list_from_dicts(data.get('signal_clusters'), SignalCluster),
            temporal_patterns=_list_from_dicts(data.get('temporal_patterns'), TemporalPattern),
            stress_comfort_indicators=_list_from_dicts(data.get('stress_comfort_indicators'), StressComfortIndicator),
            advanced_insights=data.get('advanced_insights'),
            cultural_context=data.get('cultural_context'),
        )


def _list_to_dicts(items: Optional[list]) -> Optional[List[Dict[str, Any]]]:
    if items is None:
        return None
    return [item.to_dict() for item in items]


def _list_from_dicts(items: Optional[List[Dict[str, Any]]], model) -> Optional[list]:
    if items is None:
        return None
    return [model.from_dict(item) for item in items]
