#!/usr/bin/env python3
"""
Analysis result data models.

Contains the per-session AnalysisResult record and its parts: the five
canonical behavioral signals, timeline events and alerts.
"""

import copy
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional

# Canonical signal keys, in weight-table order
CANONICAL_SIGNALS = ['facial_expression', 'voice_tone', 'posture', 'gestures', 'eye_movement']

SIGNAL_WEIGHTS: Dict[str, float] = {
    'facial_expression': 0.25,
    'voice_tone': 0.2,
    'posture': 0.2,
    'gestures': 0.2,
    'eye_movement': 0.15,
}

CONTEXT_PRESETS = ['meeting', 'interview', 'presentation', 'negotiation', 'date', 'therapy', 'sales', 'training']

MEDIA_TYPES = ['video', 'audio', 'image', 'live', 'text']

ANALYSIS_PHASES = ['baseline', 'engagement', 'challenge', 'reinforcement', 'decision']


@dataclass
class SignalData:
    """Confidence and indicator tags for one behavioral channel."""
    confidence: float = 0.0
    indicators: List[str] = field(default_factory=lambda: ['baseline'])
    api_source: str = 'none'
    has_full_body: Optional[bool] = None

    def __post_init__(self):
        """Validate and clean data."""
        self.confidence = max(0.0, min(1.0, float(self.confidence)))
        self.indicators = list(self.indicators)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'confidence': self.confidence,
            'indicators': list(self.indicators),
            'api_source': self.api_source,
        }
        if self.has_full_body is not None:
            data['has_full_body'] = self.has_full_body
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SignalData':
        return cls(
            confidence=data.get('confidence', 0.0),
            indicators=data.get('indicators', ['baseline']),
            api_source=data.get('api_source', data.get('apiSource', 'none')),
            has_full_body=data.get('has_full_body', data.get('hasFullBody')),
        )


@dataclass
class TimelineEvent:
    """A timestamped observation emitted during a session."""
    time: str
    event: str
    confidence: float
    api_call: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'time': self.time,
            'event': self.event,
            'confidence': self.confidence,
            'api_call': self.api_call,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TimelineEvent':
        return cls(
            time=data['time'],
            event=data['event'],
            confidence=data.get('confidence', 0.0),
            api_call=data.get('api_call', data.get('apiCall', '')),
        )


@dataclass
class DetailedTimelineEvent(TimelineEvent):
    """Timeline event annotated with interaction phase and body-language cues."""
    phase: str = 'baseline'
    micro_expressions: List[str] = field(default_factory=list)
    body_language_cues: List[str] = field(default_factory=list)
    contextual_notes: str = ''

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            'phase': self.phase,
            'micro_expressions': list(self.micro_expressions),
            'body_language_cues': list(self.body_language_cues),
            'contextual_notes': self.contextual_notes,
        })
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DetailedTimelineEvent':
        return cls(
            time=data['time'],
            event=data['event'],
            confidence=data.get('confidence', 0.0),
            api_call=data.get('api_call', data.get('apiCall', '')),
            phase=data.get('phase', 'baseline'),
            micro_expressions=data.get('micro_expressions', data.get('microExpressions', [])),
            body_language_cues=data.get('body_language_cues', data.get('bodyLanguageCues', [])),
            contextual_notes=data.get('contextual_notes', data.get('contextualNotes', '')),
        )


@dataclass
class Alert:
    """A behavioral condition worth flagging to the user."""
    type: str
    severity: str  # low, medium, high
    timestamp: str
    description: str
    confidence: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type,
            'severity': self.severity,
            'timestamp': self.timestamp,
            'description': self.description,
            'confidence': self.confidence,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Alert':
        return cls(
            type=data['type'],
            severity=data.get('severity', 'medium'),
            timestamp=data.get('timestamp', '00:00'),
            description=data.get('description', ''),
            confidence=data.get('confidence', 0.0),
        )


def default_signals() -> Dict[str, SignalData]:
    """Five canonical signals at zero confidence."""
    return {name: SignalData() for name in CANONICAL_SIGNALS}


@dataclass
class AnalysisResult:
    """Unified record for one capture, upload or text session."""
    session_id: str
    timestamp: int  # epoch milliseconds
    context_preset: str
    signals: Dict[str, SignalData] = field(default_factory=default_signals)
    trust_vector: float = 0.0
    alerts: List[Alert] = field(default_factory=list)
    timeline: List[TimelineEvent] = field(default_factory=list)
    detailed_timeline: List[DetailedTimelineEvent] = field(default_factory=list)
    media_type: Optional[str] = None
    narrative: Optional[str] = None
    narrative_generated: bool = False
    supabase_id: Optional[str] = None
    github_url: Optional[str] = None

    def __post_init__(self):
        for name in CANONICAL_SIGNALS:
            self.signals.setdefault(name, SignalData())

    def copy(self) -> 'AnalysisResult':
        """Deep copy, so derived views never alias the caller's signals."""
        return copy.deepcopy(self)

    def has_failed_sources(self) -> bool:
        """True when any signal was marked as a failed provider call."""
        return any(signal.api_source == 'failed' for signal in self.signals.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            'session_id': self.session_id,
            'timestamp': self.timestamp,
            'context_preset': self.context_preset,
            'media_type': self.media_type,
            'signals': {name: signal.to_dict() for name, signal in self.signals.items()},
            'trust_vector': self.trust_vector,
            'alerts': [alert.to_dict() for alert in self.alerts],
            'timeline': [event.to_dict() for event in self.timeline],
            'detailed_timeline': [event.to_dict() for event in self.detailed_timeline],
            'narrative': self.narrative,
            'narrative_generated': self.narrative_generated,
            'supabase_id': self.supabase_id,
            'github_url': self.github_url,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AnalysisResult':
        return cls(
            session_id=data.get('session_id', data.get('sessionId', '')),
            timestamp=int(data.get('timestamp', 0)),
            context_preset=data.get('context_preset', data.get('contextPreset', 'meeting')),
            signals={name: SignalData.from_dict(signal) for name, signal in data.get('signals', {}).items()},
            trust_vector=data.get('trust_vector', data.get('trustVector', 0.0)),
            alerts=[Alert.from_dict(alert) for alert in data.get('alerts', [])],
            timeline=[TimelineEvent.from_dict(event) for event in data.get('timeline', [])],
            detailed_timeline=[DetailedTimelineEvent.from_dict(event)
                               for event in data.get('detailed_timeline', data.get('detailedTimeline', []))],
            media_type=data.get('media_type', data.get('mediaType')),
            narrative=data.get('narrative', data.get('claudeAnalysis')),
            narrative_generated=data.get('narrative_generated', False),
            supabase_id=data.get('supabase_id'),
            github_url=data.get('github_url'),
        )
