#!/usr/bin/env python3
"""
Behavioral annotation models.

Transient structures computed by the heuristics layer from an
AnalysisResult timeline: baseline norms, signal clusters, temporal
trends, stress/comfort readings and cultural profiles.
"""

from dataclasses import dataclass, field, asdict
from typing import List, Dict, Any

SIGNIFICANCE_ORDER = {'high': 2, 'medium': 1, 'low': 0}


@dataclass
class PosturalNorm:
    shoulder_height: str = 'level'  # level, raised_left, raised_right
    arm_position: str = 'at_sides'  # crossed, open, hands_clasped, at_sides
    leg_position: str = 'parallel'  # parallel, crossed, wide_stance, shifted_weight
    torso_orientation: str = 'forward'  # forward, angled_left, angled_right, leaning_back


@dataclass
class FacialNorm:
    eyebrow_position: str = 'neutral'  # neutral, slightly_raised, furrowed, asymmetrical
    eye_contact_pattern: str = 'direct'  # direct, intermittent, avoiding, scanning
    mouth_position: str = 'neutral'  # neutral, slight_upturn, compressed, tense
    blink_rate: int = 20  # blinks per minute


@dataclass
class VocalNorm:
    pitch_range: Dict[str, int] = field(default_factory=lambda: {'low': 150, 'high': 300})
    speech_rate: int = 150  # words per minute
    volume_level: str = 'normal'  # quiet, normal, loud
    pause_pattern: str = 'natural'  # natural, frequent, minimal


@dataclass
class GestureNorm:
    hand_movement_frequency: str = 'moderate'  # minimal, moderate, frequent, excessive
    gesture_size: str = 'moderate'  # contained, moderate, expansive, restricted
    adaptor_behaviors: List[str] = field(default_factory=list)


@dataclass
class BaselineBehavior:
    """Behavioral norms observed during the opening window of a session."""
    subject: str
    duration: int
    postural_norm: PosturalNorm
    facial_norm: FacialNorm
    vocal_norm: VocalNorm
    gesture_norm: GestureNorm
    evidence: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BaselineBehavior':
        return cls(
            subject=data.get('subject', 'primary'),
            duration=data.get('duration', 10),
            postural_norm=PosturalNorm(**data.get('postural_norm', {})),
            facial_norm=FacialNorm(**data.get('facial_norm', {})),
            vocal_norm=VocalNorm(**data.get('vocal_norm', {})),
            gesture_norm=GestureNorm(**data.get('gesture_norm', {})),
            evidence=list(data.get('evidence', [])),
        )


@dataclass
class SignalCluster:
    """Co-occurring events inside one time window that share a meaning."""
    name: str
    signals: List[str]
    interpretation: str
    confidence: float
    time_window: Dict[str, str]
    significance: str  # high, medium, low
    contradictory_signals: List[str] = field(default_factory=list)

    @property
    def significance_rank(self) -> int:
        return SIGNIFICANCE_ORDER.get(self.significance, 0)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SignalCluster':
        return cls(**data)


@dataclass
class TemporalPattern:
    """Least-squares trend of one signal's confidence over the session."""
    pattern: str  # increasing, decreasing, cyclical, stable, erratic
    signal: str
    time_points: List[Dict[str, Any]]
    trend: Dict[str, float]
    interpretation: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TemporalPattern':
        return cls(**data)


@dataclass
class StressComfortIndicator:
    """Stress or comfort reading for one time window."""
    type: str  # stress, comfort
    level: float
    indicators: List[str]
    physiological_markers: List[str]
    behavioral_markers: List[str]
    time_stamp: str
    reliability: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StressComfortIndicator':
        return cls(**data)


@dataclass
class GestureInterpretation:
    meaning: str
    appropriateness: str  # positive, neutral, negative, taboo
    context_dependent: bool


@dataclass
class CulturalProfile:
    """Regional norms used to re-read eye contact and gesture signals."""
    region: str
    personal_space: int  # inches
    direct_gaze_acceptable: bool
    gender_considerations: bool
    hierarchy_influence: bool
    gesture_interpretations: Dict[str, GestureInterpretation]
    touch_norms: Dict[str, str]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CulturalProfile':
        gestures = {name: GestureInterpretation(**value)
                    for name, value in data.get('gesture_interpretations', {}).items()}
        return cls(
            region=data['region'],
            personal_space=data['personal_space'],
            direct_gaze_acceptable=data['direct_gaze_acceptable'],
            gender_considerations=data['gender_considerations'],
            hierarchy_influence=data['hierarchy_influence'],
            gesture_interpretations=gestures,
            touch_norms=dict(data.get('touch_norms', {})),
        )
