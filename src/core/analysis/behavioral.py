#!/usr/bin/env python3
"""
Advanced behavioral heuristics.

Post-processes an AnalysisResult into baseline norms, signal clusters,
temporal trends and stress/comfort readings using fixed keyword rules
and least-squares trend fits over timestamped confidences.

All methods are pure: they never mutate the result they are given and
return identical output for identical input.
"""

import logging
from typing import List, Dict, Any, Optional, Tuple, Iterable

from ..formatters import format_timecode, parse_timecode
from ..models.analysis import AnalysisResult, TimelineEvent, CANONICAL_SIGNALS
from ..models.behavior import (
    BaselineBehavior, PosturalNorm, FacialNorm, VocalNorm, GestureNorm,
    SignalCluster, TemporalPattern, StressComfortIndicator
)
from .cultural import get_cultural_profile

logger = logging.getLogger(__name__)

CLUSTER_WINDOW_SECONDS = 10
STRESS_WINDOW_SECONDS = 15
MIN_TEMPORAL_POINTS = 3
SLOPE_THRESHOLD = 0.01
ERRATIC_VARIANCE_THRESHOLD = 0.1
LEVEL_THRESHOLD = 0.6

STRESS_INDICATORS = {
    'physiological': [
        'increased_blink_rate', 'pupil_dilation', 'facial_flushing', 'perspiration',
        'rapid_breathing', 'increased_heart_rate', 'muscle_tension'
    ],
    'behavioral': [
        'self_touch_increase', 'fidgeting', 'speech_rate_increase', 'vocal_tremor',
        'foot_tapping', 'pen_clicking', 'hair_touching', 'face_touching'
    ],
    'postural': [
        'shoulder_raising', 'forward_head_posture', 'closed_posture', 'weight_shifting',
        'defensive_positioning', 'barrier_creation'
    ],
    'vocal': [
        'pitch_elevation', 'speech_fragmentation', 'volume_changes', 'pause_irregularity',
        'filler_word_increase', 'speech_rate_variation'
    ],
}

COMFORT_INDICATORS = {
    'physiological': [
        'steady_breathing', 'normal_blink_rate', 'relaxed_facial_muscles', 'natural_coloring'
    ],
    'behavioral': [
        'smooth_movements', 'purposeful_gestures', 'natural_speech_flow', 'appropriate_pausing'
    ],
    'postural': [
        'open_posture', 'relaxed_shoulders', 'natural_alignment', 'stable_positioning'
    ],
    'vocal': [
        'steady_pitch', 'consistent_volume', 'natural_pace', 'clear_articulation'
    ],
}

# (name, keywords, interpretation, confidence, significance)
CLUSTER_DEFINITIONS = [
    ('Confidence Cluster',
     ['open_posture', 'steady_eye_contact', 'purposeful_gestures', 'clear_speech'],
     'Subject displaying strong confidence indicators', 0.85, 'high'),
    ('Engagement Cluster',
     ['forward_lean', 'nods', 'eye_contact', 'active_listening'],
     'High levels of engagement and active participation', 0.80, 'high'),
    ('Potential Deception Cluster',
     ['touch_face', 'avoid_eye_contact', 'speech_hesitation', 'incongruent'],
     'Possible deception indicators - requires additional verification', 0.65, 'medium'),
    ('Stress Response Cluster',
     ['tension', 'fidget', 'rapid_speech', 'defensive'],
     'Elevated stress levels detected', 0.78, 'high'),
]

# Clusters whose meaning is undercut by co-occurring events from these sets
CONTRADICTIONS = {
    'Confidence Cluster': ['Potential Deception Cluster', 'Stress Response Cluster'],
    'Engagement Cluster': ['Potential Deception Cluster'],
}

# Attribution of timeline events to signal channels
SIGNAL_KEYWORDS = {
    'facial_expression': ['facial', 'face', 'smile', 'expression', 'micro', 'lip', 'brow'],
    'voice_tone': ['voice', 'vocal', 'speech', 'audio', 'whisper', 'pitch'],
    'posture': ['posture', 'postural', 'lean', 'body', 'shoulder', 'stance'],
    'gestures': ['gesture', 'hand', 'arm', 'palm', 'chin', 'fidget'],
    'eye_movement': ['eye', 'gaze', 'blink'],
}

PATTERN_INTERPRETATIONS = {
    'increasing': '{signal} shows increasing trend, suggesting escalating response',
    'decreasing': '{signal} shows decreasing trend, indicating diminishing response',
    'stable': '{signal} remains stable throughout interaction',
    'cyclical': '{signal} shows cyclical pattern, suggesting periodic responses',
    'erratic': '{signal} shows erratic pattern, indicating inconsistent responses',
}

ADAPTOR_KEYWORDS = [
    ('hair touch', 'hair_touch'),
    ('face touch', 'face_touch'),
    ('touch face', 'face_touch'),
    ('hand to face', 'face_touch'),
    ('clothing', 'clothing_adjustment'),
    ('self touch', 'self_touch'),
    ('fidget', 'fidgeting'),
]


def _phrase(keyword: str) -> str:
    """Keyword tag as it appears in free text ('forward_lean' -> 'forward lean')."""
    return keyword.replace('_', ' ')


def _normalize(text: str) -> str:
    return text.lower().replace('_', ' ').replace('-', ' ')


def _matches_any(text: str, keywords: Iterable[str]) -> bool:
    lowered = text.lower()
    return any(_phrase(keyword) in lowered for keyword in keywords)


def _sorted_timeline(result: AnalysisResult) -> List[TimelineEvent]:
    return sorted(result.timeline, key=lambda event: parse_timecode(event.time))


def create_time_windows(timeline: List[TimelineEvent], window_size: int) -> List[Tuple[int, int]]:
    """
    Partition the session span into consecutive non-overlapping windows.

    Windows run from the earliest to the latest event time. A session whose
    events share a single timestamp gets one window starting there.
    """
    if not timeline:
        return []

    times = [parse_timecode(event.time) for event in timeline]
    first, last = min(times), max(times)
    if first == last:
        return [(first, first + window_size)]

    windows = []
    start = first
    while start < last:
        windows.append((start, min(start + window_size, last)))
        start += window_size
    return windows


def events_in_window(timeline: List[TimelineEvent], window: Tuple[int, int], is_last: bool) -> List[TimelineEvent]:
    """Events with start <= t < end; the final window also keeps t == end."""
    start, end = window
    selected = []
    for event in timeline:
        seconds = parse_timecode(event.time)
        if start <= seconds < end or (is_last and seconds == end):
            selected.append(event)
    return selected


def linear_trend(values: List[float]) -> Dict[str, float]:
    """Least-squares slope of values over their index."""
    n = len(values)
    sum_x = sum(range(n))
    sum_y = sum(values)
    sum_xy = sum(index * value for index, value in enumerate(values))
    sum_xx = sum(index * index for index in range(n))

    denominator = n * sum_xx - sum_x * sum_x
    slope = (n * sum_xy - sum_x * sum_y) / denominator if denominator else 0.0
    correlation = abs(slope)
    significance = 0.8 if correlation > 0.5 else 0.4
    return {'slope': slope, 'correlation': correlation, 'significance': significance}


def population_variance(values: List[float]) -> float:
    if not values:
        return 0.0
    mean = sum(values) / len(values)
    return sum((value - mean) ** 2 for value in values) / len(values)


class BehavioralAnalyzer:
    """Keyword and trend heuristics over a single AnalysisResult."""

    def __init__(self, cluster_window: int = CLUSTER_WINDOW_SECONDS,
                 stress_window: int = STRESS_WINDOW_SECONDS):
        self.cluster_window = cluster_window
        self.stress_window = stress_window

    # Baseline

    def establish_baseline(self, result: AnalysisResult, observation_duration: int = 10) -> BaselineBehavior:
        """
        Infer categorical behavioral norms from the opening window.

        Uses signal indicators plus the text of events at or before
        observation_duration seconds. Neutral categories are used only
        for channels with no matching evidence.

        Args:
            result: Analysis result to read
            observation_duration: Baseline window length in seconds

        Returns:
            BaselineBehavior with the evidence phrases that drove it
        """
        baseline_events = [event for event in _sorted_timeline(result)
                           if parse_timecode(event.time) <= observation_duration]
        event_text = ' | '.join(_normalize(event.event) for event in baseline_events)
        evidence: List[str] = []

        def corpus(*signal_names: str) -> str:
            tags = []
            for name in signal_names:
                signal = result.signals.get(name)
                if signal:
                    tags.extend(_normalize(tag) for tag in signal.indicators)
            return ' | '.join(tags + [event_text])

        def pick(text: str, rules: List[Tuple[List[str], str]], default):
            for keywords, value in rules:
                for keyword in keywords:
                    if keyword in text:
                        evidence.append(keyword)
                        return value
            return default

        body = corpus('posture', 'gestures')
        postural = PosturalNorm(
            shoulder_height=pick(body, [
                (['raised left', 'left shoulder raise'], 'raised_left'),
                (['raised right', 'right shoulder raise'], 'raised_right'),
            ], 'level'),
            arm_position=pick(body, [
                (['crossed arms', 'arms crossed', 'closed posture', 'closed gestures', 'defensive posture'], 'crossed'),
                (['hands clasped', 'clasped'], 'hands_clasped'),
                (['open posture', 'open palms', 'hands open'], 'open'),
            ], 'at_sides'),
            leg_position=pick(body, [
                (['crossed legs', 'legs crossed'], 'crossed'),
                (['wide stance'], 'wide_stance'),
                (['weight shift', 'shifted weight'], 'shifted_weight'),
            ], 'parallel'),
            torso_orientation=pick(body, [
                (['leaning back', 'lean back', 'leans back'], 'leaning_back'),
                (['angled left', 'turned left'], 'angled_left'),
                (['angled right', 'turned right'], 'angled_right'),
                (['forward lean', 'leans forward', 'lean forward', 'engagement posture'], 'forward'),
            ], 'forward'),
        )

        face = corpus('facial_expression')
        eyes = corpus('eye_movement')
        facial = FacialNorm(
            eyebrow_position=pick(face, [
                (['furrow', 'frown'], 'furrowed'),
                (['single raise', 'asymmetr'], 'asymmetrical'),
                (['eyebrow flash', 'eyebrow raise', 'brow raise', 'surprise'], 'slightly_raised'),
            ], 'neutral'),
            eye_contact_pattern=pick(eyes, [
                (['avoid eye contact', 'gaze avoidance', 'gaze aversion'], 'avoiding'),
                (['scanning', 'scan'], 'scanning'),
                (['direct eye contact', 'steady eye contact'], 'direct'),
                (['eye accessing', 'intermittent'], 'intermittent'),
            ], 'direct'),
            mouth_position=pick(face, [
                (['lip compression', 'compressed', 'lips pursed'], 'compressed'),
                (['jaw clench', 'tension', 'anger'], 'tense'),
                (['smile', 'joy', 'positive expression', 'grin'], 'slight_upturn'),
            ], 'neutral'),
            blink_rate=pick(eyes, [
                (['increased blink rate', 'rapid blink'], 30),
                (['reduced blink', 'low blink'], 12),
            ], 20),
        )

        voice = corpus('voice_tone')
        vocal = VocalNorm(
            pitch_range=pick(voice, [
                (['pitch elevation', 'vocal tremor', 'stress', 'fear', 'anxious'], {'low': 180, 'high': 350}),
                (['monotone', 'flat'], {'low': 140, 'high': 200}),
            ], {'low': 150, 'high': 300}),
            speech_rate=pick(voice, [
                (['rapid speech', 'speech rate increase', 'fast'], 180),
                (['slow speech', 'slow'], 120),
            ], 150),
            volume_level=pick(voice, [
                (['loud', 'anger', 'volume increase'], 'loud'),
                (['quiet', 'soft', 'sorrow'], 'quiet'),
            ], 'normal'),
            pause_pattern=pick(voice, [
                (['hesitation', 'pause irregularity', 'frequent pause'], 'frequent'),
                (['rapid speech', 'no pause'], 'minimal'),
            ], 'natural'),
        )

        hands = corpus('gestures')
        adaptors: List[str] = []
        for keyword, adaptor in ADAPTOR_KEYWORDS:
            if keyword in hands and adaptor not in adaptors:
                adaptors.append(adaptor)
                evidence.append(keyword)

        gesture = GestureNorm(
            hand_movement_frequency=pick(hands, [
                (['fidget', 'excessive'], 'excessive'),
                (['gesture activity', 'movement detected', 'hand movements'], 'frequent'),
                (['minimal movement'], 'minimal'),
            ], 'moderate'),
            gesture_size=pick(hands, [
                (['open palms', 'expansive', 'wide gesture'], 'expansive'),
                (['closed gestures', 'defensive'], 'restricted'),
                (['hands clasped', 'contained'], 'contained'),
            ], 'moderate'),
            adaptor_behaviors=adaptors,
        )

        return BaselineBehavior(
            subject='primary',
            duration=observation_duration,
            postural_norm=postural,
            facial_norm=facial,
            vocal_norm=vocal,
            gesture_norm=gesture,
            evidence=evidence,
        )

    # Clusters

    def detect_signal_clusters(self, result: AnalysisResult) -> List[SignalCluster]:
        """
        Find windows where two or more events share a behavioral meaning.

        Returns:
            Clusters ordered by significance (high first), stable within a level
        """
        timeline = _sorted_timeline(result)
        windows = create_time_windows(timeline, self.cluster_window)
        clusters: List[SignalCluster] = []

        for index, window in enumerate(windows):
            window_events = events_in_window(timeline, window, index == len(windows) - 1)
            matched: Dict[str, List[str]] = {}

            for name, keywords, interpretation, confidence, significance in CLUSTER_DEFINITIONS:
                present = [event.event for event in window_events if _matches_any(event.event, keywords)]
                matched[name] = present
                if len(present) < 2:
                    continue

                clusters.append(SignalCluster(
                    name=name,
                    signals=present,
                    interpretation=interpretation,
                    confidence=confidence,
                    time_window={'start': format_timecode(window[0]), 'end': format_timecode(window[1])},
                    significance=significance,
                ))

            # Contradictions are only known after every set was tested
            for cluster in clusters:
                if cluster.time_window['start'] != format_timecode(window[0]):
                    continue
                for other in CONTRADICTIONS.get(cluster.name, []):
                    for text in matched.get(other, []):
                        if text not in cluster.signals and text not in cluster.contradictory_signals:
                            cluster.contradictory_signals.append(text)

        return sorted(clusters, key=lambda cluster: -cluster.significance_rank)

    # Temporal patterns

    def signal_time_series(self, result: AnalysisResult, signal_name: str) -> List[Dict[str, Any]]:
        """Confidence points of timeline events attributed to one signal."""
        keywords = SIGNAL_KEYWORDS.get(signal_name, [])
        points = []
        for event in _sorted_timeline(result):
            text = f"{event.event} {event.api_call}".lower()
            if any(keyword in text for keyword in keywords):
                points.append({'time': event.time, 'value': event.confidence})
        return points

    def analyze_temporal_patterns(self, result: AnalysisResult) -> List[TemporalPattern]:
        """
        Fit a trend per signal and classify it.

        Signals with fewer than three attributed points yield no pattern.
        """
        patterns: List[TemporalPattern] = []
        for signal_name in CANONICAL_SIGNALS:
            if result.signals.get(signal_name) is None:
                continue

            points = self.signal_time_series(result, signal_name)
            if len(points) < MIN_TEMPORAL_POINTS:
                continue

            values = [point['value'] for point in points]
            trend = linear_trend(values)
            pattern = self.classify_pattern(values, trend['slope'])
            patterns.append(TemporalPattern(
                pattern=pattern,
                signal=signal_name,
                time_points=points,
                trend=trend,
                interpretation=PATTERN_INTERPRETATIONS[pattern].format(signal=signal_name),
            ))
        return patterns

    @staticmethod
    def classify_pattern(values: List[float], slope: float) -> str:
        if population_variance(values) > ERRATIC_VARIANCE_THRESHOLD:
            return 'erratic'
        if slope > SLOPE_THRESHOLD:
            return 'increasing'
        if slope < -SLOPE_THRESHOLD:
            return 'decreasing'
        return 'stable'

    # Stress / comfort

    def assess_stress_comfort_levels(self, result: AnalysisResult) -> List[StressComfortIndicator]:
        """
        Score each 15s window for stress, then comfort.

        A window is reported as stress when its normalized behavioral stress
        count exceeds 0.6, otherwise as comfort on the same rule; windows
        meeting neither are dropped.
        """
        timeline = _sorted_timeline(result)
        windows = create_time_windows(timeline, self.stress_window)
        indicators: List[StressComfortIndicator] = []

        for index, window in enumerate(windows):
            window_events = events_in_window(timeline, window, index == len(windows) - 1)

            for kind, table in (('stress', STRESS_INDICATORS), ('comfort', COMFORT_INDICATORS)):
                behavioral = [event.event for event in window_events
                              if _matches_any(event.event, table['behavioral'])]
                level = min(len(behavioral) / 3, 1.0)
                if level <= LEVEL_THRESHOLD:
                    continue

                physiological = [event.event for event in window_events
                                 if _matches_any(event.event, table['physiological'])]
                indicators.append(StressComfortIndicator(
                    type=kind,
                    level=level,
                    indicators=behavioral,
                    physiological_markers=physiological,
                    behavioral_markers=list(behavioral),
                    time_stamp=format_timecode(window[0]),
                    reliability=min(len(window_events) / 5, 1.0),
                ))
                break

        return indicators

    # Cultural context

    def apply_cultural_context(self, result: AnalysisResult, cultural_background: str = 'western') -> AnalysisResult:
        """
        Re-read eye contact and gesture signals against regional norms.

        Always returns a new result. Regions without a profile come back
        as an unchanged copy.
        """
        adjusted = result.copy()
        profile = get_cultural_profile(cultural_background)
        if profile is None:
            logger.info(f"No cultural profile for '{cultural_background}', signals unchanged")
            return adjusted

        eye = adjusted.signals.get('eye_movement')
        if eye is not None and not profile.direct_gaze_acceptable:
            eye.indicators = ['respectful_gaze_avoidance' if tag == 'direct_eye_contact' else tag
                              for tag in eye.indicators]

        gestures = adjusted.signals.get('gestures')
        if gestures is not None:
            for gesture, interpretation in profile.gesture_interpretations.items():
                if gesture in gestures.indicators and interpretation.appropriateness in ('negative', 'taboo'):
                    gestures.confidence *= 0.8

        return adjusted

    # Insights

    def generate_advanced_insights(self,
                                   baseline: BaselineBehavior,
                                   clusters: List[SignalCluster],
                                   patterns: List[TemporalPattern],
                                   stress_comfort: List[StressComfortIndicator]) -> List[str]:
        """Summarize the heuristics output as plain-language sentences."""
        stability = 'stable behavioral patterns' if baseline.evidence else 'neutral default norms (no distinguishing cues observed)'
        insights = [f"Baseline established over {baseline.duration} seconds with {stability}"]

        high_clusters = [cluster for cluster in clusters if cluster.significance == 'high']
        if high_clusters:
            insights.append(f"{len(high_clusters)} high-significance behavioral clusters detected, "
                            f"suggesting {self._interpret_cluster_patterns(high_clusters)}")

        increasing = [pattern.signal for pattern in patterns if pattern.pattern == 'increasing']
        decreasing = [pattern.signal for pattern in patterns if pattern.pattern == 'decreasing']
        if increasing:
            insights.append(f"Increasing trends observed in {', '.join(increasing)}, "
                            f"indicating escalating behavioral responses over time")
        if decreasing:
            insights.append(f"Decreasing trends in {', '.join(decreasing)}, "
                            f"suggesting diminishing behavioral intensity")

        stress = [item for item in stress_comfort if item.type == 'stress']
        comfort = [item for item in stress_comfort if item.type == 'comfort']
        if len(stress) > len(comfort):
            insights.append(f"Predominant stress indicators detected with average level "
                            f"{self._average_level(stress):.2f}, suggesting heightened tension")
        elif len(comfort) > len(stress):
            insights.append(f"Strong comfort indicators with average level "
                            f"{self._average_level(comfort):.2f}, indicating subject ease and confidence")

        return insights

    @staticmethod
    def _interpret_cluster_patterns(clusters: List[SignalCluster]) -> str:
        names = [cluster.name.lower() for cluster in clusters]
        if any('confidence' in name for name in names):
            return 'high subject confidence'
        if any('engagement' in name for name in names):
            return 'active engagement'
        if any('stress' in name for name in names):
            return 'elevated stress responses'
        return 'mixed behavioral responses'

    @staticmethod
    def _average_level(items: List[StressComfortIndicator]) -> float:
        return sum(item.level for item in items) / len(items) if items else 0.0
