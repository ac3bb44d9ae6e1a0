#!/usr/bin/env python3
"""
Forensic body-language report generation.

Maps one AnalysisResult onto a phase-structured ForensicReport. Timeline
events are bucketed by elapsed time, each bucket is rendered through a
fixed catalogue of cue templates and the heuristics pipeline fills the
advanced sections.
"""

import logging
from datetime import datetime, timezone
from typing import List, Dict, Any, Optional

from ..analysis.stages import build_heuristics_pipeline
from ..formatters import parse_timecode
from ..models.analysis import AnalysisResult, SignalData, TimelineEvent
from ..models.report import (
    ForensicReport, ForensicPhase, ForensicObservation, DecisionIndicator,
    Subject, SummaryJudgment, KeyFinding, Recommendation, PRIORITY_ORDER
)

logger = logging.getLogger(__name__)

# Upper bound (inclusive, seconds) of each chronological bucket; later events are 'decision'
PHASE_BOUNDARIES = [
    ('baseline', 10),
    ('engagement', 30),
    ('challenge', 50),
]

REINFORCEMENT_KEYWORDS = ['smile', 'nod', 'lean forward', 'open', 'agree', 'yes', 'good']

POSITIVE_TERMS = ['positive', 'interest', 'approval']
NEGATIVE_TERMS = ['skeptic', 'concern', 'defensive']

CONTEXT_TITLES = {
    'interview': 'Job Interview Assessment',
    'negotiation': 'Negotiation Dynamics Analysis',
    'presentation': 'Presentation Impact Evaluation',
    'meeting': 'Business Meeting Behavioral Analysis',
    'date': 'Personal Interaction Assessment',
    'therapy': 'Therapeutic Progress Evaluation',
    'sales': 'Sales Interaction Analysis',
    'training': 'Practice Session Feedback',
}

DEFAULT_SUBJECTS = [
    Subject('subject-a', 'Subject A', 'Primary speaker/presenter', 'Presenter'),
    Subject('subject-b', 'Subject B', 'Evaluator/listener', 'Evaluator'),
]

CONTEXT_RECOMMENDATIONS = {
    'interview': Recommendation(
        'High', 'Prepare concrete examples demonstrating key competencies',
        'Body language shows evaluative processing of claims',
        'Enhanced credibility through specific evidence'),
    'negotiation': Recommendation(
        'Medium', 'Present alternative proposals to test flexibility',
        'Mixed signals suggest room for negotiation',
        'Identify optimal compromise position'),
    'presentation': Recommendation(
        'High', 'Offer interactive demonstration or hands-on experience',
        'Visual processing cues indicate preference for tangible evidence',
        'Convert intellectual interest to emotional investment'),
}

CONFIDENCE_NOTES = {
    'multi_modal': ("This assessment leverages {api_count} AI APIs analyzing both visual and audio cues, "
                    "providing high confidence (~85-90% accuracy) in behavioral interpretation. Multi-modal "
                    "analysis significantly enhances reliability compared to single-channel assessment."),
    'visual': ("This assessment relies on visual body-language cues from multiple AI sources. While "
               "non-verbal signals are highly predictive (~70-75% accuracy), pairing with audio analysis "
               "would further refine certainty."),
    'limited': ("This assessment is based on limited data sources. Confidence level is moderate (~60-65%). "
                "Additional video/audio input would significantly improve analysis accuracy."),
}

FEET_SIGNAL_MARKERS = ['full-body', 'feet', 'stance', 'lower-body']
FEET_EVENT_MARKERS = ['full body', 'feet', 'stance', 'lower body']
FEET_CUE_MARKERS = ['feet', 'stance', 'full body']


def _text(event: TimelineEvent) -> str:
    return event.event.lower()


def _contains_any(text: str, keywords: List[str]) -> bool:
    return any(keyword in text for keyword in keywords)


def phase_for_seconds(seconds: int) -> str:
    """Chronological bucket for an elapsed time."""
    for phase, upper in PHASE_BOUNDARIES:
        if seconds <= upper:
            return phase
    return 'decision'


def is_positive_reinforcement(event: TimelineEvent) -> bool:
    return _contains_any(_text(event), REINFORCEMENT_KEYWORDS)


def extract_phases(timeline: List[TimelineEvent]) -> Dict[str, List[TimelineEvent]]:
    """
    Bucket timeline events by elapsed time.

    Every event lands in exactly one chronological bucket and may also be
    added to the cross-cutting reinforcement bucket.
    """
    phases: Dict[str, List[TimelineEvent]] = {
        'baseline': [], 'engagement': [], 'challenge': [], 'reinforcement': [], 'decision': []
    }
    for event in timeline:
        phases[phase_for_seconds(parse_timecode(event.time))].append(event)
        if is_positive_reinforcement(event):
            phases['reinforcement'].append(event)
    return phases


def eye_direction(description: str) -> str:
    desc = description.lower()
    if 'up' in desc and 'left' in desc:
        return 'up-left (recall/visualization)'
    if 'up' in desc and 'right' in desc:
        return 'up-right (construction)'
    if 'down' in desc and 'left' in desc:
        return 'down-left (kinesthetic)'
    if 'down' in desc and 'right' in desc:
        return 'down-right (internal dialogue)'
    return 'lateral (auditory processing)'


def _describe_lip_movement(event: TimelineEvent) -> str:
    text = _text(event)
    if 'compress' in text:
        return 'Brief press of the lips after hearing key information'
    if 'purse' in text:
        return 'Lips pursed in evaluative expression'
    return 'Subtle lip movement detected'


def _count_matching(phases: List[ForensicPhase], terms: List[str]) -> int:
    return sum(1 for phase in phases for obs in phase.observations
               if _contains_any(obs.implication.lower(), terms))


def count_active_sources(result: AnalysisResult) -> int:
    """Distinct api sources among the signals, excluding unpopulated ones."""
    return len({signal.api_source for signal in result.signals.values()
                if signal.api_source and signal.api_source != 'none'})


def has_audio_signal(result: AnalysisResult) -> bool:
    voice = result.signals.get('voice_tone')
    return voice is not None and voice.api_source != 'none' and voice.confidence > 0


def build_subjects(labels: Optional[List[str]]) -> Optional[List[Subject]]:
    """
    Subjects from plain labels; the first two take the presenter and
    evaluator roles, any others are participants.
    """
    if not labels:
        return None
    subjects = []
    for index, label in enumerate(labels):
        if index < len(DEFAULT_SUBJECTS):
            template = DEFAULT_SUBJECTS[index]
            description, role = template.description, template.role
        else:
            description, role = 'Additional participant', 'Participant'
        subject_id = 'subject-' + '-'.join(label.lower().split())
        subjects.append(Subject(subject_id, label, description, role))
    return subjects


class ForensicReportGenerator:
    """Builds ForensicReport views from analysis results."""

    def __init__(self, pipeline=None):
        """
        Args:
            pipeline: Heuristics pipeline (the standard one if omitted)
        """
        self.pipeline = pipeline or build_heuristics_pipeline()

    def generate(self, result: AnalysisResult, context_preset: Optional[str] = None,
                 subjects: Optional[List[Subject]] = None, cultural_context: str = 'western',
                 now: Optional[datetime] = None) -> ForensicReport:
        """
        Generate the forensic report for one session.

        The input result is never modified; cultural adjustment works on a copy.

        Args:
            result: Completed analysis result
            context_preset: Interaction context (defaults to the result's own)
            subjects: Named subjects; default Subject A/B labels when omitted
            cultural_context: Culture used to re-read eye contact and gestures
            now: Report timestamp (defaults to the current UTC time)

        Returns:
            ForensicReport
        """
        context_preset = context_preset or result.context_preset
        heuristics = self.pipeline.run(result, {'cultural_context': cultural_context})
        for key, value in heuristics.items():
            if key.endswith('_error'):
                logger.warning(f"Heuristic stage {key[:-len('_error')]} failed: {value}")

        adjusted = heuristics.get('adjusted_result') or result.copy()
        phases = extract_phases(adjusted.timeline)

        analysis_phases = self._main_phases(phases)
        summary = self._summary_judgment(adjusted, analysis_phases)
        timestamp = (now or datetime.now(timezone.utc)).isoformat()

        report = ForensicReport(
            title=self._title(context_preset, subjects),
            subjects=list(subjects) if subjects else list(DEFAULT_SUBJECTS),
            baseline_calibration=self._baseline_phase(adjusted),
            analysis_phases=analysis_phases,
            decision_indicators=self._decision_indicators(phases['decision'], adjusted),
            summary_judgment=summary,
            recommendations=self._recommendations(summary, context_preset),
            confidence_note=self._confidence_note(adjusted),
            timestamp=timestamp,
            baseline_behavior=heuristics.get('baseline_behavior'),
            signal_clusters=heuristics.get('signal_clusters', []),
            temporal_patterns=heuristics.get('temporal_patterns', []),
            stress_comfort_indicators=heuristics.get('stress_comfort_indicators', []),
            advanced_insights=heuristics.get('advanced_insights', []),
            cultural_context=cultural_context,
        )

        logger.info(f"Forensic report generated for {result.session_id}: "
                    f"{len(analysis_phases)} phases, {len(report.recommendations)} recommendations")
        return report

    # Phases

    def _baseline_phase(self, result: AnalysisResult) -> ForensicPhase:
        observations = []

        posture = result.signals.get('posture')
        if posture:
            if 'open_posture' in posture.indicators:
                description = 'Subject sits upright, shoulders relaxed but not slouched'
                implication = 'Neutral-open baseline; no defensive bias at start'
            elif 'closed_posture' in posture.indicators:
                description = 'Subject shows closed body position, arms crossed or turned away'
                implication = 'Defensive or skeptical starting position'
            else:
                description = 'Subject maintains neutral posture'
                implication = 'Baseline comfort level established'
            observations.append(ForensicObservation('Posture', description, implication,
                                                    posture.confidence or 0.8, api_source=posture.api_source))

        eyes = result.signals.get('eye_movement')
        if eyes:
            observations.append(ForensicObservation(
                'Eye Focus', 'Alternates between speaker and reference materials',
                'Signals active listening and readiness to process details',
                eyes.confidence or 0.75, api_source=eyes.api_source))

        gestures = result.signals.get('gestures')
        if gestures:
            if 'hands_open' in gestures.indicators:
                description, implication = 'Rest lightly on surface, fingers uncrossed', 'Comfort; not yet invested emotionally'
            else:
                description, implication = 'Hands in neutral position', 'Baseline gesture pattern established'
            observations.append(ForensicObservation('Hands', description, implication,
                                                    gestures.confidence or 0.7, api_source=gestures.api_source))

        return ForensicPhase('Baseline Calibration (first 5-10 seconds)', '0:00 - 0:10', observations)

    def _main_phases(self, phases: Dict[str, List[TimelineEvent]]) -> List[ForensicPhase]:
        main_phases = []
        if phases['engagement']:
            main_phases.append(self._engagement_phase(phases['engagement']))
        if phases['challenge']:
            main_phases.append(self._challenge_phase(phases['challenge']))
        if phases['reinforcement']:
            main_phases.append(self._reinforcement_phase(phases['reinforcement']))
        return main_phases

    def _engagement_phase(self, events: List[TimelineEvent]) -> ForensicPhase:
        observations = []

        lean = next((e for e in events if _contains_any(_text(e), ['lean', 'forward'])), None)
        if lean:
            observations.append(ForensicObservation(
                'Forward Lean & Micro-Nods',
                'Subject leans forward approximately 10-15cm, with subtle nodding movements',
                'Intellectual curiosity; nods are "continue" cues, not unconditional agreement',
                lean.confidence or 0.85, timestamp=lean.time))

        directions = [eye_direction(e.event) for e in events
                      if 'eye' in _text(e) and _contains_any(_text(e), ['up', 'down', 'left', 'right'])]
        if directions:
            observations.append(ForensicObservation(
                'Eye-Accessing Cues', f"Gaze moves {', then '.join(directions)}",
                'Processing information through visual recall and internal dialogue patterns',
                0.8, micro_expressions=directions))

        for cue in (e for e in events if _contains_any(_text(e), ['lip', 'mouth'])):
            observations.append(ForensicObservation(
                'Subtle Lip Compression', _describe_lip_movement(cue),
                'Evaluative skepticism; weighing information critically',
                cue.confidence or 0.75, timestamp=cue.time))

        return ForensicPhase('Engagement Phase', '0:10 - 0:30', observations)

    def _challenge_phase(self, events: List[TimelineEvent]) -> ForensicPhase:
        observations = []

        for cue in (e for e in events if _contains_any(_text(e), ['eyebrow', 'brow'])):
            observations.append(ForensicObservation(
                'Eyebrow Single-Raise & Head Tilt', 'Classic "question mark" gesture observed',
                'Subject likely probing for clarification or challenging assumptions',
                cue.confidence or 0.9, timestamp=cue.time))

        for gesture in (e for e in events if _contains_any(_text(e), ['chin', 'face touch'])):
            observations.append(ForensicObservation(
                'Hand-to-Chin Gesture', 'Fingers on chin, thumb under jaw while listening',
                'Deep analytical processing; demands convincing rationale',
                gesture.confidence or 0.85, timestamp=gesture.time))

        for tension in (e for e in events if _contains_any(_text(e), ['tension', 'furrow', 'frown'])):
            observations.append(ForensicObservation(
                'Micro-Tension in Forehead', 'Small vertical lines appear during specific topics',
                'Potential concern about feasibility or implementation',
                tension.confidence or 0.7, timestamp=tension.time))

        return ForensicPhase('Challenge/Clarification Phase', '0:30 - 0:50', observations)

    def _reinforcement_phase(self, events: List[TimelineEvent]) -> ForensicPhase:
        observations = []

        for smile in (e for e in events if _contains_any(_text(e), ['smile', 'duchenne'])):
            observations.append(ForensicObservation(
                'Genuine Smile', 'Smile reaches orbicularis oculi (eye wrinkles)',
                'Authentic approval of concept or presentation element',
                smile.confidence or 0.95, timestamp=smile.time,
                micro_expressions=["crow's feet", 'cheek raise']))

        for gesture in (e for e in events if _contains_any(_text(e), ['open', 'palm'])):
            observations.append(ForensicObservation(
                'Open-Palm Gesture While Speaking', 'Subject responds with palms visible, fingers spread',
                'Offers constructive feedback; collaborative stance',
                gesture.confidence or 0.85, timestamp=gesture.time))

        return ForensicPhase('Positive Reinforcement Moments', 'Variable throughout interaction', observations)

    # Decision indicators

    def _decision_indicators(self, events: List[TimelineEvent], result: AnalysisResult) -> List[DecisionIndicator]:
        incongruent = any('incongruent' in _text(e) or ('no' in _text(e) and 'positive' in _text(e))
                          for e in events)
        shrug = any('shrug' in _text(e) for e in events)
        closing = any(_contains_any(_text(e), ['closing', 'wrap', 'end']) for e in events)

        return [
            DecisionIndicator('Head-Shake "No" synced with positive words',
                              'Present' if incongruent else 'Absent', '80%' if incongruent else '0%',
                              'Strong indicator of disagreement despite verbal politeness'),
            DecisionIndicator('Shoulder Shrug (uncertainty)', 'Partial' if shrug else 'Absent', '20%',
                              'Some skepticism remains about specific aspects'),
            DecisionIndicator('Feet Orientation', 'Present' if self._feet_visible(result) else 'Absent', '60%',
                              'Engagement sustained throughout interaction'),
            DecisionIndicator('Closing Behaviors', 'Present' if closing else 'Absent', '40%',
                              'Natural conclusion vs. abrupt termination'),
        ]

    @staticmethod
    def _feet_visible(result: AnalysisResult) -> bool:
        """Evidence of full-body visibility anywhere in the session."""
        posture: Optional[SignalData] = result.signals.get('posture')
        if posture and any(_contains_any(indicator.lower(), FEET_SIGNAL_MARKERS) for indicator in posture.indicators):
            return True
        if any(_contains_any(_text(event), FEET_EVENT_MARKERS) for event in result.timeline):
            return True
        return any(_contains_any(cue.lower(), FEET_CUE_MARKERS)
                   for item in result.detailed_timeline for cue in item.body_language_cues)

    # Summary

    def _summary_judgment(self, result: AnalysisResult, phases: List[ForensicPhase]) -> SummaryJudgment:
        positive = _count_matching(phases, POSITIVE_TERMS)
        negative = _count_matching(phases, NEGATIVE_TERMS)
        total = sum(len(phase.observations) for phase in phases)
        engagement_score = positive / total if total > 0 else 0.5

        engagement_level = 'High' if engagement_score > 0.7 else 'Moderate' if engagement_score > 0.4 else 'Low'
        skepticism_level = 'High' if negative > 3 else 'Moderate' if negative > 1 else 'Low'
        if positive > negative * 2:
            openness = 'Excellent'
        elif positive > negative:
            openness = 'Good'
        elif positive == negative:
            openness = 'Fair'
        else:
            openness = 'Poor'

        interest_evidence = [f"{obs.cue} ({phase.phase_name})" for phase in phases for obs in phase.observations
                             if _contains_any(obs.implication.lower(), ['interest', 'curiosity'])]
        skepticism_evidence = [f"{obs.cue} at {obs.timestamp or phase.time_range}"
                               for phase in phases for obs in phase.observations
                               if _contains_any(obs.implication.lower(), ['skeptic', 'concern'])]
        openness_evidence = [obs.observation for phase in phases for obs in phase.observations
                             if 'open' in obs.observation.lower() or 'collaborative' in obs.implication.lower()]
        open_count = len(openness_evidence)

        key_findings = [
            KeyFinding('Interest Level', engagement_level, interest_evidence, 0.85),
            KeyFinding('Skepticism Pockets', skepticism_level, skepticism_evidence, 0.8),
            KeyFinding('Openness to Next Steps',
                       'High' if open_count > 5 else 'Moderate' if open_count > 2 else 'Low',
                       openness_evidence, 0.75),
        ]

        return SummaryJudgment(
            overall_assessment=self._overall_assessment(engagement_level, skepticism_level),
            key_findings=key_findings,
            trust_vector=result.trust_vector,
            engagement_level=engagement_level,
            skepticism_level=skepticism_level,
            openness_to_next=openness,
        )

    @staticmethod
    def _overall_assessment(interest: str, skepticism: str) -> str:
        if interest == 'High' and skepticism == 'Low':
            return 'Subject shows strong positive engagement with minimal reservations'
        if interest == 'High' and skepticism == 'Moderate':
            return 'Subject demonstrates cautious enthusiasm with specific areas of concern'
        if interest == 'Moderate':
            return 'Subject exhibits measured interest requiring further convincing'
        return 'Subject shows limited engagement or significant skepticism'

    @staticmethod
    def _recommendations(summary: SummaryJudgment, context_preset: str) -> List[Recommendation]:
        recommendations = []
        if summary.skepticism_level != 'Low':
            recommendations.append(Recommendation(
                'High', 'Address specific concerns identified in skepticism pockets',
                'Multiple tension indicators suggest unresolved doubts',
                'Increased trust and buy-in by addressing core concerns'))

        if context_preset in CONTEXT_RECOMMENDATIONS:
            template = CONTEXT_RECOMMENDATIONS[context_preset]
            recommendations.append(Recommendation(template.priority, template.action,
                                                  template.rationale, template.expected_outcome))

        if summary.engagement_level == 'High':
            recommendations.append(Recommendation(
                'Medium', 'Capitalize on high engagement with immediate next steps',
                'Positive body language signals readiness to proceed',
                'Maintain momentum while interest is peaked'))

        # sorted() is stable, so equal priorities keep insertion order
        return sorted(recommendations, key=lambda rec: PRIORITY_ORDER[rec.priority])

    @staticmethod
    def _confidence_note(result: AnalysisResult) -> str:
        has_video = result.media_type in ('video', 'live')
        api_count = count_active_sources(result)
        if has_video and has_audio_signal(result) and api_count >= 3:
            return CONFIDENCE_NOTES['multi_modal'].format(api_count=api_count)
        if has_video and api_count >= 2:
            return CONFIDENCE_NOTES['visual']
        return CONFIDENCE_NOTES['limited']

    @staticmethod
    def _title(context_preset: str, subjects: Optional[List[Subject]]) -> str:
        base_title = CONTEXT_TITLES.get(context_preset, 'Behavioral Analysis')
        if subjects:
            return f"{base_title}: {' & '.join(subject.label for subject in subjects)}"
        return base_title
