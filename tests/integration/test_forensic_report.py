from datetime import datetime, timezone

import pytest

from core.analysis.pipeline import AnalysisPipeline
from core.models.analysis import TimelineEvent
from core.models.report import ForensicReport
from core.reporting import ForensicReportGenerator, build_subjects
from core.reporting.forensic_report import extract_phases, eye_direction, phase_for_seconds

NOW = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

ALL_SOURCES = {
    "facial_expression": "google-vision",
    "voice_tone": "openai-whisper",
    "posture": "google-video-intelligence",
    "gestures": "google-vision-api",
    "eye_movement": "internal-eye-tracking",
}


def _event(time, text, confidence=0.8):
    return TimelineEvent(time, text, confidence, "test-source")


@pytest.fixture
def generator():
    return ForensicReportGenerator()


@pytest.mark.parametrize("seconds,phase", [
    (0, "baseline"), (10, "baseline"), (11, "engagement"), (30, "engagement"),
    (31, "challenge"), (50, "challenge"), (51, "decision"),
])
def test_phase_boundaries(seconds, phase):
    assert phase_for_seconds(seconds) == phase


def test_reinforcement_is_cross_cutting():
    """A smile keeps its chronological bucket and also lands in reinforcement."""
    smile = _event("00:20", "Subject leans forward with a genuine smile")
    later = _event("00:40", "Nod of agreement")

    phases = extract_phases([smile, later])

    assert phases["engagement"] == [smile]
    assert phases["challenge"] == [later]
    assert phases["reinforcement"] == [smile, later]


def test_eye_direction_mapping():
    assert eye_direction("Eye accessing cues detected - up-left then down-right") == "up-left (recall/visualization)"
    assert eye_direction("gaze down and to the right") == "down-right (internal dialogue)"
    assert eye_direction("glance sideways") == "lateral (auditory processing)"


def test_engagement_smile_appears_in_two_phases(generator, result_factory):
    result = result_factory(timeline=[_event("00:20", "Subject leans forward with a genuine smile")],
                            context_preset="interview")

    report = generator.generate(result, now=NOW)

    assert [phase.phase_name for phase in report.analysis_phases] == [
        "Engagement Phase", "Positive Reinforcement Moments"
    ]
    engagement, reinforcement = report.analysis_phases
    assert [obs.cue for obs in engagement.observations] == ["Forward Lean & Micro-Nods"]
    assert engagement.observations[0].timestamp == "00:20"
    assert [obs.cue for obs in reinforcement.observations] == ["Genuine Smile"]

    summary = report.summary_judgment
    assert summary.engagement_level == "Moderate"
    assert summary.skepticism_level == "Low"
    assert summary.openness_to_next == "Excellent"
    assert summary.overall_assessment == "Subject exhibits measured interest requiring further convincing"
    assert summary.key_findings[0].evidence == ["Forward Lean & Micro-Nods (Engagement Phase)"]
    assert [rec.action for rec in report.recommendations] == [
        "Prepare concrete examples demonstrating key competencies"
    ]


def test_empty_phases_are_omitted(generator, result_factory):
    report = generator.generate(result_factory(timeline=[_event("00:02", "Session started")]), now=NOW)

    assert report.analysis_phases == []
    assert report.summary_judgment.engagement_level == "Moderate"
    assert report.summary_judgment.openness_to_next == "Fair"


def test_high_engagement_with_skepticism_orders_recommendations(generator, result_factory):
    timeline = [_event("00:12", "Lip compression after pricing"), _event("00:14", "Lip compression again")]
    timeline += [_event(f"00:{second}", "Broad smile") for second in range(52, 60)]
    result = result_factory(timeline=timeline, context_preset="negotiation")

    report = generator.generate(result, now=NOW)

    summary = report.summary_judgment
    assert summary.engagement_level == "High"
    assert summary.skepticism_level == "Moderate"
    assert summary.overall_assessment == "Subject demonstrates cautious enthusiasm with specific areas of concern"
    assert [(rec.priority, rec.action) for rec in report.recommendations] == [
        ("High", "Address specific concerns identified in skepticism pockets"),
        ("Medium", "Present alternative proposals to test flexibility"),
        ("Medium", "Capitalize on high engagement with immediate next steps"),
    ]
    lip = report.analysis_phases[0].observations[0]
    assert lip.observation == "Brief press of the lips after hearing key information"


def test_baseline_calibration_reads_signals(generator, result_factory):
    result = result_factory(indicators={"posture": ["open_posture"], "gestures": ["hands_open"]})

    baseline = generator.generate(result, now=NOW).baseline_calibration

    assert [obs.cue for obs in baseline.observations] == ["Posture", "Eye Focus", "Hands"]
    assert baseline.observations[0].implication == "Neutral-open baseline; no defensive bias at start"
    assert baseline.observations[0].confidence == pytest.approx(0.9)
    assert baseline.observations[2].observation == "Rest lightly on surface, fingers uncrossed"


def test_decision_indicators(generator, result_factory):
    result = result_factory(
        indicators={"posture": ["upright", "full-body-visible"]},
        timeline=[_event("00:55", "Subject shrugs at closing remarks")],
    )

    indicators = {item.indicator: item.presence for item in generator.generate(result, now=NOW).decision_indicators}

    assert indicators == {
        'Head-Shake "No" synced with positive words': "Absent",
        "Shoulder Shrug (uncertainty)": "Partial",
        "Feet Orientation": "Present",
        "Closing Behaviors": "Present",
    }


def test_confidence_note_tiers(generator, result_factory):
    multi = result_factory(sources=ALL_SOURCES)
    visual = result_factory(sources={**ALL_SOURCES, "voice_tone": "none"})
    text = result_factory(sources=ALL_SOURCES, media_type="text")

    assert "leverages 5 AI APIs" in generator.generate(multi, now=NOW).confidence_note
    assert "relies on visual body-language cues" in generator.generate(visual, now=NOW).confidence_note
    assert "limited data sources" in generator.generate(text, now=NOW).confidence_note


def test_titles_and_subjects(generator, result_factory):
    subjects = build_subjects(["Alice", "Bob", "Carol Ann"])

    report = generator.generate(result_factory(), context_preset="interview", subjects=subjects, now=NOW)
    plain = generator.generate(result_factory(context_preset="meeting"), now=NOW)

    assert report.title == "Job Interview Assessment: Alice & Bob & Carol Ann"
    assert [subject.role for subject in report.subjects] == ["Presenter", "Evaluator", "Participant"]
    assert report.subjects[2].id == "subject-carol-ann"
    assert plain.title == "Business Meeting Behavioral Analysis"
    assert [subject.label for subject in plain.subjects] == ["Subject A", "Subject B"]
    assert build_subjects([]) is None


def test_report_carries_heuristics_and_leaves_result_untouched(generator, result_factory):
    result = result_factory(
        indicators={"eye_movement": ["direct_eye_contact"]},
        timeline=[_event("00:00", "Forward lean toward speaker"), _event("00:03", "Steady eye contact maintained")],
    )
    before = result.to_dict()

    report = generator.generate(result, cultural_context="eastern", now=NOW)

    assert result.to_dict() == before
    assert report.cultural_context == "eastern"
    assert report.timestamp == "2026-01-02T03:04:05+00:00"
    assert report.baseline_behavior is not None
    assert [cluster.name for cluster in report.signal_clusters] == ["Engagement Cluster"]
    assert report.advanced_insights


def test_undefined_culture_is_not_an_error(generator, result_factory):
    report = generator.generate(result_factory(), cultural_context="klingon", now=NOW)

    assert report.cultural_context == "klingon"


def test_empty_pipeline_still_produces_report(result_factory):
    report = ForensicReportGenerator(pipeline=AnalysisPipeline()).generate(result_factory(), now=NOW)

    assert report.baseline_behavior is None
    assert report.signal_clusters == []
    assert len(report.decision_indicators) == 4


def test_report_dict_round_trip(generator, result_factory):
    result = result_factory(timeline=[_event("00:20", "Subject leans forward with a genuine smile")])
    report = generator.generate(result, now=NOW)

    assert ForensicReport.from_dict(report.to_dict()).to_dict() == report.to_dict()
