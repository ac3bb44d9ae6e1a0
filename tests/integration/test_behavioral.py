import pytest

from core.analysis.behavioral import BehavioralAnalyzer, create_time_windows, events_in_window, linear_trend
from core.analysis.pipeline import AnalysisPipeline, AnalysisStage
from core.analysis.stages import build_heuristics_pipeline
from core.models.analysis import TimelineEvent


def _event(time, text, confidence=0.8, api_call="test-source"):
    return TimelineEvent(time, text, confidence, api_call)


@pytest.fixture
def analyzer():
    return BehavioralAnalyzer()


def test_time_windows_cover_session_span():
    timeline = [_event("00:00", "a"), _event("00:15", "b")]

    windows = create_time_windows(timeline, 10)

    assert windows == [(0, 10), (10, 15)]
    # the last window keeps events exactly on its end
    assert [e.event for e in events_in_window(timeline, windows[1], True)] == ["b"]
    assert events_in_window(timeline, windows[0], False)[0].event == "a"


def test_single_timestamp_gets_one_window():
    assert create_time_windows([_event("00:04", "a"), _event("00:04", "b")], 10) == [(4, 14)]
    assert create_time_windows([], 10) == []


def test_linear_trend_slope():
    assert linear_trend([0.5, 0.6, 0.7])["slope"] == pytest.approx(0.1)
    assert linear_trend([0.4])["slope"] == 0.0


def test_clusters_detected_and_ordered_by_significance(analyzer, result_factory):
    result = result_factory(timeline=[
        _event("00:00", "Forward lean toward speaker"),
        _event("00:03", "Steady eye contact maintained"),
        _event("00:05", "Subject touch face briefly"),
        _event("00:07", "Speech hesitation noted"),
        _event("00:12", "Subject begins to fidget"),
        _event("00:15", "Defensive tension in shoulders"),
    ])

    clusters = analyzer.detect_signal_clusters(result)

    assert [cluster.name for cluster in clusters] == [
        "Engagement Cluster", "Stress Response Cluster", "Potential Deception Cluster"
    ]
    engagement = clusters[0]
    assert engagement.signals == ["Forward lean toward speaker", "Steady eye contact maintained"]
    assert engagement.time_window == {"start": "00:00", "end": "00:10"}
    assert engagement.contradictory_signals == ["Subject touch face briefly", "Speech hesitation noted"]
    assert clusters[1].time_window == {"start": "00:10", "end": "00:15"}
    assert clusters[2].significance == "medium"


def test_cluster_detection_is_repeatable(analyzer, result_factory):
    result = result_factory(timeline=[
        _event("00:00", "Forward lean toward speaker"),
        _event("00:03", "Steady eye contact maintained"),
        _event("00:12", "Subject begins to fidget"),
        _event("00:15", "Defensive tension in shoulders"),
    ])

    first = analyzer.detect_signal_clusters(result)
    second = analyzer.detect_signal_clusters(result)

    assert first
    assert first == second
    assert [event.event for event in result.timeline][0] == "Forward lean toward speaker"


def test_single_matching_event_is_not_a_cluster(analyzer, result_factory):
    result = result_factory(timeline=[_event("00:01", "Forward lean"), _event("00:09", "Neutral pause")])

    assert analyzer.detect_signal_clusters(result) == []


@pytest.mark.parametrize("values,expected", [
    ([0.5, 0.6, 0.7], "increasing"),
    ([0.9, 0.6, 0.3], "decreasing"),
    ([0.8, 0.8, 0.8], "stable"),
    ([1.0, 0.1, 1.0, 0.1], "erratic"),
])
def test_pattern_classification(values, expected):
    slope = linear_trend(values)["slope"]
    assert BehavioralAnalyzer.classify_pattern(values, slope) == expected


def test_temporal_patterns_need_three_points(analyzer, result_factory):
    rising = result_factory(timeline=[
        _event("00:01", "Posture check", 0.5),
        _event("00:02", "Posture check", 0.6),
        _event("00:03", "Posture check", 0.7),
    ])
    short = result_factory(timeline=[
        _event("00:01", "Posture check", 0.5),
        _event("00:02", "Posture check", 0.6),
    ])

    patterns = analyzer.analyze_temporal_patterns(rising)

    assert [(p.signal, p.pattern) for p in patterns] == [("posture", "increasing")]
    assert patterns[0].interpretation == "posture shows increasing trend, suggesting escalating response"
    assert [point["time"] for point in patterns[0].time_points] == ["00:01", "00:02", "00:03"]
    assert analyzer.analyze_temporal_patterns(short) == []


def test_stress_window_detected(analyzer, result_factory):
    result = result_factory(timeline=[
        _event("00:01", "Fidgeting with pen"),
        _event("00:04", "Hair touching repeatedly"),
        _event("00:08", "Face touching near mouth"),
        _event("00:09", "Increased blink rate observed"),
    ])

    readings = analyzer.assess_stress_comfort_levels(result)

    assert len(readings) == 1
    stress = readings[0]
    assert stress.type == "stress"
    assert stress.level == 1.0
    assert stress.time_stamp == "00:01"
    assert stress.physiological_markers == ["Increased blink rate observed"]
    assert len(stress.behavioral_markers) == 3
    assert stress.reliability == pytest.approx(0.8)


def test_comfort_window_detected(analyzer, result_factory):
    result = result_factory(timeline=[
        _event("00:00", "Smooth movements throughout"),
        _event("00:05", "Purposeful gestures while explaining"),
        _event("00:10", "Natural speech flow"),
    ])

    readings = analyzer.assess_stress_comfort_levels(result)

    assert [reading.type for reading in readings] == ["comfort"]


def test_single_marker_is_not_a_reading(analyzer, result_factory):
    """One marker scores 0.33, under the 0.6 threshold."""
    one = result_factory(timeline=[_event("00:00", "Fidgeting"), _event("00:05", "Calm")])

    assert analyzer.assess_stress_comfort_levels(one) == []


def test_baseline_defaults_without_evidence(analyzer, result_factory):
    baseline = analyzer.establish_baseline(result_factory())

    assert baseline.duration == 10
    assert baseline.postural_norm.arm_position == "at_sides"
    assert baseline.facial_norm.eye_contact_pattern == "direct"
    assert baseline.vocal_norm.speech_rate == 150
    assert baseline.gesture_norm.adaptor_behaviors == []
    assert baseline.evidence == []


def test_baseline_inferred_from_indicators_and_early_events(analyzer, result_factory):
    result = result_factory(
        indicators={
            "posture": ["open_posture", "forward_lean"],
            "facial_expression": ["lip_compression"],
            "voice_tone": ["pitch_elevation"],
        },
        timeline=[
            _event("00:02", "Eye accessing cues detected"),
            _event("00:45", "Leans back in chair"),
        ],
    )

    baseline = analyzer.establish_baseline(result)

    assert baseline.postural_norm.arm_position == "open"
    assert baseline.postural_norm.torso_orientation == "forward"
    assert baseline.facial_norm.mouth_position == "compressed"
    assert baseline.facial_norm.eye_contact_pattern == "intermittent"
    assert baseline.vocal_norm.pitch_range == {"low": 180, "high": 350}
    assert {"open posture", "lip compression", "pitch elevation", "eye accessing"} <= set(baseline.evidence)


def test_eastern_context_rereads_direct_gaze_on_a_copy(analyzer, result_factory):
    result = result_factory(indicators={"eye_movement": ["direct_eye_contact", "blink_rate"]})

    adjusted = analyzer.apply_cultural_context(result, "eastern")

    assert adjusted.signals["eye_movement"].indicators == ["respectful_gaze_avoidance", "blink_rate"]
    assert result.signals["eye_movement"].indicators == ["direct_eye_contact", "blink_rate"]


def test_negative_gesture_confidence_reduced(analyzer, result_factory):
    result = result_factory(indicators={"gestures": ["crossed_arms"]})

    adjusted = analyzer.apply_cultural_context(result, "western")

    assert adjusted.signals["gestures"].confidence == pytest.approx(0.8 * 0.8)
    assert result.signals["gestures"].confidence == pytest.approx(0.8)


def test_undefined_culture_passes_signals_through(analyzer, result_factory):
    result = result_factory(indicators={"eye_movement": ["direct_eye_contact"]})

    adjusted = analyzer.apply_cultural_context(result, "klingon")

    assert adjusted is not result
    assert adjusted.to_dict() == result.to_dict()


def test_heuristics_pipeline_fills_every_section(result_factory):
    result = result_factory(timeline=[
        _event("00:00", "Forward lean toward speaker"),
        _event("00:03", "Steady eye contact maintained"),
    ])

    context = build_heuristics_pipeline().run(result, {"cultural_context": "western"})

    assert context["pipeline_completed"] is True
    assert context["adjusted_result"] is not result
    assert context["baseline_behavior"].duration == 10
    assert [c.name for c in context["signal_clusters"]] == ["Engagement Cluster"]
    assert context["advanced_insights"][0].startswith("Baseline established over 10 seconds")
    assert "1 high-significance behavioral clusters detected, suggesting active engagement" in \
        context["advanced_insights"]
    assert not [key for key in context if key.endswith("_error")]


class ExplodingStage(AnalysisStage):
    def process(self, result, context):
        raise RuntimeError("stage exploded")


class CountingStage(AnalysisStage):
    def get_dependencies(self):
        return ["ExplodingStage"]

    def process(self, result, context):
        return {"counted": len(result.timeline)}


def test_failing_stage_is_isolated(result_factory):
    pipeline = AnalysisPipeline().add_stage(CountingStage()).add_stage(ExplodingStage())

    context = pipeline.run(result_factory(timeline=[_event("00:01", "x")]))

    assert pipeline.stage_order == ["ExplodingStage", "CountingStage"]
    assert context["ExplodingStage_error"] == "stage exploded"
    assert context["counted"] == 1


class SelfDependentStage(AnalysisStage):
    def get_dependencies(self):
        return ["SelfDependentStage"]

    def process(self, result, context):
        return {}


def test_circular_dependency_rejected():
    with pytest.raises(ValueError):
        AnalysisPipeline().add_stage(SelfDependentStage())


def test_heuristics_never_mutate_the_result(analyzer, result_factory):
    result = result_factory(
        indicators={"gestures": ["crossed_arms"], "eye_movement": ["direct_eye_contact"]},
        timeline=[_event("00:01", "Fidgeting"), _event("00:02", "Face touching"), _event("00:03", "Posture check")],
    )
    before = result.to_dict()

    build_heuristics_pipeline(analyzer).run(result, {"cultural_context": "eastern"})

    assert result.to_dict() == before
