import csv
import io
import json
import os
from datetime import date, datetime, timezone

import pytest

from core.exceptions import UnsupportedExportFormatError
from core.models.analysis import TimelineEvent
from core.reporting import ExportOptions, ForensicReportGenerator, ReportExporter, build_subjects, generate_filename
from core.reporting.exporter import CSV_HEADER, FOOTER_TEXT, filter_report

NOW = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


@pytest.fixture
def report(result_factory):
    result = result_factory(
        context_preset="interview",
        indicators={"posture": ["open_posture"]},
        timeline=[
            TimelineEvent("00:00", "Forward lean toward speaker", 0.9, "test-source"),
            TimelineEvent("00:03", "Steady eye contact maintained", 0.85, "test-source"),
            TimelineEvent("00:20", "Subject leans forward with a genuine smile", 0.92, "test-source"),
            TimelineEvent("00:24", "Lip compression after pricing", 0.55, "test-source"),
        ],
    )
    return ForensicReportGenerator().generate(result, subjects=build_subjects(["Alice", "Bob"]), now=NOW)


@pytest.fixture
def exporter(tmp_path):
    return ReportExporter(export_dir=str(tmp_path / "exports"))


def test_json_export_with_everything_matches_report(report, exporter):
    options = ExportOptions(format="json", include_advanced_analysis=True, include_raw_data=True,
                            confidence_threshold=0.0)

    data = json.loads(exporter.export(report, options))

    assert data == report.to_dict()


def test_threshold_drops_weak_observations_without_touching_report(report, exporter):
    options = ExportOptions(format="json", confidence_threshold=0.6)
    before = report.to_dict()

    data = json.loads(exporter.export(report, options))

    cues = [obs["cue"] for phase in data["analysis_phases"] for obs in phase["observations"]]
    assert "Subtle Lip Compression" not in cues
    assert "Forward Lean & Micro-Nods" in cues
    assert report.to_dict() == before


def test_raw_data_keeps_observations_below_threshold(report):
    filtered = filter_report(report, ExportOptions(format="json", include_raw_data=True, confidence_threshold=0.99))

    assert filtered["analysis_phases"] == report.to_dict()["analysis_phases"]


def test_advanced_and_cultural_sections_can_be_excluded(report, exporter):
    options = ExportOptions(format="json", include_advanced_analysis=False, cultural_context=False)

    data = json.loads(exporter.export(report, options))

    for key in ("baseline_behavior", "signal_clusters", "temporal_patterns",
                "stress_comfort_indicators", "advanced_insights", "cultural_context"):
        assert key not in data
    assert data["title"] == "Job Interview Assessment: Alice & Bob"


def test_markdown_sections(report, exporter):
    text = exporter.export(report, ExportOptions(format="markdown")).decode("utf-8")

    assert text.startswith("# Forensic Body-Language Report")
    assert "**Job Interview Assessment: Alice & Bob**" in text
    assert "**Cultural Context:** western" in text
    assert "## 1. Baseline Calibration (first 5-10 seconds)" in text
    assert "## 2. Engagement Phase" in text
    assert "### Forward Lean & Micro-Nods (≈00:20)" in text
    assert "## Behavioral Signal Clusters" in text
    assert "## 4. Decision-Read Indicators" in text
    assert "## Recommended Next Moves" in text
    assert text.rstrip().endswith(report.confidence_note)


def test_markdown_without_advanced_sections(report, exporter):
    text = exporter.export(report, ExportOptions(format="markdown", include_advanced_analysis=False)).decode("utf-8")

    assert "## Behavioral Signal Clusters" not in text
    assert "## Advanced Behavioral Insights" not in text


def test_csv_quotes_commas_and_quotes(report, exporter):
    text = exporter.export(report, ExportOptions(format="csv")).decode("utf-8")

    rows = list(csv.reader(io.StringIO(text)))

    assert rows[0] == CSV_HEADER
    assert all(len(row) == len(CSV_HEADER) for row in rows)
    lean = next(row for row in rows if row[2] == "Forward Lean & Micro-Nods")
    assert lean[0] == "Engagement Phase"
    assert lean[1] == "00:20"
    assert lean[4] == 'Intellectual curiosity; nods are "continue" cues, not unconditional agreement'
    assert lean[5] == "92"
    assert any(row[0] == "Signal_Cluster" for row in rows)


def test_csv_escapes_fields_at_byte_level(result_factory, exporter):
    result = result_factory(confidences={"posture": 0.9}, sources={"posture": 'a,b"c'})
    report = ForensicReportGenerator().generate(result, now=NOW)

    lines = exporter.export(report, ExportOptions(format="csv")).decode("utf-8").splitlines()

    assert 'Baseline,,Posture,Subject maintains neutral posture,Baseline comfort level established,90,"a,b""c",,' in lines


def test_html_is_a_standalone_document(report, exporter):
    text = exporter.export(report, ExportOptions(format="html")).decode("utf-8")

    assert text.startswith("<!DOCTYPE html>")
    assert "Job Interview Assessment: Alice &amp; Bob" in text
    assert FOOTER_TEXT in text
    assert "<style>" in text


def test_pdf_export(report, exporter):
    data = exporter.export(report, ExportOptions(format="pdf"))

    assert data.startswith(b"%PDF")


def test_unknown_format_rejected(report, exporter):
    with pytest.raises(UnsupportedExportFormatError):
        exporter.export(report, ExportOptions(format="docx"))


def test_generated_filename(report):
    assert generate_filename(report, "markdown", today=date(2026, 3, 4)) == \
        "forensic-report-job-interview-assessment:-alice-&-bob-2026-03-04.md"
    # date defaults to the report timestamp
    assert generate_filename(report, "pdf").endswith("-2026-01-02.pdf")


def test_save_writes_into_export_dir(report, exporter, tmp_path):
    path = exporter.save(report, ExportOptions(format="json"), today=date(2026, 3, 4))

    assert os.path.dirname(path) == str(tmp_path / "exports")
    assert os.path.basename(path).endswith("2026-03-04.json")
    with open(path, encoding="utf-8") as f:
        assert json.load(f)["title"] == report.title


def test_save_to_explicit_path(report, exporter, tmp_path):
    target = tmp_path / "report.md"

    path = exporter.save(report, ExportOptions(format="markdown"), output_path=str(target))

    assert path == str(target)
    assert target.read_text(encoding="utf-8").startswith("# Forensic Body-Language Report")
