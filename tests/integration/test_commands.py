import json

import pytest

from cli_router import CLIRouter
from commands.analyze import AnalyzeCommand
from commands.report import ReportCommand
from core.config import ApplicationConfig, Config, IntegrationConfig, StorageConfig
from core.container import Container
from core.reporting import ForensicReportGenerator, ReportExporter

from conftest import FakeMediaService, FakeStore


@pytest.fixture
def store():
    return FakeStore(rows=[{
        "created_at": "2026-01-02T03:04:05+00:00",
        "session_id": "blindspot_text_1",
        "analysis_mode": "text",
        "context_preset": "interview",
        "trust_vector": 0.7725,
    }])


@pytest.fixture
def container(tmp_path, orchestrator_factory, store):
    """Container with fake adapters and exports redirected to tmp_path."""
    app = ApplicationConfig(export_dir=str(tmp_path / "exports"))
    config = Config(storage=StorageConfig(), integrations=IntegrationConfig(), app=app)

    container = Container()
    container.register_instance('config', config)
    container.register_instance('supabase', store)
    container.register_instance('report_generator', ForensicReportGenerator())
    container.register_instance('report_exporter', ReportExporter(export_dir=app.export_dir))
    container.register_factory('orchestrator', lambda: orchestrator_factory(
        media_service=FakeMediaService(), supabase=store))
    return container


def _parse(argv):
    return CLIRouter().parser.parse_args(argv)


def test_text_session_saves_result_and_report(container, store, tmp_path):
    result_path = tmp_path / "session.json"
    report_path = tmp_path / "report.json"
    args = _parse(["analyze", "text", "Subject leans forward with a genuine smile",
                   "--context", "interview", "--subjects", "Alice, Bob", "--format", "json",
                   "--output", str(report_path), "--save-result", str(result_path)])

    code = AnalyzeCommand(container).execute(args.subcommand, args)

    assert code == 0
    saved = json.loads(result_path.read_text(encoding="utf-8"))
    assert saved["context_preset"] == "interview"
    assert saved["media_type"] == "text"
    report = json.loads(report_path.read_text(encoding="utf-8"))
    assert report["title"] == "Job Interview Assessment: Alice & Bob"
    assert store.stored[0]["mode"] == "text"


def test_report_regenerated_from_saved_result(container, tmp_path):
    result_path = tmp_path / "session.json"
    args = _parse(["analyze", "text", "Arms crossed while listening", "--save-result", str(result_path),
                   "--output", str(tmp_path / "first.md")])
    assert AnalyzeCommand(container).execute(args.subcommand, args) == 0

    target = tmp_path / "again.html"
    args = _parse(["report", "generate", str(result_path), "--format", "html", "--cultural", "eastern",
                   "--output", str(target)])

    assert ReportCommand(container).execute(args.subcommand, args) == 0
    text = target.read_text(encoding="utf-8")
    assert text.startswith("<!DOCTYPE html>")
    assert "Business Meeting Behavioral Analysis" in text


def test_invalid_context_preset_is_a_validation_failure(container, tmp_path):
    args = _parse(["analyze", "text", "Nodding along", "--output", str(tmp_path / "r.md")])
    args.context = "poker"

    assert AnalyzeCommand(container).execute(args.subcommand, args) == 22


def test_missing_result_file(container, tmp_path):
    args = _parse(["report", "generate", str(tmp_path / "nope.json")])

    assert ReportCommand(container).execute(args.subcommand, args) == 2


def test_empty_text_rejected(container):
    args = _parse(["analyze", "text", "   "])

    assert AnalyzeCommand(container).execute(args.subcommand, args) == 1


def test_history_lists_stored_analyses(container, capsys):
    args = _parse(["report", "history", "--limit", "5"])

    assert ReportCommand(container).execute(args.subcommand, args) == 0
    output = capsys.readouterr().out
    assert "blindspot_text_1" in output
    assert "[text/interview]" in output
    assert "trust 77%" in output


def test_history_without_store(container, capsys):
    container.register_instance('supabase', FakeStore(connected=False))
    args = _parse(["report", "history"])

    assert ReportCommand(container).execute(args.subcommand, args) == 1
    assert "not configured" in capsys.readouterr().out


def test_router_without_command_shows_help(capsys):
    router = CLIRouter()

    assert router.route_command([]) == 1
    assert router.route_command(["analyze"]) == 1
    assert "upload" in capsys.readouterr().out


def test_router_rejects_unknown_context():
    assert CLIRouter().route_command(["analyze", "text", "hi", "--context", "poker"]) == 2
