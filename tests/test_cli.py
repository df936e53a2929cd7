"""Tests for the intmap command line."""

from __future__ import annotations

import json

import pytest

from intmap.cli.main import build_parser, main
from intmap.core.errors import ExitCode


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    """Keep the test structlog configuration in place."""
    monkeypatch.setattr("intmap.cli.main.configure_logging", lambda *args, **kwargs: None)


@pytest.fixture
def topology_file(tmp_path):
    path = tmp_path / "clinic.yaml"
    path.write_text(
        "title: Clinic\n"
        "systems: [EHR, Lab]\n"
        "connections:\n"
        "  - {source: '1', target: '2', quality: manual, volume: 4}\n"
    )
    return path


class TestParser:
    def test_render_defaults(self):
        args = build_parser().parse_args(["render", "--demo"])
        assert args.view == "matrix"
        assert args.output_format == "png"
        assert args.show_legend is True

    def test_unknown_view_rejected(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["render", "--view", "pie"])

    def test_no_command_prints_help(self, capsys):
        assert main([]) == ExitCode.VALIDATION_ERROR
        assert "usage: intmap" in capsys.readouterr().out


class TestTopologyCommand:
    def test_mermaid_to_stdout(self, capsys):
        assert main(["topology", "export", "--demo", "--format", "mermaid"]) == 0
        out = capsys.readouterr().out
        assert out.startswith("graph LR")
        assert "s_1 <-->|100| s_2" in out

    def test_json_to_file(self, tmp_path):
        target = tmp_path / "map.json"
        assert main(["topology", "export", "--demo", "-o", str(target)]) == 0
        data = json.loads(target.read_text())
        assert data["stats"]["system_count"] == 6

    def test_missing_subcommand(self):
        assert main(["topology"]) == ExitCode.VALIDATION_ERROR

    def test_missing_source(self):
        assert main(["topology", "export"]) == ExitCode.VALIDATION_ERROR


class TestSummaryCommand:
    def test_json_counters(self, capsys):
        assert main(["summary", "--demo", "--only", "automated", "--json"]) == 0
        counters = json.loads(capsys.readouterr().out)
        assert counters == {
            "total_systems": 6,
            "total_connections": 10,
            "filtered_connections": 5,
        }

    def test_tables(self, capsys):
        assert main(["summary", "--demo", "--direction", "bidirectional"]) == 0
        out = capsys.readouterr().out
        assert "Connections by quality" in out

    def test_from_file(self, topology_file, capsys):
        assert main(["summary", str(topology_file)]) == 0
        assert "Clinic" in capsys.readouterr().out

    def test_missing_file(self, tmp_path):
        code = main(["summary", str(tmp_path / "missing.yaml")])
        assert code == ExitCode.VALIDATION_ERROR == 12

    def test_unknown_quality(self):
        assert main(["summary", "--demo", "--only", "sometimes"]) == ExitCode.VALIDATION_ERROR


class TestRenderCommand:
    def test_png(self, tmp_path):
        assert main(["render", "--demo", "-o", str(tmp_path)]) == 0
        files = list(tmp_path.glob("integration-matrix-*.png"))
        assert len(files) == 1
        assert files[0].read_bytes().startswith(b"\x89PNG")
        assert not list(tmp_path.glob("*.tmp"))

    def test_svg_with_filter_and_zoom(self, tmp_path):
        code = main(
            [
                "render",
                "--demo",
                "--view",
                "flow",
                "--format",
                "svg",
                "--only",
                "automated,manual",
                "--zoom",
                "9",
                "--no-legend",
                "-o",
                str(tmp_path),
            ]
        )
        assert code == 0
        (svg,) = tmp_path.glob("integration-flow-*.svg")
        assert svg.read_text(encoding="utf-8").startswith("<?xml")

    def test_pdf_with_notes(self, tmp_path):
        notes = tmp_path / "notes.md"
        notes.write_text("# Review\n- Lab results are faxed\n")
        code = main(
            [
                "render",
                "--demo",
                "--format",
                "pdf",
                "--notes",
                str(notes),
                "--include-connections",
                "-o",
                str(tmp_path / "out"),
            ]
        )
        assert code == 0
        (pdf,) = (tmp_path / "out").glob("*.pdf")
        assert pdf.read_bytes().startswith(b"%PDF")

    def test_transition_svg_is_an_export_error(self, tmp_path):
        code = main(
            ["render", "--demo", "--view", "transition", "--format", "svg", "-o", str(tmp_path)]
        )
        assert code == ExitCode.EXPORT_ERROR
        assert list(tmp_path.iterdir()) == []

    def test_nothing_to_draw(self, tmp_path):
        path = tmp_path / "lonely.yaml"
        path.write_text("systems: [EHR]\n")
        code = main(["render", str(path), "--view", "flow", "-o", str(tmp_path / "out")])
        assert code == ExitCode.RENDER_ERROR
        assert not (tmp_path / "out").exists()
