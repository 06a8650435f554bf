"""Tests for the command-line interface."""

import json

import pytest
from click.testing import CliRunner
from PIL import Image

from snapharness.cli import cli
from snapharness.models.config import HarnessConfig
from snapharness.models.result import FailureKind, SourceLocation
from snapharness.reporter.failures import FailureReporter
from snapharness.reporter.json_report import generate_json_report


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


class TestDevicesCommand:
    def test_lists_device_sizes(self, runner):
        result = runner.invoke(cli, ["devices"])
        assert result.exit_code == 0
        assert "iPhone4_7Inch" in result.output
        assert "iPadLandscape" in result.output

    def test_lists_phone_widths(self, runner):
        result = runner.invoke(cli, ["devices", "--set", "phone-widths"])
        assert result.exit_code == 0
        assert "414" in result.output


class TestDiffCommand:
    """Tests for comparing two image files."""

    def test_matching_images(self, runner, tmp_path):
        a = tmp_path / "a.png"
        b = tmp_path / "b.png"
        Image.new("RGBA", (4, 4), "red").save(a)
        Image.new("RGBA", (4, 4), "red").save(b)

        result = runner.invoke(cli, ["diff", str(a), str(b)])
        assert result.exit_code == 0
        assert "Match" in result.output

    def test_mismatch_exits_nonzero_and_writes_diff(self, runner, tmp_path):
        a = tmp_path / "a.png"
        b = tmp_path / "b.png"
        out = tmp_path / "out" / "diff.png"
        Image.new("RGBA", (4, 4), "red").save(a)
        Image.new("RGBA", (4, 4), "blue").save(b)

        result = runner.invoke(cli, ["diff", str(a), str(b), "--output", str(out)])
        assert result.exit_code == 1
        assert "Mismatch" in result.output
        assert out.exists()

    def test_tolerance_allows_difference(self, runner, tmp_path):
        a = tmp_path / "a.png"
        b = tmp_path / "b.png"
        Image.new("RGBA", (4, 4), "red").save(a)
        Image.new("RGBA", (4, 4), "blue").save(b)

        result = runner.invoke(cli, ["diff", str(a), str(b), "--tolerance", "1.0"])
        assert result.exit_code == 0

    def test_size_mismatch(self, runner, tmp_path):
        a = tmp_path / "a.png"
        b = tmp_path / "b.png"
        Image.new("RGBA", (4, 4)).save(a)
        Image.new("RGBA", (5, 4)).save(b)

        result = runner.invoke(cli, ["diff", str(a), str(b)])
        assert result.exit_code == 1


class TestReportCommand:
    def test_shows_failures(self, runner, tmp_path):
        reporter = FailureReporter("t::cells")
        reporter.record(FailureKind.MISMATCH, "Pixel diff", SourceLocation(file="t.py", line=3), label="375")
        path = tmp_path / "report.json"
        generate_json_report(reporter.failures, 4, path)

        result = runner.invoke(cli, ["report", str(path)])
        assert result.exit_code == 0
        assert "t::cells" in result.output
        assert "mismatch" in result.output

    def test_no_failures(self, runner, tmp_path):
        path = tmp_path / "report.json"
        generate_json_report([], 4, path)
        result = runner.invoke(cli, ["report", str(path)])
        assert "No snapshot failures" in result.output


class TestInitCommand:
    def test_creates_config(self, runner, tmp_path):
        path = tmp_path / "snapshot-config.json"
        result = runner.invoke(cli, ["init", "--output", str(path)])
        assert result.exit_code == 0
        assert HarnessConfig.load(path) == HarnessConfig()

    def test_declining_overwrite_keeps_file(self, runner, tmp_path):
        path = tmp_path / "snapshot-config.json"
        path.write_text(json.dumps({"record_mode": True}))
        runner.invoke(cli, ["init", "--output", str(path)], input="n\n")
        assert HarnessConfig.load(path).record_mode is True
