"""Unit tests for crossqa.cli — run, install, report and config commands."""

from __future__ import annotations

import subprocess
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
import typer
from typer.testing import CliRunner

from crossqa import __version__
from crossqa.cli.app import app
from crossqa.cli.report import list_reports
from crossqa.cli.run import (
    build_behave_args,
    has_mobile_tag,
    merge_rerun_files,
    parse_defines,
    split_mobile_features,
)

runner = CliRunner()


@pytest.fixture
def fake_subprocess(monkeypatch):
    """Replace subprocess.run in the CLI modules; records the command."""
    calls: list[list[str]] = []
    result = MagicMock(returncode=0, stdout="", stderr="")

    def fake_run(cmd, *args, **kwargs):
        calls.append(list(cmd))
        return result

    monkeypatch.setattr(subprocess, "run", fake_run)
    return SimpleNamespace(calls=calls, result=result)


# ---------------------------------------------------------------------------
# 1. Argument helpers
# ---------------------------------------------------------------------------

class TestRunHelpers:
    """parse_defines / build_behave_args build behave's command line."""

    def test_parse_defines(self):
        assert parse_defines(["env=staging", "headless", "appiumUrl=http://h:4723"]) == {
            "env": "staging",
            "headless": "true",
            "appiumUrl": "http://h:4723",
        }

    def test_parse_defines_rejects_empty_key(self):
        with pytest.raises(typer.BadParameter):
            parse_defines(["=oops"])

    def test_build_args_with_rerun_formatter(self, tmp_path: Path):
        args = build_behave_args(["features/web"], {"env": "ci"}, "@web", tmp_path)
        assert args[0] == "features/web"
        assert ["-D", "env=ci"] == args[1:3]
        assert f"reportsDir={tmp_path}" in args
        assert args[args.index("--tags") + 1] == "@web"
        tail = args[-10:]
        assert tail == [
            "-f", "rerun", "-o", str(tmp_path / "failed_scenarios.txt"),
            "-f", "json.pretty", "-o", str(tmp_path / "cucumber-report.json"),
            "-f", "pretty",
        ]

    def test_build_args_writes_junit_by_default(self, tmp_path: Path):
        args = build_behave_args(["features"], {}, None, tmp_path)
        assert args[args.index("--junit-directory") + 1] == str(tmp_path / "junit-reports")
        assert "--junit" not in build_behave_args(["features"], {}, None, tmp_path, junit=False)

    def test_build_args_for_worker(self, tmp_path: Path):
        args = build_behave_args(["a.feature"], {}, "@smoke", tmp_path, worker="2", extra_tags="@mobile")
        assert "workerId=2" in args
        assert str(tmp_path / "failed_scenarios_2.txt") in args
        assert str(tmp_path / "cucumber-report_2.json") in args
        assert [args[i + 1] for i, a in enumerate(args) if a == "--tags"] == ["@smoke", "@mobile"]

    def test_build_args_rerun_failed_uses_rerun_file(self, tmp_path: Path):
        args = build_behave_args(["features"], {}, None, tmp_path, rerun_failed=True)
        assert args[0] == f"@{tmp_path / 'failed_scenarios.txt'}"
        assert "features" not in args
        assert "--tags" not in args


# ---------------------------------------------------------------------------
# 2. crossqa run
# ---------------------------------------------------------------------------

class TestRunCommand:
    """crossqa run shells out to behave and propagates its exit code."""

    def test_run_passes_options_to_behave(self, fake_subprocess, tmp_path: Path):
        reports = tmp_path / "target"
        result = runner.invoke(
            app,
            ["run", "--env", "staging", "-D", "browser=firefox", "--tags", "@web", "--reports-dir", str(reports)],
        )
        assert result.exit_code == 0
        cmd = fake_subprocess.calls[0]
        assert cmd[1:3] == ["-m", "behave"]
        assert "features" in cmd
        assert "browser=firefox" in cmd
        assert "env=staging" in cmd
        assert reports.is_dir()

    def test_run_returns_behave_exit_code(self, fake_subprocess, tmp_path: Path):
        fake_subprocess.result.returncode = 1
        result = runner.invoke(app, ["run", "--reports-dir", str(tmp_path)])
        assert result.exit_code == 1

    def test_run_config_dir_becomes_userdata(self, fake_subprocess, tmp_path: Path):
        runner.invoke(app, ["run", "--config-dir", "settings", "--reports-dir", str(tmp_path)])
        assert "configDir=settings" in fake_subprocess.calls[0]

    def test_rerun_failed_without_failures_skips_behave(self, fake_subprocess, tmp_path: Path):
        result = runner.invoke(app, ["run", "--rerun-failed", "--reports-dir", str(tmp_path)])
        assert result.exit_code == 0
        assert fake_subprocess.calls == []

    def test_rerun_failed_with_recorded_failures(self, fake_subprocess, tmp_path: Path):
        (tmp_path / "failed_scenarios.txt").write_text("features/web/home_page.feature:4\n", encoding="utf-8")
        result = runner.invoke(app, ["run", "--rerun-failed", "--reports-dir", str(tmp_path)])
        assert result.exit_code == 0
        assert f"@{tmp_path / 'failed_scenarios.txt'}" in fake_subprocess.calls[0]

    def test_invalid_define_exits_2(self, fake_subprocess, tmp_path: Path):
        result = runner.invoke(app, ["run", "-D", "=x", "--reports-dir", str(tmp_path)])
        assert result.exit_code == 2
        assert fake_subprocess.calls == []

    def test_no_junit_flag(self, fake_subprocess, tmp_path: Path):
        runner.invoke(app, ["run", "--no-junit", "--reports-dir", str(tmp_path)])
        assert "--junit" not in fake_subprocess.calls[0]


def _write_feature(path: Path, tags: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"{tags}\nFeature: {path.stem}\n\n  Scenario: s\n    Given x\n", encoding="utf-8")
    return path


@pytest.fixture
def feature_tree(tmp_path: Path) -> Path:
    """Three @mobile features and one @web feature."""
    root = tmp_path / "features"
    _write_feature(root / "web" / "home_page.feature", "@web")
    _write_feature(root / "mobile" / "a_launch.feature", "@mobile @android")
    _write_feature(root / "mobile" / "b_login.feature", "@mobile")
    _write_feature(root / "mobile" / "c_logout.feature", "# @mobile in a comment\n@mobile @ios")
    return root


# ---------------------------------------------------------------------------
# 3. Parallel mobile runs
# ---------------------------------------------------------------------------

class TestParallelRuns:
    """--parallel deals @mobile features to workers; web stays in one run."""

    def test_has_mobile_tag(self, feature_tree: Path):
        assert has_mobile_tag(feature_tree / "mobile" / "b_login.feature")
        assert not has_mobile_tag(feature_tree / "web" / "home_page.feature")

    def test_split_round_robin(self, feature_tree: Path):
        shards = split_mobile_features([str(feature_tree)], 2)
        assert [[Path(p).name for p in shard] for shard in shards] == [
            ["a_launch.feature", "c_logout.feature"],
            ["b_login.feature"],
        ]

    def test_split_drops_empty_shards(self, feature_tree: Path):
        assert len(split_mobile_features([str(feature_tree)], 8)) == 3

    def test_run_parallel_starts_web_and_mobile_workers(self, fake_subprocess, feature_tree, tmp_path):
        reports = tmp_path / "target"
        result = runner.invoke(app, ["run", str(feature_tree), "--parallel", "2", "--reports-dir", str(reports)])

        assert result.exit_code == 0
        assert len(fake_subprocess.calls) == 3
        web = [c for c in fake_subprocess.calls if "not @mobile" in c]
        workers = [c for c in fake_subprocess.calls if "@mobile" in c and "not @mobile" not in c]
        assert len(web) == 1 and str(feature_tree) in web[0]
        assert sorted(next(a for a in c if a.startswith("workerId=")) for c in workers) == [
            "workerId=1",
            "workerId=2",
        ]
        assert all(str(feature_tree) not in c for c in workers)

    def test_worst_exit_code_wins(self, fake_subprocess, feature_tree, tmp_path):
        fake_subprocess.result.returncode = 1
        result = runner.invoke(app, ["run", str(feature_tree), "-p", "3", "--reports-dir", str(tmp_path)])
        assert result.exit_code == 1

    def test_parallel_ignored_when_rerunning(self, fake_subprocess, tmp_path):
        (tmp_path / "failed_scenarios.txt").write_text("features/a.feature:3\n", encoding="utf-8")
        runner.invoke(app, ["run", "--rerun-failed", "-p", "4", "--reports-dir", str(tmp_path)])
        assert len(fake_subprocess.calls) == 1

    def test_parallel_must_be_positive(self, fake_subprocess, tmp_path):
        result = runner.invoke(app, ["run", "-p", "0", "--reports-dir", str(tmp_path)])
        assert result.exit_code == 2
        assert fake_subprocess.calls == []

    def test_merge_rerun_files(self, tmp_path: Path):
        (tmp_path / "failed_scenarios.txt").write_text("# -- RERUN: 1 failing\nweb.feature:4\n", encoding="utf-8")
        (tmp_path / "failed_scenarios_1.txt").write_text("mobile/a.feature:3\n", encoding="utf-8")
        (tmp_path / "failed_scenarios_2.txt").write_text("\n", encoding="utf-8")

        assert merge_rerun_files(tmp_path, 3) == 2
        assert (tmp_path / "failed_scenarios.txt").read_text(encoding="utf-8") == "web.feature:4\nmobile/a.feature:3\n"
        assert not (tmp_path / "failed_scenarios_1.txt").exists()
        assert not (tmp_path / "failed_scenarios_2.txt").exists()


# ---------------------------------------------------------------------------
# 4. crossqa install
# ---------------------------------------------------------------------------

class TestInstallCommand:
    """crossqa install runs playwright install for the chosen browsers."""

    def test_install_default_chromium(self, fake_subprocess):
        result = runner.invoke(app, ["install"])
        assert result.exit_code == 0
        assert fake_subprocess.calls[0][1:] == ["-m", "playwright", "install", "chromium"]

    def test_install_with_deps_and_multiple(self, fake_subprocess):
        runner.invoke(app, ["install", "--browsers", "chromium, firefox", "--with-deps"])
        assert fake_subprocess.calls[0][-3:] == ["--with-deps", "chromium", "firefox"]

    def test_unknown_browser_rejected(self, fake_subprocess):
        result = runner.invoke(app, ["install", "--browsers", "netscape"])
        assert result.exit_code == 2
        assert fake_subprocess.calls == []

    def test_install_failure_exits_3(self, fake_subprocess):
        fake_subprocess.result.returncode = 1
        fake_subprocess.result.stderr = "download failed"
        result = runner.invoke(app, ["install"])
        assert result.exit_code == 3


# ---------------------------------------------------------------------------
# 5. crossqa report / config / --version
# ---------------------------------------------------------------------------

class TestReportCommand:
    """crossqa report lists HTML reports newest first."""

    def _write_reports(self, root: Path) -> None:
        report_dir = root / "extent-reports"
        report_dir.mkdir(parents=True)
        for stamp in ("20240101_090000", "20240301_090000", "20240201_090000"):
            (report_dir / f"cucumber_report_{stamp}.html").write_text("<html></html>", encoding="utf-8")
        (report_dir / "notes.txt").write_text("x", encoding="utf-8")

    def test_list_reports_newest_first(self, tmp_path: Path):
        self._write_reports(tmp_path)
        names = [p.name for p in list_reports(tmp_path)]
        assert names == [
            "cucumber_report_20240301_090000.html",
            "cucumber_report_20240201_090000.html",
            "cucumber_report_20240101_090000.html",
        ]

    def test_report_command_shows_table(self, tmp_path: Path):
        self._write_reports(tmp_path)
        (tmp_path / "failed_scenarios.txt").write_text("a.feature:3\nb.feature:9\n", encoding="utf-8")
        result = runner.invoke(app, ["report", "--reports-dir", str(tmp_path)])
        assert result.exit_code == 0
        assert "cucumber_report_20240301_090000.html" in result.output
        assert "2 failed scenario(s)" in result.output

    def test_report_command_without_reports(self, tmp_path: Path):
        result = runner.invoke(app, ["report", "--reports-dir", str(tmp_path)])
        assert result.exit_code == 0
        assert "No reports found" in result.output

    def test_report_open_latest(self, tmp_path: Path, monkeypatch):
        self._write_reports(tmp_path)
        opened: list[str] = []
        monkeypatch.setattr("crossqa.cli.report.webbrowser.open", opened.append)
        runner.invoke(app, ["report", "--reports-dir", str(tmp_path), "--open"])
        assert opened and opened[0].endswith("cucumber_report_20240301_090000.html")


class TestConfigAndVersion:
    def test_config_show_resolves_env(self, config_dir: Path, monkeypatch):
        monkeypatch.delenv("CROSSQA_ENV", raising=False)
        result = runner.invoke(app, ["config", "show", "--config-dir", str(config_dir), "--env", "staging"])
        assert result.exit_code == 0
        assert "timeout" in result.output
        assert "45" in result.output

    def test_config_show_missing_dir_warns(self, tmp_path: Path):
        result = runner.invoke(app, ["config", "show", "--config-dir", str(tmp_path / "none")])
        assert result.exit_code == 0
        assert "No configuration files found" in result.output

    def test_config_show_invalid_define_is_usage_error(self, config_dir: Path):
        result = runner.invoke(app, ["config", "show", "--config-dir", str(config_dir), "-D", "=x"])
        assert result.exit_code == 2

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output
