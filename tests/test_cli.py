"""CLI smoke tests through typer's runner."""
import pytest
from typer.testing import CliRunner

from src.main import app


runner = CliRunner()

PLUGIN_SOURCE = """\
class Plugin:
    def Orphan(self, value: int):
        pass

    def HandleCommandX(self):
        pass

    def Used(self):
        pass

    def Loaded(self):
        self.Used()
"""


@pytest.fixture
def project(tmp_path):
    (tmp_path / "plugin.py").write_text(PLUGIN_SOURCE, encoding="utf-8")
    return tmp_path


@pytest.fixture
def rules_dir(fixtures_dir):
    return str(fixtures_dir / "hooks")


def test_audit_reports_unused_methods(project, rules_dir):
    result = runner.invoke(app, ["audit", str(project), "--rules-dir", rules_dir, "--details", "-w", "1"])
    assert result.exit_code == 0
    assert "Method 'Orphan' is never used" in result.output
    assert "Method 'HandleCommandX' is never used." in result.output
    assert "Method 'Used'" not in result.output


def test_audit_strict_fails_on_findings(project, rules_dir):
    result = runner.invoke(app, ["audit", str(project), "--rules-dir", rules_dir, "--strict"])
    assert result.exit_code == 1


def test_audit_only_filters_variant(project, rules_dir):
    result = runner.invoke(app, ["audit", str(project), "--rules-dir", rules_dir, "--details", "--only", "commands"])
    assert result.exit_code == 0
    assert "HandleCommandX" in result.output
    assert "Method 'Orphan'" not in result.output


def test_audit_missing_path(tmp_path):
    result = runner.invoke(app, ["audit", str(tmp_path / "missing")])
    assert result.exit_code == 1


def test_explain(project, rules_dir):
    result = runner.invoke(app, ["explain", str(project), "Used", "--rules-dir", rules_dir])
    assert result.exit_code == 0
    assert "Used: direct_call" in result.output

    result = runner.invoke(app, ["explain", str(project), "Loaded", "--rules-dir", rules_dir])
    assert "Skipped: exact hook signature" in result.output

    result = runner.invoke(app, ["explain", str(project), "Nope", "--rules-dir", rules_dir])
    assert result.exit_code == 1


def test_hooks_stats(rules_dir):
    result = runner.invoke(app, ["hooks", "stats", "--rules-dir", rules_dir])
    assert result.exit_code == 0
    assert "Total: 6 hooks" in result.output


def test_hooks_similar(rules_dir):
    result = runner.invoke(app, ["hooks", "similar", "ChatHelp", "--rules-dir", rules_dir])
    assert result.exit_code == 0
    assert "ChatHelper()" in result.output

    result = runner.invoke(app, ["hooks", "similar", "OnPlayerChat", "BasePlayer", "str", "--rules-dir", rules_dir])
    assert "exact hook signature" in result.output
