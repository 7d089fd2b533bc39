from click.testing import CliRunner

from versolve import __version__
from versolve.cli.main import cli


def test_version():
    assert __version__ == "0.1.0"


def test_cli_help():
    runner = CliRunner()
    result = runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    assert "PubGrub" in result.output
    for command in ("resolve", "plan", "cache"):
        assert command in result.output


def test_cli_version():
    runner = CliRunner()
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "0.1.0" in result.output


def test_verbose_flag():
    runner = CliRunner()
    result = runner.invoke(cli, ["-v", "cache", "--help"])
    assert result.exit_code == 0
