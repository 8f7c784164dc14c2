from typer.testing import CliRunner

import typsmith
from typsmith.ui.cli import app


def test_get_version_matches_public_api() -> None:
    assert typsmith.get_version() == typsmith.__version__
    assert isinstance(typsmith.__version__, str)


def test_cli_version_flag() -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0, result.stdout
    assert result.stdout.strip() == f"typsmith {typsmith.get_version()}"
