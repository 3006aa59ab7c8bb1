from __future__ import annotations

import inspect

import pytest
import typer.testing


def _patch_clirunner() -> None:
    # Click 8.2 dropped `mix_stderr`; stderr is always captured separately there.
    if "mix_stderr" in inspect.signature(typer.testing.CliRunner).parameters:
        return

    class PatchedCliRunner(typer.testing.CliRunner):
        def __init__(self, *args, **kwargs):  # noqa: ANN002, ANN003
            kwargs.pop("mix_stderr", None)
            super().__init__(*args, **kwargs)

    typer.testing.CliRunner = PatchedCliRunner


_patch_clirunner()


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch, tmp_path):
    """Keep developer VADTIME_* variables and a local .env out of Settings()."""
    from vadtime.config.settings import Settings

    for name in Settings.model_fields:
        monkeypatch.delenv(f"VADTIME_{name.upper()}", raising=False)
    monkeypatch.chdir(tmp_path)
