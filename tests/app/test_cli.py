from __future__ import annotations

from typing import Any

import pytest

from prospectminer.app import PipelineStats
from prospectminer.config import MissingConfigurationError
from prospectminer.domain.model import StageName
from prospectminer.domain.pipeline import PipelineResult, StageResult
from prospectminer.domain.settings import OutputFormat
from prospectminer.ui import cli as cli_module

CONTEXT = object()


def _result(stage: StageName, *, success: bool = True) -> StageResult:
    return StageResult(stage=stage, run_id=f"run_{stage}", success=success, processed=1)


@pytest.fixture
def captured(monkeypatch: pytest.MonkeyPatch) -> dict[str, Any]:
    calls: dict[str, Any] = {}

    def fake_build_context(**kwargs: object) -> object:
        calls["build_context"] = kwargs
        return CONTEXT

    def recorder(name: str, stage: StageName) -> Any:
        def fake(context: object, **kwargs: object) -> StageResult:
            assert context is CONTEXT
            calls[name] = kwargs
            return _result(stage)

        return fake

    monkeypatch.setattr(cli_module, "build_context", fake_build_context)
    monkeypatch.setattr(cli_module, "run_discover", recorder("discover", StageName.DISCOVER))
    monkeypatch.setattr(cli_module, "run_collect", recorder("collect", StageName.COLLECT))
    monkeypatch.setattr(cli_module, "run_output", recorder("output", StageName.OUTPUT))
    monkeypatch.setattr(cli_module, "run_refresh", recorder("refresh", StageName.REFRESH))
    return calls


def test_discover_passes_source_and_limit(captured: dict[str, Any]) -> None:
    cli_module.main(["discover", "--source", "austin", "--limit", "25"])

    assert captured["discover"] == {"source_name": "austin", "limit": 25}
    assert captured["build_context"] == {"config_path": None}


def test_output_parses_format_and_min_score(captured: dict[str, Any]) -> None:
    cli_module.main(["output", "--format", "both", "--min-score", "42.5", "--config", "x.yaml"])

    assert captured["output"] == {
        "output_format": OutputFormat.BOTH,
        "min_score": 42.5,
        "limit": None,
    }
    assert str(captured["build_context"]["config_path"]) == "x.yaml"


def test_collect_defaults(captured: dict[str, Any]) -> None:
    cli_module.main(["collect"])

    assert captured["collect"] == {"discover_run_id": None, "limit": None}


@pytest.mark.parametrize(
    "argv",
    [
        ["discover", "--limit", "0"],
        ["output", "--format", "xml"],
        ["launch"],
        [],
    ],
)
def test_invalid_arguments_exit_with_usage_error(
    captured: dict[str, Any],
    argv: list[str],
) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(argv)

    assert excinfo.value.code == 2  # noqa: PLR2004
    assert "build_context" not in captured


def test_failed_stage_exits_non_zero(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli_module, "build_context", lambda **_: CONTEXT)
    monkeypatch.setattr(
        cli_module,
        "run_filter",
        lambda context, **_: _result(StageName.FILTER, success=False),
    )

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["filter"])

    assert excinfo.value.code == 1


def test_unexpected_error_exits_non_zero(monkeypatch: pytest.MonkeyPatch) -> None:
    def broken(**_: object) -> object:
        raise RuntimeError("database is locked")

    monkeypatch.setattr(cli_module, "build_context", broken)

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["score"])

    assert excinfo.value.code == 1


def test_missing_credentials_are_fatal(monkeypatch: pytest.MonkeyPatch) -> None:
    def no_key(context: object, **_: object) -> StageResult:
        del context
        raise MissingConfigurationError("GOOGLE_PLACES_API_KEY")

    monkeypatch.setattr(cli_module, "build_context", lambda **_: CONTEXT)
    monkeypatch.setattr(cli_module, "run_discover", no_key)

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["discover"])

    assert excinfo.value.code == 1


def test_pipeline_flags_and_partial_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_pipeline(context: object, **kwargs: object) -> PipelineResult:
        del context
        captured.update(kwargs)
        return PipelineResult(
            results=(_result(StageName.COLLECT), _result(StageName.FILTER, success=False)),
            skipped=(StageName.DISCOVER,),
        )

    monkeypatch.setattr(cli_module, "build_context", lambda **_: CONTEXT)
    monkeypatch.setattr(cli_module, "run_pipeline", fake_pipeline)

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["pipeline", "--skip-discover", "--limit", "10"])

    assert excinfo.value.code == 1
    assert captured == {"skip_discover": True, "skip_enrich": False, "limit": 10}


def test_stats_prints_summary(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.setattr(cli_module, "build_context", lambda **_: CONTEXT)
    monkeypatch.setattr(
        cli_module,
        "gather_stats",
        lambda context: PipelineStats(leads={"new": 3, "scored": 1}),
    )

    cli_module.main(["stats"])

    out = capsys.readouterr().out
    assert "Leads by status:" in out
    assert "new" in out
    assert "3" in out


def test_refresh_runs_without_options(captured: dict[str, Any]) -> None:
    cli_module.main(["refresh", "-v"])

    assert captured["refresh"] == {}
