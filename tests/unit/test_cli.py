from __future__ import annotations

import json
import sys
from argparse import Namespace
from pathlib import Path
from typing import Any

import pytest

from lajiforms import cli
from lajiforms.async_runner import run_async
from lajiforms.exceptions import UnprocessableError
from lajiforms.settings import Settings
from lajiforms.typing.enums import Format


class _FakeFieldService:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls: list[tuple[dict[str, Any], Format, str | None]] = []

    async def convert(self, master: dict[str, Any], fmt: Format, lang: str | None) -> dict[str, Any]:
        self.calls.append((master, fmt, lang))
        if self.error is not None:
            raise self.error
        return {"schema": {"type": "object", "properties": {}}, "id": master.get("id")}


class _FakeFormsService:
    def __init__(self, error: Exception | None = None) -> None:
        self.field_service = _FakeFieldService(error)
        self.requests: list[tuple[str, str | None, Format, bool]] = []
        self.closed = False

    async def get_form(self, form_id: str, lang: str | None, fmt: Format, *, expand: bool) -> dict[str, Any]:
        self.requests.append((form_id, lang, fmt, expand))
        return {"id": form_id}

    async def aclose(self) -> None:
        self.closed = True


def _write_master(tmp_path: Path, master: Any) -> Path:
    path = tmp_path / "master.json"
    path.write_text(json.dumps(master), encoding="utf-8")
    return path


def test_build_parser_supports_version_flag(capsys) -> None:
    parser = cli.build_parser()

    with pytest.raises(SystemExit) as exc_info:
        parser.parse_args(["--version"])
    assert exc_info.value.code == 0

    captured = capsys.readouterr()
    assert "0.1.0" in captured.out


def test_compile_defaults_to_schema_format() -> None:
    args = cli.build_parser().parse_args(["compile", "--input", "master.json"])

    assert args.input_path == Path("master.json")
    assert args.fmt is Format.SCHEMA
    assert args.lang is None
    assert args.output_path is None


def test_get_defaults_to_expanded_json() -> None:
    args = cli.build_parser().parse_args(["get", "--id", "MHL.1", "--lang", "fi", "--format", "schema"])

    assert args.form_id == "MHL.1"
    assert args.fmt is Format.SCHEMA
    assert args.lang == "fi"
    assert args.no_expand is False


def test_parser_rejects_unknown_format_and_language(capsys) -> None:
    parser = cli.build_parser()

    with pytest.raises(SystemExit) as exc_info:
        parser.parse_args(["compile", "--input", "m.json", "--format", "xml"])
    assert exc_info.value.code == 2
    assert "Unsupported Format value 'xml'" in capsys.readouterr().err

    with pytest.raises(SystemExit):
        parser.parse_args(["compile", "--input", "m.json", "--lang", "de"])


def test_load_master_rejects_non_objects(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="JSON object"):
        cli.load_master(_write_master(tmp_path, [1, 2]))


def test_persist_output_writes_file_and_stdout(tmp_path: Path, capsys) -> None:
    output_path = tmp_path / "nested" / "out.json"

    cli.persist_output({"name": "Päivä"}, output_path)
    cli.persist_output({"name": "Päivä"}, None)

    assert json.loads(output_path.read_text(encoding="utf-8")) == {"name": "Päivä"}
    assert "Päivä" in capsys.readouterr().out


def test_run_command_compiles_and_closes(mocker, tmp_path: Path) -> None:
    forms_service = _FakeFormsService()
    mocker.patch("lajiforms.cli.create_forms_service", return_value=forms_service)
    args = Namespace(command="compile", input_path=_write_master(tmp_path, {"id": "MHL.1"}), fmt=Format.JSON, lang="sv")

    result = run_async(cli._run_command(args, Settings(log_json=False)))

    assert result["id"] == "MHL.1"
    assert forms_service.field_service.calls == [({"id": "MHL.1"}, Format.JSON, "sv")]
    assert forms_service.closed is True


def test_run_command_fetches_stored_form(mocker) -> None:
    forms_service = _FakeFormsService()
    mocker.patch("lajiforms.cli.create_forms_service", return_value=forms_service)
    args = Namespace(command="get", form_id="MHL.7", fmt=Format.JSON, lang=None, no_expand=True)

    result = run_async(cli._run_command(args, Settings(log_json=False)))

    assert result == {"id": "MHL.7"}
    assert forms_service.requests == [("MHL.7", None, Format.JSON, False)]
    assert forms_service.closed is True


def test_main_runs_compile_flow(mocker, monkeypatch, tmp_path: Path) -> None:
    output_path = tmp_path / "result.json"
    master_path = _write_master(tmp_path, {"id": "MHL.1"})
    monkeypatch.setattr(
        sys,
        "argv",
        ["lajiforms", "compile", "--input", str(master_path), "--output", str(output_path)],
    )
    mocker.patch("lajiforms.cli.get_settings", return_value=Settings(log_json=False))
    mocker.patch("lajiforms.cli.ensure_cli_dependencies")
    mocker.patch("lajiforms.cli.create_forms_service", return_value=_FakeFormsService())

    result = cli.main()

    assert result == 0
    assert json.loads(output_path.read_text(encoding="utf-8"))["id"] == "MHL.1"


def test_main_without_command_prints_help(mocker, monkeypatch, capsys) -> None:
    monkeypatch.setattr(sys, "argv", ["lajiforms"])
    mocker.patch("lajiforms.cli.get_settings", return_value=Settings(log_json=False))
    ensure = mocker.patch("lajiforms.cli.ensure_cli_dependencies")

    assert cli.main() == 0
    assert "compile" in capsys.readouterr().out
    ensure.assert_not_called()


def test_main_returns_one_on_package_error(mocker, monkeypatch, tmp_path: Path) -> None:
    master_path = _write_master(tmp_path, {"fields": [{"name": "unknownThing"}]})
    monkeypatch.setattr(sys, "argv", ["lajiforms", "compile", "--input", str(master_path)])
    mocker.patch("lajiforms.cli.get_settings", return_value=Settings(log_json=False))
    mocker.patch("lajiforms.cli.ensure_cli_dependencies")
    mocker.patch(
        "lajiforms.cli.create_forms_service",
        return_value=_FakeFormsService(UnprocessableError(message="Bad field unknownThing")),
    )
    mock_persist = mocker.patch("lajiforms.cli.persist_output")

    assert cli.main() == 1
    mock_persist.assert_not_called()


def test_main_returns_130_on_keyboard_interrupt(mocker) -> None:
    parser = mocker.Mock()
    parser.parse_args.return_value = Namespace(command="get", form_id="MHL.1", fmt=Format.JSON, lang=None)
    mocker.patch("lajiforms.cli.build_parser", return_value=parser)
    mocker.patch("lajiforms.cli.get_settings", return_value=Settings(log_json=False))
    mocker.patch("lajiforms.cli.ensure_cli_dependencies")
    mocker.patch("lajiforms.cli._run_command")
    mocker.patch("lajiforms.cli.run_async", side_effect=KeyboardInterrupt)

    assert cli.main() == 130
