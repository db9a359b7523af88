from __future__ import annotations

import json
from pathlib import Path

import pytest

from gog.cli import main


@pytest.fixture()
def csv_path(tmp_path: Path, monkeypatch) -> Path:
    # Keep settings discovery away from any gog.toml / pyproject.toml in the repo
    monkeypatch.chdir(tmp_path)
    for key in ("GOG_LOG_LEVEL", "GOG_WORKERS", "GOG_CANVAS_WIDTH", "GOG_CANVAS_HEIGHT"):
        monkeypatch.delenv(key, raising=False)
    p = tmp_path / "data.csv"
    p.write_text("cls,value\nA,1\nB,2\nA,3\n")
    return p


def _run(argv: list[str]) -> int:
    with pytest.raises(SystemExit) as exc:
        main(argv)
    return exc.value.code


def test_describe(csv_path: Path, capsys) -> None:
    assert _run(["describe", "--csv", str(csv_path)]) == 0
    out = capsys.readouterr().out
    assert "3 row(s), 2 column(s)" in out
    assert "cls: String -> discrete" in out
    assert "value: Int64 -> continuous" in out


def test_plot_lists_primitives(csv_path: Path, capsys) -> None:
    code = _run(
        [
            "plot",
            "--csv", str(csv_path),
            "--x", "cls",
            "--y", "value",
            "--geom", "bar",
            "--stat", "aggregate",
            "--primitives",
        ]
    )
    assert code == 0
    out = capsys.readouterr().out
    assert "[INFO] panel 0 (all): 2 primitive(s)" in out
    assert out.count("  rect group=0") == 2


def test_plot_draws_canvas(csv_path: Path, capsys) -> None:
    assert _run(["plot", "--csv", str(csv_path), "--x", "value", "--y", "value"]) == 0
    out = capsys.readouterr().out
    assert "+" + "-" * 72 + "+" in out
    assert "o" in out


def test_plot_facets(csv_path: Path, capsys) -> None:
    code = _run(
        ["plot", "--csv", str(csv_path), "--x", "value", "--y", "value", "--facet", "cls", "--primitives"]
    )
    assert code == 0
    out = capsys.readouterr().out
    assert "panel 0 (cls=A): 2 primitive(s)" in out
    assert "panel 1 (cls=B): 1 primitive(s)" in out


def test_plot_from_spec_file(csv_path: Path, tmp_path: Path, capsys) -> None:
    spec = tmp_path / "plot.json"
    spec.write_text(
        json.dumps(
            {
                "aesthetics": {"x": "cls", "y": "value"},
                "layers": [{"geom": "bar", "stat": "aggregate"}],
                "coord": {"kind": "polar"},
            }
        )
    )
    code = _run(["plot", "--csv", str(csv_path), "--spec", str(spec), "--primitives"])
    assert code == 0
    assert "2 primitive(s)" in capsys.readouterr().out


def test_plot_error_exits_with_one(csv_path: Path, capsys) -> None:
    code = _run(["plot", "--csv", str(csv_path), "--x", "cls", "--stat", "bin"])
    assert code == 1
    assert "[ERROR]" in capsys.readouterr().err


def test_missing_csv_exits_with_one(csv_path: Path, capsys) -> None:
    code = _run(["plot", "--csv", str(csv_path.with_name("absent.csv")), "--x", "cls"])
    assert code == 1
    assert "[ERROR]" in capsys.readouterr().err
    assert _run(["describe", "--csv", str(csv_path.with_name("absent.csv"))]) == 1


@pytest.mark.parametrize(
    ("name", "text"),
    [
        (
            "plot.json",
            json.dumps(
                {
                    "aesthetics": {"x": "cls", "y": {"name": "v", "sql": "value +"}},
                    "layers": [{"geom": "point"}],
                }
            ),
        ),
        ("plot.toml", "[aesthetics\nx = "),
    ],
)
def test_plot_bad_spec_file_exits_with_one(
    csv_path: Path, tmp_path: Path, capsys, name: str, text: str
) -> None:
    spec = tmp_path / name
    spec.write_text(text)
    assert _run(["plot", "--csv", str(csv_path), "--spec", str(spec)]) == 1
    assert "[ERROR]" in capsys.readouterr().err


def test_unknown_command_exits_with_two(capsys) -> None:
    assert _run(["frobnicate"]) == 2
    assert "Unknown command" in capsys.readouterr().err


def test_no_arguments_prints_help(capsys) -> None:
    main([])
    assert "usage" in capsys.readouterr().out.lower()
