from __future__ import annotations

from pathlib import Path

from gog.config import GogSettings
from gog.core.grammar import ScaleSharing

_ENV_KEYS = [
    "GOG_SCALE_SHARING",
    "GOG_BINS",
    "GOG_DENSITY_POINTS",
    "GOG_SMOOTH_POINTS",
    "GOG_POLAR_SEGMENTS",
    "GOG_JITTER_SEED",
    "GOG_WORKERS",
    "GOG_CANVAS_WIDTH",
    "GOG_CANVAS_HEIGHT",
    "GOG_LOG_LEVEL",
]


def _clear_env(monkeypatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def _write_gog_toml(tmp: Path, content: str) -> Path:
    p = tmp / "gog.toml"
    p.write_text(content)
    return p


def test_settings_precedence_env_over_toml(tmp_path: Path, monkeypatch) -> None:
    _write_gog_toml(
        tmp_path,
        """
        [plot]
        scale_sharing = "free"
        bins = 12
        workers = 2
        """.strip(),
    )
    monkeypatch.chdir(tmp_path)
    _clear_env(monkeypatch)
    monkeypatch.setenv("GOG_BINS", "40")
    monkeypatch.setenv("GOG_LOG_LEVEL", "debug")

    s = GogSettings.load()

    assert s.bins == 40  # env override
    assert s.log_level == "DEBUG"
    assert s.scale_sharing is ScaleSharing.FREE  # from TOML
    assert s.workers == 2


def test_settings_from_pyproject_tool_table(tmp_path: Path, monkeypatch) -> None:
    (tmp_path / "pyproject.toml").write_text(
        """
        [tool.gog]
        polar_segments = 8
        canvas_width = 40
        """.strip()
    )
    monkeypatch.chdir(tmp_path)
    _clear_env(monkeypatch)

    s = GogSettings.load()

    assert s.polar_segments == 8
    assert s.canvas_width == 40


def test_gog_toml_wins_over_pyproject(tmp_path: Path, monkeypatch) -> None:
    _write_gog_toml(tmp_path, "[plot]\nbins = 5\n")
    (tmp_path / "pyproject.toml").write_text("[tool.gog]\nbins = 9\n")
    monkeypatch.chdir(tmp_path)
    _clear_env(monkeypatch)

    assert GogSettings.load().bins == 5


def test_explicit_path_and_top_level_keys(tmp_path: Path, monkeypatch) -> None:
    p = tmp_path / "custom.toml"
    p.write_text('jitter_seed = 11\nscale_sharing = "FREE"\n')
    monkeypatch.chdir(tmp_path)
    _clear_env(monkeypatch)

    s = GogSettings.load(p)

    assert s.jitter_seed == 11
    assert s.scale_sharing is ScaleSharing.FREE


def test_settings_defaults_when_no_config(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    _clear_env(monkeypatch)

    assert GogSettings.load() == GogSettings()


def test_invalid_values_are_ignored(tmp_path: Path, monkeypatch) -> None:
    _write_gog_toml(
        tmp_path,
        """
        [plot]
        bins = 0
        workers = "many"
        scale_sharing = "sideways"
        log_level = "LOUD"
        """.strip(),
    )
    monkeypatch.chdir(tmp_path)
    _clear_env(monkeypatch)
    monkeypatch.setenv("GOG_CANVAS_HEIGHT", "2")

    assert GogSettings.load() == GogSettings()


def test_malformed_toml_falls_back_to_defaults(tmp_path: Path, monkeypatch) -> None:
    _write_gog_toml(tmp_path, "[plot\nbins = ")
    monkeypatch.chdir(tmp_path)
    _clear_env(monkeypatch)

    assert GogSettings.load() == GogSettings()
