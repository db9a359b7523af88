"""
Configuration for the gog pipeline.

Defines GogSettings, a frozen dataclass carrying runtime configuration for the
stages and the CLI. Defaults are sourced from gog.core.constants (the single
source of truth).

Source of truth
- gog.core.constants.DEFAULT_BINS, DENSITY_POINTS, SMOOTH_POINTS, POLAR_SEGMENTS,
  JITTER_SEED, CANVAS_WIDTH, CANVAS_HEIGHT
- Scale sharing vocabulary from gog.core.grammar.ScaleSharing

Import DAG discipline
- Depends only on stdlib and gog.core.
- Does not import the stages (stats, scales, geoms, coords, pipeline).

Notes
- Precedence: environment (GOG_*) > TOML (./gog.toml [plot] or pyproject.toml
  [tool.gog]) > defaults.
- Malformed values are ignored and the previous value is kept.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from gog.core.constants import CANVAS_HEIGHT as CORE_CANVAS_HEIGHT
from gog.core.constants import CANVAS_WIDTH as CORE_CANVAS_WIDTH
from gog.core.constants import DEFAULT_BINS as CORE_DEFAULT_BINS
from gog.core.constants import DENSITY_POINTS as CORE_DENSITY_POINTS
from gog.core.constants import JITTER_SEED as CORE_JITTER_SEED
from gog.core.constants import POLAR_SEGMENTS as CORE_POLAR_SEGMENTS
from gog.core.constants import SMOOTH_POINTS as CORE_SMOOTH_POINTS
from gog.core.grammar import ScaleSharing

__all__ = ["GogSettings"]

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

# Integer settings: (field name, minimum accepted value).
_INT_FIELDS: tuple[tuple[str, int], ...] = (
    ("bins", 1),
    ("density_points", 2),
    ("smooth_points", 2),
    ("polar_segments", 1),
    ("jitter_seed", 0),
    ("workers", 1),
    ("canvas_width", 8),
    ("canvas_height", 4),
)


@dataclass(frozen=True)
class GogSettings:
    """
    Runtime settings for the pipeline and CLI.

    Attributes:
        scale_sharing (ScaleSharing): "fixed" position scales span all panels;
            "free" trains x/y per panel.
        bins (int): Bucket count for Bin when no bins/binwidth is given.
        density_points (int): Evaluation grid size for Density.
        smooth_points (int): Evaluation grid size for Smooth.
        polar_segments (int): Interpolation steps per edge under polar coordinates.
        jitter_seed (int): Seed for Jitter when none is given.
        workers (int): Panel workers; values > 1 render panels on a thread pool.
        canvas_width (int): Character canvas width used by the CLI.
        canvas_height (int): Character canvas height used by the CLI.
        log_level (str): Logging level configured by the CLI.

    Examples:
        >>> from gog.config import GogSettings
        >>> GogSettings(bins=10).bins
        10
    """

    scale_sharing: ScaleSharing = ScaleSharing.FIXED
    bins: int = CORE_DEFAULT_BINS
    density_points: int = CORE_DENSITY_POINTS
    smooth_points: int = CORE_SMOOTH_POINTS
    polar_segments: int = CORE_POLAR_SEGMENTS
    jitter_seed: int = CORE_JITTER_SEED
    workers: int = 1
    canvas_width: int = CORE_CANVAS_WIDTH
    canvas_height: int = CORE_CANVAS_HEIGHT
    log_level: str = "WARNING"

    # Configuration loaders (env/TOML) with precedence: env > TOML > defaults.

    @classmethod
    def _apply_mapping(cls, base: GogSettings, cfg: dict[str, Any] | None) -> GogSettings:
        """Apply a loose config mapping onto GogSettings, returning a new instance."""
        if not isinstance(cfg, dict):
            return base

        s = base

        if "scale_sharing" in cfg and isinstance(cfg["scale_sharing"], str):
            value = cfg["scale_sharing"].strip().lower()
            if value in {m.value for m in ScaleSharing}:
                s = replace(s, scale_sharing=ScaleSharing(value))

        for name, minimum in _INT_FIELDS:
            if name not in cfg:
                continue
            try:
                value = int(cfg[name])
            except (TypeError, ValueError):
                continue
            if value >= minimum:
                s = replace(s, **{name: value})

        if "log_level" in cfg and isinstance(cfg["log_level"], str):
            level = cfg["log_level"].strip().upper()
            if level in _LOG_LEVELS:
                s = replace(s, log_level=level)

        return s

    @classmethod
    def from_env(cls, base: GogSettings | None = None, prefix: str = "GOG_") -> GogSettings:
        """
        Build GogSettings from environment variables. Precedence is env > base (if provided) > defaults.

        Recognized variables:
            - GOG_SCALE_SHARING ("fixed" | "free")
            - GOG_BINS, GOG_DENSITY_POINTS, GOG_SMOOTH_POINTS, GOG_POLAR_SEGMENTS
            - GOG_JITTER_SEED, GOG_WORKERS
            - GOG_CANVAS_WIDTH, GOG_CANVAS_HEIGHT
            - GOG_LOG_LEVEL
        """
        s = base or cls()
        mapping: dict[str, Any] = {}
        for name in ("scale_sharing", "log_level", *(n for n, _ in _INT_FIELDS)):
            v = os.getenv(prefix + name.upper())
            if v:
                mapping[name] = v
        return cls._apply_mapping(s, mapping)

    @classmethod
    def from_toml(cls, path: str | os.PathLike[str] | None = None) -> GogSettings:
        """
        Build GogSettings from a TOML file.

        Search order when `path` is None:
            1) ./gog.toml (with either a [plot] table or top-level keys)
            2) ./pyproject.toml under [tool.gog]

        Returns defaults if no file is present or it cannot be parsed.
        """
        s = cls()

        def _load_toml(p: Path) -> dict[str, Any] | None:
            try:
                with p.open("rb") as fh:
                    return tomllib.load(fh)
            except (OSError, tomllib.TOMLDecodeError):
                return None

        cfg: dict[str, Any] | None = None

        cand: list[Path] = []
        if path is not None:
            cand.append(Path(path))
        else:
            cand.append(Path.cwd() / "gog.toml")
            cand.append(Path.cwd() / "pyproject.toml")

        for p in cand:
            if not p.exists():
                continue
            data = _load_toml(p)
            if not isinstance(data, dict):
                continue
            if p.name == "pyproject.toml":
                tool = data.get("tool", {})
                cfg = tool.get("gog") if isinstance(tool, dict) else None
            elif isinstance(data.get("plot"), dict):
                cfg = data["plot"]
            else:
                cfg = data
            if cfg:
                break

        return cls._apply_mapping(s, cfg)

    @classmethod
    def load(cls, path: str | os.PathLike[str] | None = None) -> GogSettings:
        """
        Load GogSettings applying precedence: environment > TOML > defaults.

        Args:
            path: Optional explicit TOML path. If None, search defaults (gog.toml, pyproject.toml).
        """
        s = cls.from_toml(path)
        s = cls.from_env(base=s)
        return s
