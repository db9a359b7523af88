from __future__ import annotations

import argparse
import logging
import sys
import tomllib
from dataclasses import replace
from pathlib import Path
from typing import Any

import polars as pl
from pydantic import ValidationError

from . import coords, geoms, stats
from . import position as collision
from .canvas import render_panel
from .config import GogSettings
from .core.errors import PlotError
from .core.grammar import AggregateFunc, CoordKind, GeomKind, PositionKind, ScaleSharing, StatKind
from .core.schema import PlotSpec
from .core.table import Table
from .pipeline import Aes, Layer, PlotRequest, PlotResult, build, request_from_spec

logger = logging.getLogger(__name__)


def _read_table(path: Path) -> Table:
    """Load a CSV file via Polars and infer semantic types from dtypes."""
    frame = pl.read_csv(path)
    return Table.from_frame(frame)


def _load_spec(path: Path) -> PlotSpec:
    """Validate a JSON or TOML plot file."""
    if path.suffix.lower() == ".toml":
        with path.open("rb") as fh:
            return PlotSpec.model_validate(tomllib.load(fh))
    return PlotSpec.model_validate_json(path.read_text())


def _configure(args: argparse.Namespace) -> GogSettings:
    settings = GogSettings.load(args.config or None)
    if args.log_level:
        settings = replace(settings, log_level=args.log_level.upper())
    if getattr(args, "workers", None):
        settings = replace(settings, workers=max(1, args.workers))
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.WARNING),
        format="[%(levelname)s] %(name)s: %(message)s",
    )
    return settings


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument("--csv", type=str, required=True, help="Path to a CSV file.")
    p.add_argument("--config", type=str, default="", help="TOML settings file (default: search cwd).")
    p.add_argument("--log-level", type=str, default="", help="Override the configured log level.")


def _cmd_describe(argv: list[str]) -> int:
    p = argparse.ArgumentParser(prog="describe", description="Show column dtypes and semantic types.")
    _add_common(p)
    args = p.parse_args(argv)
    _configure(args)

    try:
        table = _read_table(Path(args.csv))
    except (OSError, pl.exceptions.PolarsError) as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1
    print(f"[INFO] {args.csv}: {table.height} row(s), {len(table.names)} column(s)")
    for name in table.names:
        levels = table.levels.get(name)
        extra = f" levels={list(levels)}" if levels else ""
        print(f"  {name}: {table.frame.schema[name]} -> {table.semantic_of(name).value}{extra}")
    return 0


def _stat_from_args(args: argparse.Namespace) -> stats.Statistic:
    match StatKind(args.stat):
        case StatKind.IDENTITY:
            return stats.Identity()
        case StatKind.COUNT:
            return stats.Count()
        case StatKind.BIN:
            return stats.Bin(bins=args.bins, binwidth=args.binwidth)
        case StatKind.AGGREGATE:
            return stats.Aggregate(func=args.func)
        case StatKind.DENSITY:
            return stats.Density()
        case StatKind.SMOOTH:
            return stats.Smooth()


def _request_from_args(args: argparse.Namespace, table: Table) -> PlotRequest:
    if args.spec:
        return request_from_spec(_load_spec(Path(args.spec)), table)
    if not args.x:
        raise SystemExit("plot requires --x (or --spec)")
    pairs: list[tuple[str, Any]] = [("x", args.x)]
    for name in ("y", "colour", "fill", "shape", "label", "weight", "group"):
        value = getattr(args, name)
        if value:
            pairs.append((name, value))
    coord: coords.Coordinate = (
        coords.Polar() if args.coord == CoordKind.POLAR.value else coords.Cartesian(flip=args.flip)
    )
    layer = Layer(
        geom=geoms.geom_from_name(args.geom),
        stat=_stat_from_args(args),
        position=collision.modifier_from_name(args.position),
    )
    return PlotRequest(
        table=table,
        mapping=Aes.from_pairs(pairs),
        layers=[layer],
        facets=list(args.facet or []),
        coord=coord,
        sharing=ScaleSharing(args.sharing) if args.sharing else None,
    )


def _print_result(result: PlotResult, settings: GogSettings, *, listing: bool) -> None:
    for panel in result.panels:
        key = ", ".join(f"{n}={v}" for n, v in zip(result.facet_names, panel.key)) or "all"
        print(f"[INFO] panel {panel.index} ({key}): {len(panel.primitives)} primitive(s)")
        if listing:
            for prim in panel.primitives:
                pts = " ".join(f"({x:.3f},{y:.3f})" for x, y in prim.positions)
                print(f"  {prim.kind} group={prim.group} {dict(prim.style)} {pts}")
        else:
            print(
                render_panel(
                    panel.primitives, result.coord, settings.canvas_width, settings.canvas_height
                )
            )


def _cmd_plot(argv: list[str]) -> int:
    p = argparse.ArgumentParser(prog="plot", description="Build a plot from a CSV and draw each panel.")
    _add_common(p)
    p.add_argument("--spec", type=str, default="", help="JSON or TOML plot file (overrides flags).")
    p.add_argument("--x", type=str, default="", help="Column mapped to x.")
    p.add_argument("--y", type=str, default="", help="Column mapped to y.")
    p.add_argument("--colour", "--color", dest="colour", type=str, default="", help="Column mapped to colour.")
    p.add_argument("--fill", type=str, default="", help="Column mapped to fill.")
    p.add_argument("--shape", type=str, default="", help="Column mapped to shape.")
    p.add_argument("--label", type=str, default="", help="Column mapped to label.")
    p.add_argument("--weight", type=str, default="", help="Column mapped to weight.")
    p.add_argument("--group", type=str, default="", help="Column mapped to group.")
    p.add_argument("--geom", choices=[g.value for g in GeomKind], default=GeomKind.POINT.value)
    p.add_argument("--stat", choices=[s.value for s in StatKind], default=StatKind.IDENTITY.value)
    p.add_argument("--position", choices=[k.value for k in PositionKind], default=PositionKind.IDENTITY.value)
    p.add_argument("--coord", choices=[c.value for c in CoordKind], default=CoordKind.CARTESIAN.value)
    p.add_argument("--flip", action="store_true", help="Swap x and y (cartesian only).")
    p.add_argument("--facet", action="append", help="Facet column (repeat to cross several).")
    p.add_argument("--sharing", choices=[s.value for s in ScaleSharing], default="")
    p.add_argument("--bins", type=int, default=None, help="Bucket count for --stat bin.")
    p.add_argument("--binwidth", type=float, default=None, help="Bucket width for --stat bin.")
    p.add_argument("--func", choices=[f.value for f in AggregateFunc], default=AggregateFunc.SUM.value)
    p.add_argument("--workers", type=int, default=0, help="Panel workers (default: configured).")
    p.add_argument("--primitives", action="store_true", help="List primitives instead of drawing.")
    args = p.parse_args(argv)
    settings = _configure(args)

    try:
        table = _read_table(Path(args.csv))
        request = _request_from_args(args, table)
        result = build(request, settings)
    except (
        PlotError,
        ValidationError,
        OSError,
        tomllib.TOMLDecodeError,
        pl.exceptions.PolarsError,
    ) as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1
    logger.debug("plot: %d panel(s)", len(result.panels))
    _print_result(result, settings, listing=args.primitives)
    return 0


def build_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="gog", description="Grammar of graphics pipeline CLI.")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("describe")
    sub.add_parser("plot")
    return p


def main(argv: list[str] | None = None) -> None:
    argv = list(sys.argv[1:] if argv is None else argv)
    if not argv:
        build_argparser().print_help()
        return
    cmd, rest = argv[0], argv[1:]
    if cmd == "describe":
        code = _cmd_describe(rest)
    elif cmd == "plot":
        code = _cmd_plot(rest)
    else:
        print(f"Unknown command: {cmd}", file=sys.stderr)
        code = 2
    raise SystemExit(code)


if __name__ == "__main__":
    main()
