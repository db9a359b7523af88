"""
Pipeline defaults.

Defines the numeric defaults consumed by gog.config.GogSettings and by the
stages when no explicit parameter is given. This module is zero-IO and uses
only the Python standard library.

Notes:
    - Changing a default here changes GogSettings defaults; GogSettings simply
      consumes these values.
    - Bar/dodge widths are fractions of the x-slot in unit-panel space.
"""

from __future__ import annotations

__all__ = [
    "DEFAULT_BINS",
    "DENSITY_POINTS",
    "SMOOTH_POINTS",
    "POLAR_SEGMENTS",
    "BAR_WIDTH",
    "JITTER_WIDTH",
    "JITTER_SEED",
    "UNIT_TOLERANCE",
    "CANVAS_WIDTH",
    "CANVAS_HEIGHT",
]

# Number of buckets for Bin when neither bins nor binwidth is given.
DEFAULT_BINS: int = 30

# Evaluation grid sizes for Density and Smooth.
DENSITY_POINTS: int = 100
SMOOTH_POINTS: int = 80

# Interpolation steps per straight edge before a non-linear coordinate mapping.
POLAR_SEGMENTS: int = 32

# Fraction of the x-slot a bar (or dodge group) occupies.
BAR_WIDTH: float = 0.9

# Jitter defaults (unit-panel offsets).
JITTER_WIDTH: float = 0.02
JITTER_SEED: int = 0

# Slack allowed when checking that positions lie in [0, 1].
UNIT_TOLERANCE: float = 1e-9

# Character canvas size.
CANVAS_WIDTH: int = 72
CANVAS_HEIGHT: int = 20
