"""
Canonical grammar vocabulary and helpers.

Defines the closed vocabularies shared by every stage: column semantic types,
aesthetic channels, scale transforms, aggregate functions and scale sharing.
Includes zero-IO normalization helpers used by mappings, declarative plot files
and the CLI.

Responsibilities
- Define enums whose serialized values are lower_snake.
- Parse user-facing strings into enums, raising the typed core errors.
- Group channels into positional families that share one scale.

Design principles
-----------------
1) One naming standard:
   - Enum classes: PascalCase
   - Enum member names: UPPER_SNAKE (Python constants)
   - Enum serialized values (plot files, CLI flags): lower_snake

2) Channels vs. scales:
   - Several channels may feed one scale. xmin/xmax share the x scale and
     ymin/ymax share the y scale, so a bar edge and a point centre always land
     on the same axis.
   - Style channels (colour, fill, size, shape, alpha) each own a scale.
   - label and group are never normalized: label is text handed to the
     renderer and group only drives partitioning.

Examples
--------
>>> from gog.core.grammar import channel_from_value, scale_key, Channel
>>> channel_from_value("color") == Channel.COLOUR
True
>>> scale_key(Channel.XMAX)
'x'
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from enum import Enum
from typing import Final

from .errors import UnknownChannel

__all__ = [
    "SemanticType",
    "Channel",
    "TransformKind",
    "AggregateFunc",
    "ScaleSharing",
    "StatKind",
    "GeomKind",
    "PositionKind",
    "CoordKind",
    "X_FAMILY",
    "Y_FAMILY",
    "POSITION_CHANNELS",
    "STYLE_CHANNELS",
    "UNSCALED_CHANNELS",
    "GROUPING_CHANNELS",
    # helpers/validators
    "is_lower_snake",
    "assert_lower_snake",
    "channel_from_value",
    "semantic_from_value",
    "transform_from_value",
    "aggregate_from_value",
    "scale_key",
    "ensure_all_enum_values_lower_snake",
]


# ============================================================================
# COLUMNS
# ============================================================================


class SemanticType(Enum):
    """
    Semantic type of a column.

    Notes:
      - continuous: numeric, mapped linearly (after an optional transform).
      - discrete: unordered categories, first-seen order unless overridden.
      - ordinal: ordered categories; levels give the order.
    """

    CONTINUOUS = "continuous"
    DISCRETE = "discrete"
    ORDINAL = "ordinal"

    @property
    def is_categorical(self) -> bool:
        return self is not SemanticType.CONTINUOUS


# ============================================================================
# AESTHETIC CHANNELS
# ============================================================================


class Channel(Enum):
    """
    Aesthetic channels a variable can be mapped to.

    Serialized values appear in:
      - Aes keyword names
      - PlotSpec.aesthetics keys
      - column names of the per-layer frames handed between stages
    """

    X = "x"
    Y = "y"
    XMIN = "xmin"
    XMAX = "xmax"
    YMIN = "ymin"
    YMAX = "ymax"
    COLOUR = "colour"
    FILL = "fill"
    SIZE = "size"
    SHAPE = "shape"
    ALPHA = "alpha"
    LABEL = "label"
    WEIGHT = "weight"
    GROUP = "group"


_CHANNEL_ALIASES: Final[dict[str, str]] = {"color": "colour"}

X_FAMILY: Final[frozenset[Channel]] = frozenset({Channel.X, Channel.XMIN, Channel.XMAX})
Y_FAMILY: Final[frozenset[Channel]] = frozenset({Channel.Y, Channel.YMIN, Channel.YMAX})
POSITION_CHANNELS: Final[frozenset[Channel]] = X_FAMILY | Y_FAMILY
STYLE_CHANNELS: Final[frozenset[Channel]] = frozenset(
    {Channel.COLOUR, Channel.FILL, Channel.SIZE, Channel.SHAPE, Channel.ALPHA}
)
# Never normalized by a scale.
UNSCALED_CHANNELS: Final[frozenset[Channel]] = frozenset(
    {Channel.LABEL, Channel.WEIGHT, Channel.GROUP}
)
# Categorical values on these channels split a panel into groups.
GROUPING_CHANNELS: Final[tuple[Channel, ...]] = (
    Channel.GROUP,
    Channel.COLOUR,
    Channel.FILL,
    Channel.SHAPE,
    Channel.ALPHA,
    Channel.SIZE,
)


# ============================================================================
# SCALES / STATISTICS
# ============================================================================


class TransformKind(Enum):
    """Monotonic transforms a continuous scale applies before linear mapping."""

    IDENTITY = "identity"
    LOG10 = "log10"
    LOG2 = "log2"
    LN = "ln"
    SQRT = "sqrt"
    ARCSINE = "arcsine"
    LOGIT = "logit"
    REVERSE = "reverse"


class AggregateFunc(Enum):
    """Reducers available to the Aggregate statistic."""

    SUM = "sum"
    MEAN = "mean"
    MEDIAN = "median"
    MIN = "min"
    MAX = "max"
    COUNT = "count"


class ScaleSharing(Enum):
    """
    Whether position scales span all panels or are trained per panel.

    Notes:
      Style scales are always shared so a colour means the same thing in every
      panel.
    """

    FIXED = "fixed"
    FREE = "free"


# ============================================================================
# LAYER COMPONENT NAMES (plot files and CLI flags)
# ============================================================================


class StatKind(Enum):
    """Statistic names."""

    IDENTITY = "identity"
    COUNT = "count"
    BIN = "bin"
    AGGREGATE = "aggregate"
    DENSITY = "density"
    SMOOTH = "smooth"


class GeomKind(Enum):
    """Geometry names."""

    POINT = "point"
    BAR = "bar"
    INTERVAL = "interval"
    LINE = "line"
    PATH = "path"
    POLYGON = "polygon"


class PositionKind(Enum):
    """Collision modifier names."""

    IDENTITY = "identity"
    STACK = "stack"
    DODGE = "dodge"
    JITTER = "jitter"


class CoordKind(Enum):
    """Coordinate system names available outside Python code."""

    CARTESIAN = "cartesian"
    POLAR = "polar"


# ============================================================================
# Helpers & Validators (zero I/O)
# ============================================================================

_LOWER_SNAKE_RE: Final[re.Pattern[str]] = re.compile(r"^[a-z0-9]+(?:_[a-z0-9]+)*$")


def is_lower_snake(value: str) -> bool:
    """
    Check whether a string is lower_snake.

    Examples:
      >>> is_lower_snake("log10")
      True
      >>> is_lower_snake("Log10")
      False
    """
    return bool(_LOWER_SNAKE_RE.match(value or ""))


def assert_lower_snake(value: str, what: str = "value") -> None:
    """
    Validate that a string is lower_snake.

    Raises:
      ValueError: If value is not lower_snake.
    """
    if not is_lower_snake(value):
        raise ValueError(f"{what} must be lower_snake (got: {value!r})")


def channel_from_value(s: str | Channel) -> Channel:
    """
    Parse a channel name into a Channel, accepting the ``color`` spelling.

    Args:
      s (str | Channel): Channel name or enum.

    Returns:
      Channel: Parsed channel.

    Raises:
      UnknownChannel: If s does not name a declared aesthetic channel.
    """
    if isinstance(s, Channel):
        return s
    name = _CHANNEL_ALIASES.get(s, s)
    try:
        return Channel(name)
    except ValueError:
        allowed = sorted(c.value for c in Channel)
        raise UnknownChannel(f"unknown aesthetic channel {s!r} (allowed={allowed})") from None


def semantic_from_value(s: str | SemanticType) -> SemanticType:
    """Parse a lower_snake semantic type name."""
    if isinstance(s, SemanticType):
        return s
    assert_lower_snake(s, "semantic type")
    return SemanticType(s)


def transform_from_value(s: str | TransformKind) -> TransformKind:
    """Parse a lower_snake transform name (e.g. ``"log10"``)."""
    if isinstance(s, TransformKind):
        return s
    assert_lower_snake(s, "transform")
    return TransformKind(s)


def aggregate_from_value(s: str | AggregateFunc) -> AggregateFunc:
    """Parse a lower_snake aggregate function name (e.g. ``"sum"``)."""
    if isinstance(s, AggregateFunc):
        return s
    assert_lower_snake(s, "aggregate function")
    return AggregateFunc(s)


def scale_key(channel: Channel) -> str:
    """
    Name of the scale a channel resolves through.

    Returns:
      str: ``"x"`` for the x family, ``"y"`` for the y family, otherwise the
      channel's own value.
    """
    if channel in X_FAMILY:
        return Channel.X.value
    if channel in Y_FAMILY:
        return Channel.Y.value
    return channel.value


def ensure_all_enum_values_lower_snake(enums: Iterable[type[Enum]]) -> None:
    """
    Assert that every enum member's value is lower_snake.

    Raises:
      AssertionError: If any enum member has a non-lower_snake value.
    """
    for E in enums:
        for m in E:
            if not is_lower_snake(m.value):
                raise AssertionError(
                    f"{E.__name__}.{m.name} has non-lower_snake value: {m.value!r}"
                )
