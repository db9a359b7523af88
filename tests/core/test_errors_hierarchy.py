import pytest

from gog.core.errors import (
    DomainError,
    EmptyPanel,
    IncompatibleAlgebra,
    PlotError,
    SchemaError,
    TypeMismatch,
    UnknownChannel,
)


@pytest.mark.parametrize(
    ("exc", "builtin"),
    [
        (SchemaError, ValueError),
        (UnknownChannel, ValueError),
        (TypeMismatch, TypeError),
        (DomainError, ValueError),
        (EmptyPanel, ValueError),
        (IncompatibleAlgebra, ValueError),
    ],
)
def test_plot_errors_share_base(exc: type[Exception], builtin: type[Exception]) -> None:
    assert issubclass(exc, PlotError)
    assert issubclass(exc, builtin)


def test_domain_error_carries_channel_and_value() -> None:
    e = DomainError("undefined", channel="y", value=-1)
    assert (e.channel, e.value) == ("y", -1)
    assert "undefined" in str(e)
