import io

import pytest
import typer
from rich.console import Console

from src.cli.shared.console import CLIConsole, with_error_handling
from src.reconcile.errors import (
    ConnectivityError,
    ContextNotFound,
    DependencyUnmet,
    LockCorruption,
    ResourceBusy,
    SchemaError,
    ToolNotFound,
)


@pytest.mark.parametrize(
    ("error", "exit_code"),
    [
        (SchemaError("bad field"), 3),
        (LockCorruption("unreadable"), 3),
        (DependencyUnmet("prometheus", ["mesh"]), 3),
        (ConnectivityError("unreachable"), 2),
        (ContextNotFound("no such context"), 2),
        (ResourceBusy("locked"), 1),
        (ToolNotFound("no helm"), 1),
    ],
)
def test_with_error_handling_maps_exit_codes(error, exit_code):
    @with_error_handling
    def _command() -> None:
        raise error

    with pytest.raises(typer.Exit) as excinfo:
        _command()

    assert excinfo.value.exit_code == exit_code


def test_with_error_handling_tolerates_markup_in_details():
    @with_error_handling
    def _command() -> None:
        raise SchemaError("Invalid [component]", details="[type=value_error]")

    with pytest.raises(typer.Exit) as excinfo:
        _command()

    assert excinfo.value.exit_code == 3


def test_with_error_handling_handles_keyboard_interrupt():
    @with_error_handling
    def _command() -> None:
        raise KeyboardInterrupt

    with pytest.raises(typer.Exit) as excinfo:
        _command()

    assert excinfo.value.exit_code == 130


def test_handle_error_writes_to_stderr():
    out, err = io.StringIO(), io.StringIO()
    cli_console = CLIConsole(
        console=Console(file=out, width=200),
        err_console=Console(file=err, width=200),
    )

    with pytest.raises(typer.Exit) as excinfo:
        cli_console.handle_error(
            SchemaError("Unknown component: consul", details="valid: istio")
        )

    assert excinfo.value.exit_code == 3
    assert "Unknown component: consul" in err.getvalue()
    assert "valid: istio" in err.getvalue()
    assert out.getvalue() == ""
