# Copyright (c) Syntropy Systems
"""Main CLI entry point for reachmatrix."""

import typer

from reachmatrix.cli.doctor import doctor
from reachmatrix.cli.matrix_cmd import matrix
from reachmatrix.cli.profile_cmd import profile
from reachmatrix.cli.resolve_cmd import resolve_cmd
from reachmatrix.cli.run import run

app = typer.Typer(
    name="reachmatrix",
    help=(
        "Reachability build matrix. Check which tests must pass or fail to "
        "build under every optimization profile."
    ),
    no_args_is_help=True,
    add_completion=False,
)

# Register commands
_ = app.command()(matrix)
_ = app.command(name="resolve")(resolve_cmd)
_ = app.command()(profile)
_ = app.command()(run)
_ = app.command()(doctor)


if __name__ == "__main__":
    app()
