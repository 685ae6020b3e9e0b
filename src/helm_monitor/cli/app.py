"""Root Typer application, mounts sub-commands."""

from __future__ import annotations

import typer

app = typer.Typer(
    name="helm-monitor",
    help="Helm Monitor - Prometheus metrics for outdated Helm releases.",
    no_args_is_help=True,
)


def _register_commands() -> None:
    from helm_monitor.cli.commands.serve_cmd import app as serve_app
    from helm_monitor.cli.commands.check_cmd import app as check_app
    from helm_monitor.cli.commands.repos_cmd import app as repos_app

    app.add_typer(serve_app, name="serve", help="Run the metrics exporter")
    app.add_typer(check_app, name="check", help="Run one refresh and print the result")
    app.add_typer(repos_app, name="repos", help="Show configured chart repositories")


_register_commands()


def main() -> None:
    app()
