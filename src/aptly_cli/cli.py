"""
aptly-cli command line.

The root callback parses the global flags, builds the execution context once
and registers its shutdown to run when the command finishes, whether it
succeeded or failed. Commands fetch the context with get_context().

Commands:
- config show: print the resolved configuration
- context show: print dependency options and architectures
- db stats: print document counts per database collection
"""
from __future__ import annotations

import logging

import typer

from .cli_context import AptlyContext, get_context
from .flags import DEFAULT_MEM_INTERVAL, ContextFlags
from .operations import COMMAND_FAILED_KEY, run_and_exit
from .operations.printers import print_collection_stats, print_config, print_context_summary

logger = logging.getLogger(__name__)

app = typer.Typer(name="aptly-cli", help="Debian repository management tool", no_args_is_help=True)
config_app = typer.Typer(help="Configuration commands")
context_app = typer.Typer(help="Execution context commands")
db_app = typer.Typer(help="Database commands")
app.add_typer(config_app, name="config")
app.add_typer(context_app, name="context")
app.add_typer(db_app, name="db")


@app.callback()
def main_callback(
    ctx: typer.Context,
    config: str = typer.Option("", "--config", help="Location of configuration file (default locations are ~/.aptly.conf, /etc/aptly.conf)"),
    dep_follow_suggests: bool = typer.Option(False, "--dep-follow-suggests", help="When processing dependencies, follow Suggests"),
    dep_follow_recommends: bool = typer.Option(False, "--dep-follow-recommends", help="When processing dependencies, follow Recommends"),
    dep_follow_all_variants: bool = typer.Option(False, "--dep-follow-all-variants", help="When processing dependencies, follow a & b if dependency is 'a|b'"),
    dep_follow_source: bool = typer.Option(False, "--dep-follow-source", help="When processing dependencies, follow from binary to Source packages"),
    architectures: str = typer.Option("", "--architectures", help="List of architectures to consider during (comma-separated), default to all available"),
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logging"),
    cpuprofile: str = typer.Option("", "--cpuprofile", hidden=True, help="Write CPU profile to file (debug builds)"),
    memprofile: str = typer.Option("", "--memprofile", hidden=True, help="Write heap profile to file on exit (debug builds)"),
    memstats: str = typer.Option("", "--memstats", hidden=True, help="Write memory stats periodically to file (debug builds)"),
    meminterval: float = typer.Option(DEFAULT_MEM_INTERVAL, "--meminterval", hidden=True, help="Memory stats sampling interval in seconds"),
) -> None:
    """Debian repository management tool."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    def _init() -> AptlyContext:
        flags = ContextFlags(
            config=config,
            dep_follow_suggests=dep_follow_suggests,
            dep_follow_recommends=dep_follow_recommends,
            dep_follow_all_variants=dep_follow_all_variants,
            dep_follow_source=dep_follow_source,
            architectures=architectures,
            cpuprofile=cpuprofile,
            memprofile=memprofile,
            memstats=memstats,
            meminterval=meminterval,
        )
        return AptlyContext.create(flags)

    context = run_and_exit(_init)
    ctx.obj = context
    ctx.call_on_close(lambda: _shutdown_context(ctx, context))


def _shutdown_context(ctx: typer.Context, context: AptlyContext) -> None:
    """
    Release the context when the command finishes.

    A teardown failure after a successful command is reported like a command
    error. After a failed command the error has already been printed, so the
    teardown failure is only logged.
    """
    if not ctx.meta.get(COMMAND_FAILED_KEY):
        run_and_exit(context.shutdown)
        return
    try:
        context.shutdown()
    except Exception as e:
        logger.warning(f"Error shutting down after failed command: {e}")


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Show current configuration."""

    def _show() -> None:
        print_config(get_context(ctx).config())

    run_and_exit(_show)


@context_app.command("show")
def context_show(ctx: typer.Context) -> None:
    """Show dependency options and architectures in effect."""

    def _show() -> None:
        context = get_context(ctx)
        print_context_summary(context.dependency_options(), context.architectures_list())

    run_and_exit(_show)


@db_app.command("stats")
def db_stats(ctx: typer.Context) -> None:
    """Show number of objects in each database collection."""

    def _stats() -> None:
        print_collection_stats(get_context(ctx).collection_factory().stats())

    run_and_exit(_stats)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
