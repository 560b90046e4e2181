"""liveconf CLI entry point."""

import asyncio
import json
import logging
from pathlib import Path

import click
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from liveconf import __version__
from liveconf.config import NodeConfig, ReDerivationFailed, load_config_file, merge_values, parse_node
from liveconf.config.loader import parse_args
from liveconf.config.tagging import hot_paths
from liveconf.reload import LiveConfigManager, TagInvariantViolation, UnsafeReloadRejected, check_tags
from liveconf.reload import diff as reload_diff

console = Console()

NODE_ARGS = {"ignore_unknown_options": True, "allow_extra_args": True}


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with rich handler."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, console=console)],
    )


def apply_log_level(old: NodeConfig, new: NodeConfig, changed: list[str]) -> None:
    """Config listener: follow ``log-level`` changes on the root logger."""
    if "log-level" in changed:
        logging.getLogger().setLevel(new.log_level)
        logging.getLogger(__name__).info(f"Log level changed from {old.log_level} to {new.log_level}")


def load_node_config(node_args: tuple[str, ...]) -> NodeConfig:
    """Parse node arguments, exiting with an error message on failure."""
    try:
        return parse_node(node_args)
    except ReDerivationFailed as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise SystemExit(1) from e


@click.group()
@click.version_option(__version__, prog_name="liveconf")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """liveconf - live-reloadable node configuration."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    setup_logging(verbose)


@cli.command(context_settings=NODE_ARGS)
@click.argument("node_args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def run(ctx: click.Context, node_args: tuple[str, ...]) -> None:
    """Run with live config, reloading on SIGUSR1 or config file changes.

    NODE_ARGS are node options such as --l2.chain-id 421613 --conf.file config.json.
    """
    config = load_node_config(node_args)
    if not ctx.obj.get("verbose"):
        logging.getLogger().setLevel(config.log_level)

    async def run_node() -> None:
        try:
            manager = LiveConfigManager(node_args, config)
        except TagInvariantViolation as e:
            console.print(f"[red]Inconsistent reload tags: {escape(str(e))}[/red]")
            raise SystemExit(1) from e

        manager.add_listener(apply_log_level)
        await manager.start()
        console.print(f"[bold green]Running with live config (liveconf v{__version__})[/bold green]")
        if config.conf.file:
            console.print(f"Config file: [cyan]{config.conf.file}[/cyan]")

        # Keep running until interrupted
        try:
            while True:
                await asyncio.sleep(1)
        finally:
            await manager.stop()

    try:
        asyncio.run(run_node())
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped[/yellow]")


@cli.command()
def check() -> None:
    """Check the reload tags of the node config and list reloadable options."""
    try:
        check_tags(NodeConfig)
    except TagInvariantViolation as e:
        console.print(f"[red]✗[/red] {escape(str(e))}")
        raise SystemExit(1) from e

    table = Table(title="Reloadable Options")
    table.add_column("Option", style="blue")
    table.add_column("Default", style="green")

    defaults = NodeConfig.default().model_dump(mode="json", by_alias=True)
    for path in hot_paths(NodeConfig):
        value = defaults
        for key in path.split("."):
            value = value[key]
        shown = "(section)" if isinstance(value, dict) else json.dumps(value)
        table.add_row(path, shown)

    console.print(table)
    console.print("[green]✓[/green] Reload tags are consistent")


@cli.command(context_settings=NODE_ARGS)
@click.argument("node_args", nargs=-1, type=click.UNPROCESSED)
def show(node_args: tuple[str, ...]) -> None:
    """Print the effective configuration as JSON."""
    config = load_node_config(node_args)
    print(config.model_dump_json(by_alias=True, indent=2))


@cli.command(context_settings=NODE_ARGS)
@click.argument("old_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("new_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("node_args", nargs=-1, type=click.UNPROCESSED)
def diff(old_file: Path, new_file: Path, node_args: tuple[str, ...]) -> None:
    """Check whether switching from OLD_FILE to NEW_FILE can be applied live.

    Both files are merged over NODE_ARGS the same way a reload does.
    """
    try:
        values = parse_args(node_args)
        old = NodeConfig.model_validate(merge_values(values, load_config_file(old_file)))
        new = NodeConfig.model_validate(merge_values(values, load_config_file(new_file)))
    except ReDerivationFailed as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise SystemExit(1) from e
    except ValidationError as e:
        console.print(f"[red]Invalid configuration: {escape(str(e))}[/red]")
        raise SystemExit(1) from e

    try:
        changed = reload_diff(old, new)
    except UnsafeReloadRejected as e:
        console.print(f"[red]✗[/red] {escape(str(e))}")
        console.print("[dim]A restart is required to apply this change[/dim]")
        raise SystemExit(1) from e

    if not changed:
        console.print("[green]✓[/green] No changes")
        return

    console.print("[green]✓[/green] Reload-safe. Changed options:")
    for path in changed:
        console.print(f"  [blue]{path}[/blue]")


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
