"""Build a NodeConfig from command-line arguments and a JSON config file.

Each leaf of the schema becomes a ``--dotted.kebab-key`` option, e.g.
``--node.sequencer.max-block-speed 300ms``. Values from the file named by
``--conf.file`` take precedence over the ones given as arguments.

``parse_node`` is called at startup and again on every reload with the
original argument list, so it always sees the current file contents.
"""

import json
import logging
import types
from collections.abc import Sequence
from datetime import timedelta
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal, Union, get_args, get_origin

import click
from pydantic import BaseModel, ValidationError

from liveconf.config.durations import parse_duration
from liveconf.config.schema import NodeConfig
from liveconf.config.tagging import iter_fields, join_path

logger = logging.getLogger(__name__)


class ReDerivationFailed(Exception):
    """Raised when a configuration cannot be built from arguments and file."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Failed to derive configuration: {reason}")


class DurationType(click.ParamType):
    """Click parameter type for duration strings."""

    name = "duration"

    def convert(self, value: Any, param: click.Parameter | None, ctx: click.Context | None) -> timedelta:
        try:
            return parse_duration(value)
        except ValueError as e:
            self.fail(str(e), param, ctx)


DURATION = DurationType()


def _param_type(annotation: Any) -> click.ParamType | None:
    """Map a leaf annotation to a click type. None means a plain string."""
    if get_origin(annotation) is Literal:
        return click.Choice([str(arg) for arg in get_args(annotation)])
    if get_origin(annotation) in (Union, types.UnionType):
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(args) == 1:
            return _param_type(args[0])
        return None
    if annotation is bool:
        return click.BOOL
    if annotation is int:
        return click.INT
    if annotation is float:
        return click.FLOAT
    if annotation is timedelta:
        return DURATION
    return None


def _build_options(
    model: type[BaseModel],
    prefix: str,
    names: tuple[str, ...],
    options: dict[str, tuple[str, ...]],
) -> list[click.Option]:
    params: list[click.Option] = []
    for field in iter_fields(model):
        key = join_path(prefix, field.key)
        path = (*names, field.key)
        if field.nested is not None:
            params.extend(_build_options(field.nested, key, path, options))
            continue

        param_name = "__".join(path).replace("-", "_")
        options[param_name] = path
        param_type = _param_type(field.info.annotation)
        if param_type is click.BOOL:
            # "--flag" and "--flag=false" are both accepted
            params.append(
                click.Option(
                    [f"--{key}", param_name],
                    type=click.BOOL,
                    is_flag=False,
                    flag_value=True,
                    default=None,
                    help=field.info.description,
                )
            )
        else:
            params.append(
                click.Option(
                    [f"--{key}", param_name],
                    type=param_type,
                    default=None,
                    help=field.info.description,
                )
            )
    return params


@lru_cache(maxsize=None)
def node_command() -> tuple[click.Command, dict[str, tuple[str, ...]]]:
    """Build the argument parser for NodeConfig.

    Returns:
        The click command and a map of parameter name to key path.
    """
    options: dict[str, tuple[str, ...]] = {}
    params = _build_options(NodeConfig, "", (), options)
    command = click.Command("node", params=params, add_help_option=False)
    return command, options


def parse_args(args: Sequence[str]) -> dict[str, Any]:
    """Parse arguments into a nested dict holding only the options given.

    Raises:
        ReDerivationFailed: On unknown options or bad values.
    """
    command, options = node_command()
    try:
        ctx = command.make_context("node", list(args))
    except click.ClickException as e:
        raise ReDerivationFailed(e.format_message()) from e

    values: dict[str, Any] = {}
    for name, value in ctx.params.items():
        if value is None:
            continue
        *parents, leaf = options[name]
        target = values
        for key in parents:
            target = target.setdefault(key, {})
        target[leaf] = value
    return values


def load_config_file(path: str | Path) -> dict[str, Any]:
    """Read a JSON config file. The top level must be an object.

    Raises:
        ReDerivationFailed: If the file cannot be read or decoded.
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text())
    except OSError as e:
        raise ReDerivationFailed(f"cannot read {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ReDerivationFailed(f"invalid JSON in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ReDerivationFailed(f"{path} must contain a JSON object")
    return data


def merge_values(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge two nested dicts; ``override`` wins. Inputs are not modified."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_values(merged[key], value)
        else:
            merged[key] = value
    return merged


def _config_file(values: dict[str, Any]) -> str | None:
    conf = values.get("conf")
    if isinstance(conf, dict):
        return conf.get("file")
    return None


def parse_node(args: Sequence[str]) -> NodeConfig:
    """Derive a NodeConfig from arguments merged with the current config file.

    Args:
        args: Command-line arguments, without the program name.

    Returns:
        A validated configuration snapshot.

    Raises:
        ReDerivationFailed: If arguments, file or resulting values are invalid.
    """
    values = parse_args(args)

    config_file = _config_file(values)
    if config_file:
        logger.debug(f"Loading config file {config_file}")
        values = merge_values(values, load_config_file(config_file))

    try:
        return NodeConfig.model_validate(values)
    except ValidationError as e:
        raise ReDerivationFailed(str(e)) from e
