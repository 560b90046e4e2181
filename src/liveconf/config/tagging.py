"""Hot/cold reload tagging for configuration models.

Every field of a configuration model has a reload class:

- hot: may be swapped while the process runs
- cold: changing it requires a restart (the default)

Fields are tagged hot with ``hot()`` in place of ``pydantic.Field``:

    class SequencerConfig(ReloadableNode):
        enable: bool = False
        max_block_speed: Duration = hot(default=timedelta(milliseconds=250))

A hot field is only reloadable if every ancestor field is hot as well;
``ReloadValidator.check_tags`` enforces that.
"""

import types
from collections.abc import Iterator
from enum import Enum
from typing import Any, NamedTuple, Union, get_args, get_origin

from pydantic import BaseModel, ConfigDict, Field
from pydantic.fields import FieldInfo
from pydantic_core import PydanticUndefined

RELOAD_KEY = "reload"


class ReloadClass(str, Enum):
    """Whether a field may change at runtime."""

    HOT = "hot"
    COLD = "cold"


def to_key(name: str) -> str:
    """Convert a Python field name to its external key (``max_block_speed`` -> ``max-block-speed``)."""
    return name.replace("_", "-")


class ReloadableNode(BaseModel):
    """Base class for configuration records.

    Instances are immutable snapshots. External keys (flags and the JSON
    config file) are the kebab-case field names.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_key,
        populate_by_name=True,
    )


def hot(default: Any = PydanticUndefined, **kwargs: Any) -> Any:
    """Declare a field as hot-reloadable. Takes the same arguments as ``Field``."""
    extra = dict(kwargs.pop("json_schema_extra", None) or {})
    extra[RELOAD_KEY] = ReloadClass.HOT.value
    return Field(default, json_schema_extra=extra, **kwargs)


def reload_class(info: FieldInfo) -> ReloadClass:
    """Get the declared reload class of a field; untagged fields are cold."""
    extra = info.json_schema_extra
    if isinstance(extra, dict) and extra.get(RELOAD_KEY) == ReloadClass.HOT.value:
        return ReloadClass.HOT
    return ReloadClass.COLD


def nested_model(annotation: Any) -> type[BaseModel] | None:
    """Return the record type a field holds, or None for leaf fields.

    ``Optional[Record]`` counts as a record field.
    """
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return annotation
    if get_origin(annotation) in (Union, types.UnionType):
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(args) == 1:
            return nested_model(args[0])
    return None


class ConfigField(NamedTuple):
    """One field of a configuration record."""

    name: str
    key: str
    info: FieldInfo
    nested: type[BaseModel] | None

    @property
    def is_hot(self) -> bool:
        return reload_class(self.info) is ReloadClass.HOT


def iter_fields(node: BaseModel | type[BaseModel]) -> Iterator[ConfigField]:
    """Iterate the declared fields of a record instance or type, in declaration order."""
    model = node if isinstance(node, type) else type(node)
    for name, info in model.model_fields.items():
        yield ConfigField(
            name=name,
            key=info.alias or name,
            info=info,
            nested=nested_model(info.annotation),
        )


def join_path(parent: str, key: str) -> str:
    return f"{parent}.{key}" if parent else key


def hot_paths(node: BaseModel | type[BaseModel], prefix: str = "") -> list[str]:
    """List the dotted paths of every field tagged hot."""
    paths: list[str] = []
    for field in iter_fields(node):
        path = join_path(prefix, field.key)
        if field.is_hot:
            paths.append(path)
        if field.nested is not None:
            paths.extend(hot_paths(field.nested, path))
    return paths


def evolve(snapshot: BaseModel, updates: dict[str, Any]) -> BaseModel:
    """Return a copy of ``snapshot`` with dotted paths replaced.

    Paths may use external keys or Python names for each segment
    (``node.sequencer.max-block-speed``). Untouched subtrees are shared with
    the original snapshot, which is left unchanged. Every rebuilt record is
    validated against its schema.

    Raises:
        KeyError: If a path does not name a field.
        ValidationError: If a new value does not fit its field.
    """
    fields: dict[str, ConfigField] = {}
    for field in iter_fields(snapshot):
        fields[field.key] = field
        fields[field.name] = field

    direct: dict[str, Any] = {}
    nested: dict[str, dict[str, Any]] = {}
    for path, value in updates.items():
        head, _, rest = path.partition(".")
        field = fields.get(head)
        if field is None:
            raise KeyError(path)
        if rest:
            nested.setdefault(field.name, {})[rest] = value
        else:
            direct[field.name] = value

    for name, sub_updates in nested.items():
        child = direct.get(name, getattr(snapshot, name))
        if not isinstance(child, BaseModel):
            raise KeyError(f"{name}.{next(iter(sub_updates))}")
        direct[name] = evolve(child, sub_updates)

    model = type(snapshot)
    values = {name: getattr(snapshot, name) for name in model.model_fields}
    values.update(direct)
    return model.model_validate(values)
