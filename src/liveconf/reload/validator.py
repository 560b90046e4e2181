"""Reload-safety checks over configuration trees.

Two checks are provided:

- ``check_tags``: structural, run once against a schema. Every hot field
  must sit under hot ancestors only.
- ``diff``: compares a current snapshot with a candidate. Leaves reachable
  only through hot fields may change; anything else must be equal.

A hot record may still contain cold leaves. Those are enforced by ``diff``,
not by ``check_tags``.
"""

import logging

from pydantic import BaseModel

from liveconf.config.tagging import iter_fields, join_path

logger = logging.getLogger(__name__)


class TagInvariantViolation(Exception):
    """Raised when a schema marks a field hot beneath a cold ancestor.

    Also raised when two trees handed to ``diff`` do not share a schema.
    """

    def __init__(self, path: str, parent: str | None = None, message: str | None = None):
        self.path = path
        self.parent = parent
        if message is None:
            message = f"Option {path} is reloadable but {parent or 'its parent'} is not"
        super().__init__(message)


class UnsafeReloadRejected(Exception):
    """Raised when a candidate config changes a field that requires a restart."""

    def __init__(self, path: str, old: object = None, new: object = None):
        self.path = path
        self.old = old
        self.new = new
        # Values stay off the message; some fields hold secrets.
        super().__init__(f"Illegal change to {path}: option is not reloadable")


class ReloadValidator:
    """Decides whether a configuration transition is reload-safe."""

    def check_tags(self, tree: BaseModel | type[BaseModel]) -> None:
        """Verify the hot/cold tagging of a schema.

        Args:
            tree: A configuration record instance or its type.

        Raises:
            TagInvariantViolation: On the first hot field with a cold ancestor.
        """
        model = tree if isinstance(tree, type) else type(tree)
        self._check(model, True, "", {(model, True)})
        logger.debug(f"Reload tags of {model.__name__} are consistent")

    def _check(
        self,
        model: type[BaseModel],
        parent_hot: bool,
        path: str,
        seen: set[tuple[type[BaseModel], bool]],
    ) -> None:
        # each (record type, parent flag) pair is checked once
        for field in iter_fields(model):
            field_path = join_path(path, field.key)
            if field.is_hot and not parent_hot:
                raise TagInvariantViolation(field_path, path)
            if field.nested is None:
                continue
            key = (field.nested, field.is_hot)
            if key not in seen:
                seen.add(key)
                self._check(field.nested, field.is_hot, field_path, seen)

    def diff(self, old: BaseModel, candidate: BaseModel) -> list[str]:
        """Compare two snapshots of the same schema.

        Args:
            old: The currently active snapshot.
            candidate: The proposed replacement.

        Returns:
            Dotted paths of the hot fields that changed. Empty when the two
            snapshots are equal.

        Raises:
            UnsafeReloadRejected: If a cold-reachable leaf differs.
            TagInvariantViolation: If the snapshots have different schemas.
        """
        changed: list[str] = []
        self._diff(old, candidate, True, "", changed)
        return changed

    def _diff(
        self,
        old: BaseModel,
        new: BaseModel,
        parent_hot: bool,
        path: str,
        changed: list[str],
    ) -> None:
        if type(old) is not type(new):
            raise TagInvariantViolation(
                path or type(old).__name__,
                message=(
                    f"Cannot compare {type(old).__name__} with {type(new).__name__}"
                    f" at {path or 'root'}"
                ),
            )

        for field in iter_fields(old):
            field_path = join_path(path, field.key)
            hot = parent_hot and field.is_hot
            before = getattr(old, field.name)
            after = getattr(new, field.name)

            if isinstance(before, BaseModel) and isinstance(after, BaseModel):
                self._diff(before, after, hot, field_path, changed)
                continue

            if before == after:
                continue
            if not hot:
                raise UnsafeReloadRejected(field_path, before, after)
            changed.append(field_path)


# Shared instance; the validator holds no state.
default_validator = ReloadValidator()


def check_tags(tree: BaseModel | type[BaseModel]) -> None:
    default_validator.check_tags(tree)


def diff(old: BaseModel, candidate: BaseModel) -> list[str]:
    return default_validator.diff(old, candidate)
