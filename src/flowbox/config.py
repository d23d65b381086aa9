"""Bad-value configuration for boxes.

Configuration lives at two scopes:

- the process-wide default, replaced only through define_default_config()
  and restore_default_config()
- a per-box override created by Box.with_configuration(), inherited by every
  box derived from it

Both scopes hold immutable BoxConfig snapshots. Changing the default swaps
the module-level reference to a new snapshot, so a pipeline that already
captured a configuration keeps seeing a consistent one.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .classify import is_error, is_nan
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_BAD_VALUES: tuple[Any, ...] = (None, is_error, is_nan)


class BoxConfig(BaseModel):
    """Immutable set of rules deciding which values short-circuit a pipeline."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    bad_values: tuple[Any, ...] = Field(
        default=DEFAULT_BAD_VALUES,
        description="Ordered literals and/or one-argument predicates marking bad values.",
    )
    max_unwrap_depth: int = Field(
        default=1000,
        gt=0,
        description="Maximum number of nested boxes or awaitables unwrapped in one go.",
    )

    def merge(self, partial: BoxConfig | Mapping[str, Any] | None = None, **changes: Any) -> BoxConfig:
        """Return a new configuration with the given fields replaced.

        Args:
            partial: A mapping of field changes or a whole BoxConfig
            **changes: Field changes, applied after partial

        Returns:
            A validated copy; self is never modified

        Raises:
            ConfigurationError: If a field is unknown or a value is invalid
        """
        updates = _as_changes(partial)
        updates.update(changes)
        try:
            return BoxConfig.model_validate({**dict(self), **updates})
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid box configuration: {exc}", updates) from exc


def _as_changes(partial: BoxConfig | Mapping[str, Any] | None) -> dict[str, Any]:
    if partial is None:
        return {}
    if isinstance(partial, BoxConfig):
        return dict(partial)
    if isinstance(partial, Mapping):
        return dict(partial)
    raise ConfigurationError(
        f"Expected a mapping or BoxConfig, got {type(partial).__name__}",
        {"partial": partial},
    )


DEFAULT_CONFIG = BoxConfig()

_default_config: BoxConfig = DEFAULT_CONFIG


def get_default_config() -> BoxConfig:
    """Get the current process-wide default configuration."""
    return _default_config


def define_default_config(partial: BoxConfig | Mapping[str, Any] | None = None, **changes: Any) -> BoxConfig:
    """Replace the process-wide default with a merged copy.

    Boxes constructed afterwards without an explicit configuration use the
    new default. Boxes that already exist keep the snapshot they captured.
    """
    global _default_config
    _default_config = _default_config.merge(partial, **changes)
    logger.debug("Defined default box configuration: %r", _default_config)
    return _default_config


def restore_default_config() -> BoxConfig:
    """Restore the original process-wide default configuration."""
    global _default_config
    _default_config = DEFAULT_CONFIG
    logger.debug("Restored default box configuration")
    return _default_config
