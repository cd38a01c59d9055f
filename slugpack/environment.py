"""Build environment handling.

This module handles:
- The Environment map every stage and subprocess of a build shares
- Composing pack defaults into it at pipeline start
- Scoped removal of a variable around sensitive steps

Stages never read or write ``os.environ`` directly; the environment is
snapshotted once when the build context is created and threaded through.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator, Mapping, MutableMapping
from contextlib import contextmanager

logger = logging.getLogger(__name__)


class Environment(MutableMapping[str, str]):
    """Mutable string map used as the environment of a build.

    Args:
        initial: Starting variables. Defaults to a copy of ``os.environ``.
    """

    def __init__(self, initial: Mapping[str, str] | None = None) -> None:
        self._vars: dict[str, str] = dict(os.environ if initial is None else initial)

    def __getitem__(self, key: str) -> str:
        return self._vars[key]

    def __setitem__(self, key: str, value: str) -> None:
        self._vars[key] = str(value)

    def __delitem__(self, key: str) -> None:
        del self._vars[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._vars)

    def __len__(self) -> int:
        return len(self._vars)

    def __repr__(self) -> str:
        return f"Environment({len(self._vars)} vars)"

    def set_default(self, key: str, value: str) -> bool:
        """Set ``key`` only if it is unset.

        Returns:
            True if the value was written.
        """
        if key in self._vars:
            return False
        self._vars[key] = value
        return True

    def overlay(self, overrides: Mapping[str, str]) -> dict[str, str]:
        """Return a plain dict of this environment with overrides applied.

        The environment itself is not modified.
        """
        merged = dict(self._vars)
        merged.update(overrides)
        return merged

    def prepend_path(self, key: str, entry: str) -> str:
        """Return ``entry`` prefixed onto the current value of a search path."""
        current = self._vars.get(key)
        return f"{entry}:{current}" if current else entry

    def as_dict(self) -> dict[str, str]:
        return dict(self._vars)

    @contextmanager
    def without(self, key: str) -> Iterator[None]:
        """Remove ``key`` for the duration of the block, then restore it.

        The previous value is restored even if the block raises. A key that
        was unset before stays unset.
        """
        saved = self._vars.pop(key, None)
        if saved is not None:
            logger.debug("Cleared %s for scoped block", key)
        try:
            yield
        finally:
            if saved is None:
                self._vars.pop(key, None)
            else:
                self._vars[key] = saved


def compose_environment(
    env: Environment,
    defaults: Mapping[str, str],
    gem_home: str,
    default_path: str,
    runtime_bin_dir: str | None = None,
) -> None:
    """Apply pack defaults to the build environment.

    Defaults only fill unset variables. ``GEM_HOME`` and ``PATH`` are always
    overwritten; ``PATH`` gets the runtime bin directory in front when a
    runtime version was requested.

    Args:
        env: Build environment to mutate.
        defaults: Default config vars of the pack.
        gem_home: Value for GEM_HOME.
        default_path: The pack's default search path.
        runtime_bin_dir: Bin directory of the build-time runtime, if any.
    """
    for key, value in defaults.items():
        if env.set_default(key, value):
            logger.debug("Defaulted %s=%s", key, value)

    env["GEM_HOME"] = gem_home
    env["PATH"] = (f"{runtime_bin_dir}:" if runtime_bin_dir else "") + default_path
    logger.debug("PATH=%s", env["PATH"])


__all__ = ["Environment", "compose_environment"]
