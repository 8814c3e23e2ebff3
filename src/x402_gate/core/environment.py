"""
Layered settings sources for x402 clients.

Sources are applied in order of increasing precedence:

* the process environment (or an explicit ``base`` mapping);
* a ``.env`` file, which only fills keys that are still missing;
* explicit overrides, which always win.

:mod:`x402_gate.core.config` turns the merged mapping into typed settings.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, Mapping, MutableMapping, Optional, Tuple

__all__ = ["SettingsEnvironment", "build_environment", "load_env_file", "read_env_file"]

_QUOTES = ("'", '"')


def _strip_value(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] in _QUOTES and value[-1] == value[0]:
        return value[1:-1]
    # Unquoted values may carry a trailing `# comment`.
    marker = value.find(" #")
    if marker != -1:
        value = value[:marker].rstrip()
    return value


def _iter_assignments(text: str) -> Iterator[Tuple[str, str]]:
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if line.startswith("export "):
            line = line[len("export "):].lstrip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key:
            continue
        yield key, _strip_value(value)


def read_env_file(path: str | os.PathLike) -> Dict[str, str]:
    """Parse ``path`` as ``KEY=VALUE`` lines; a missing file yields nothing."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    return dict(_iter_assignments(text))


def load_env_file(
    path: str = ".env",
    *,
    environ: Optional[MutableMapping[str, str]] = None,
) -> Dict[str, str]:
    """
    Copy variables from ``path`` into ``environ`` (default :data:`os.environ`),
    keeping keys that are already set.
    """
    target: MutableMapping[str, str] = os.environ if environ is None else environ
    for key, value in read_env_file(path).items():
        target.setdefault(key, value)
    return dict(target)


@dataclass(frozen=True)
class SettingsEnvironment:
    variables: Mapping[str, str]
    env_file: Optional[str] = None

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self.variables.get(key, default)

    def __contains__(self, key: object) -> bool:
        return key in self.variables


def build_environment(
    *,
    env_file: Optional[str] = ".env",
    base: Optional[Mapping[str, str]] = None,
    overrides: Optional[Mapping[str, str]] = None,
) -> SettingsEnvironment:
    """
    Merge the settings sources; ``env_file=None`` skips the file entirely.
    """
    merged: Dict[str, str] = dict(os.environ if base is None else base)
    if env_file is not None:
        for key, value in read_env_file(env_file).items():
            merged.setdefault(key, value)
    merged.update(overrides or {})
    return SettingsEnvironment(variables=merged, env_file=env_file)
