"""Load API credentials and codegen settings from a shared ``.env`` file.

The pipeline is usually launched by an orchestrator that does not
forward the user's shell environment, so ``OPENROUTER_API_KEY`` and
friends are also read from ``~/.config/video-codegen-mcp/.env``.
Variables already present in the process environment win.
"""

from __future__ import annotations

import os
from pathlib import Path

DEFAULT_ENV_PATH = Path.home() / ".config" / "video-codegen-mcp" / ".env"


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        return value[1:-1]
    return value


def _needs_value(key: str, current: str | None) -> bool:
    """Return True when *current* should be replaced from the file.

    Blank values and unresolved self-references such as ``${OPENROUTER_API_KEY}``
    count as unset; orchestrators pass those through when a secret is missing.
    """
    if current is None:
        return True
    normalized = _strip_quotes(current.strip()).strip()
    if not normalized:
        return True
    if normalized in {f"${key}", f"${{{key}}}"}:
        return True
    return normalized.startswith(f"${{{key}:-") and normalized.endswith("}")


def parse_dotenv(path: Path) -> dict[str, str]:
    """Read ``KEY=VALUE`` pairs from *path*.

    Handles quoted values, an ``export`` prefix, blank lines and ``#``
    comments. Values are taken literally; nothing is expanded.
    """
    result: dict[str, str] = {}
    if not path.is_file():
        return result

    for raw_line in path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        line = line.removeprefix("export ").lstrip()
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key:
            continue
        result[key] = _strip_quotes(value.strip())
    return result


def load_dotenv(path: Path | None = None) -> dict[str, str]:
    """Copy unset variables from *path* into ``os.environ``.

    Args:
        path: ``.env`` file to read. Defaults to :data:`DEFAULT_ENV_PATH`.

    Returns:
        The variables that were injected.
    """
    parsed = parse_dotenv(path if path is not None else DEFAULT_ENV_PATH)
    injected: dict[str, str] = {}
    for key, value in parsed.items():
        if _needs_value(key, os.environ.get(key)):
            os.environ[key] = value
            injected[key] = value
    return injected
