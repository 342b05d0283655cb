from __future__ import annotations
import logging
import os

DEFAULT_MAX_FRAMES = 1024
DEFAULT_LOG_LEVEL = "WARNING"


def _flag(var: str) -> bool:
    raw = os.environ.get(var, "")
    return raw.strip().lower() not in ("", "0", "false", "no", "off")


def get_max_frames() -> int:
    raw = os.environ.get("LOSP_MAX_FRAMES")
    if not raw:
        return DEFAULT_MAX_FRAMES
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"LOSP_MAX_FRAMES must be an integer, got {raw!r}") from None
    if value < 1:
        raise ValueError(f"LOSP_MAX_FRAMES must be positive, got {value}")
    return value


def disasm_enabled() -> bool:
    return _flag("LOSP_DISASM")


def get_log_level() -> int:
    name = os.environ.get("LOSP_LOG_LEVEL", DEFAULT_LOG_LEVEL).strip().upper()
    level = logging.getLevelName(name)
    # getLevelName maps unknown names to "Level <name>"
    return level if isinstance(level, int) else logging.WARNING
