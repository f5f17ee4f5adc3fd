"""Console color theme.

Record outcomes (recycled, restored, skipped, dry-run) and message levels
each get a color. Users may override any of them in the ``[colors]``
table of ~/.config/recyclectl/theme.toml; a bad entry only loses that
one color.
"""

import logging
import re
import tomllib
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from rich.theme import Theme

from recyclectl.core.paths import get_theme_path

logger = logging.getLogger(__name__)

_HEX_DIGITS = re.compile(r"[0-9a-fA-F]+")

# Rich style name -> (color field, extra attributes)
_STYLES: dict[str, tuple[str, str]] = {
    "text": ("text", ""),
    "muted": ("muted", ""),
    "dim": ("muted", ""),
    "header": ("header", ""),
    "bold_header": ("header", "bold"),
    "border": ("border", ""),
    "info": ("info", ""),
    "success": ("success", ""),
    "warning": ("warning", ""),
    "error": ("error", "bold"),
    "recycled": ("recycled", ""),
    "restored": ("restored", ""),
    "skipped": ("skipped", ""),
    "dry_run": ("dry_run", "italic"),
}


class ThemeColors(BaseModel):
    """Hex colors (#RGB or #RRGGBB) used by the console output."""

    model_config = ConfigDict(extra="forbid")

    text: str = "#eeeeee"
    muted: str = "#8a949c"
    header: str = "#5fb3a1"
    border: str = "#3a5a70"
    info: str = "#2fb7d6"
    success: str = "#03b971"
    warning: str = "#e8a93a"
    error: str = "#f53263"
    recycled: str = "#a3d65c"
    restored: str = "#4a9fe0"
    skipped: str = "#d9c85a"
    dry_run: str = "#b07fd8"

    @field_validator("*", mode="before")
    @classmethod
    def _check_hex(cls, v: object) -> str:
        if not isinstance(v, str):
            msg = "color must be a string"
            raise ValueError(msg)
        color = v.strip()
        if not color.startswith("#"):
            msg = f"color must start with '#', got {color!r}"
            raise ValueError(msg)
        if len(color) not in (4, 7):
            msg = f"color must be #RGB or #RRGGBB, got {color!r}"
            raise ValueError(msg)
        if not _HEX_DIGITS.fullmatch(color[1:]):
            msg = f"invalid hex color {color!r}"
            raise ValueError(msg)
        return color


def _read_overrides(path: Path) -> dict[str, object]:
    """Read the ``[colors]`` table of a theme file. Problems yield ``{}``."""
    try:
        with open(path, "rb") as f:
            table = tomllib.load(f).get("colors", {})
    except FileNotFoundError:
        return {}
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning("Ignoring theme file %s: %s", path, e)
        return {}

    if not isinstance(table, dict):
        logger.warning("Ignoring theme file %s: [colors] is not a table", path)
        return {}
    return table


def load_theme(path: Path | None = None) -> ThemeColors:
    """Build theme colors from the defaults plus the user's overrides.

    Each override is validated on its own; unknown names and invalid
    values are logged and skipped.

    Args:
        path: Theme file. Defaults to the user theme path.
    """
    colors = ThemeColors()
    for name, value in _read_overrides(path or get_theme_path()).items():
        try:
            colors = ThemeColors.model_validate({**colors.model_dump(), name: value})
        except ValidationError as e:
            logger.warning("Ignoring theme color %r: %s", name, e.errors()[0]["msg"])
    return colors


def get_rich_theme(colors: ThemeColors | None = None) -> Theme:
    """Translate theme colors into the Rich styles the CLI prints with."""
    colors = colors or load_theme()
    return Theme(
        {
            style: f"{attrs} {getattr(colors, field)}".strip()
            for style, (field, attrs) in _STYLES.items()
        }
    )


@lru_cache(maxsize=1)
def get_theme() -> Theme:
    """Rich theme for the shared consoles, loaded once per process."""
    return get_rich_theme()
