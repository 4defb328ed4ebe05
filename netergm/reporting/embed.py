"""Inline figures as data URIs so report.html has no external files."""

import base64
from pathlib import Path

_MIME_BY_SUFFIX = {".png": "image/png", ".svg": "image/svg+xml"}


def embed_figure(fig_path: Path | str) -> str:
    """``data:`` URI for a PNG or SVG figure; "" if missing or another type."""
    path = Path(fig_path)
    mime = _MIME_BY_SUFFIX.get(path.suffix.lower())
    if mime is None or not path.is_file():
        return ""
    payload = base64.b64encode(path.read_bytes()).decode("ascii")
    return f"data:{mime};base64,{payload}"
