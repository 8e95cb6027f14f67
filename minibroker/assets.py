"""Static stylesheet serving and the documentation root page."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

CSS_FILENAME_PATTERN = re.compile(r"[a-z\-]+\.css")
DEFAULT_CSS_ROOT = Path("assets") / "css"


@dataclass
class HttpReply:
    """A status code, body and headers to send back to a client."""

    status: int
    body: str
    headers: dict[str, str] = field(default_factory=dict)


def is_css_filename(name: str) -> bool:
    """Return True if name is a safe stylesheet file name such as ``log-detail.css``."""
    return CSS_FILENAME_PATTERN.fullmatch(name) is not None


def serve_css(name: str, root: str | Path = DEFAULT_CSS_ROOT) -> HttpReply:
    """Reply with the named stylesheet from root, or a 400 or 404 reply."""
    if not is_css_filename(name):
        return HttpReply(400, "Bad request")
    try:
        content = (Path(root) / name).read_text(encoding="utf-8")
    except OSError:
        return HttpReply(404, "Not found")
    return HttpReply(
        200,
        content,
        {
            "Content-Type": "text/css",
            "Cache-Control": "max-age=31536000, immutable",
        },
    )


def docs_root() -> HttpReply:
    """Reply with the documentation root page."""
    return HttpReply(200, "Root", {"Content-Type": "text/html; charset=utf-8"})