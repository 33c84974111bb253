"""
MIME type lookup by file extension.

Used by the file handler to fill in Content-Type. Text types get a charset
parameter:

    >>> content_type_for("notes.md")
    'text/markdown; charset=utf-8'
    >>> content_type_for("logo.png")
    'image/png'
    >>> content_type_for("blob.xyz", default="text/plain")
    'text/plain; charset=utf-8'
"""

from pathlib import Path
from typing import Optional, Union


MIME_TYPES = {
    # text
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",
    ".json": "application/json",
    ".xml": "application/xml",
    ".yaml": "text/yaml",
    ".yml": "text/yaml",
    # images
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",
    # fonts
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    # media
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    # documents and archives
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".gz": "application/gzip",
    ".tar": "application/x-tar",
    ".wasm": "application/wasm",
}

DEFAULT_MIME_TYPE = "application/octet-stream"

# application/* and image/* types that are still text on the wire
_TEXTUAL = {"application/json", "application/xml", "image/svg+xml"}


def mime_type_for(path: Union[str, Path], default: Optional[str] = None) -> str:
    """MIME type for ``path`` from its (case-insensitive) extension."""
    extension = Path(path).suffix.lower()
    return MIME_TYPES.get(extension, default or DEFAULT_MIME_TYPE)


def is_text_type(mime_type: str) -> bool:
    return mime_type.startswith("text/") or mime_type in _TEXTUAL


def content_type_for(
    path: Union[str, Path],
    default: Optional[str] = None,
    charset: str = "utf-8",
) -> str:
    """
    Full Content-Type header value for a file.

    Args:
        path: File path or name.
        default: MIME type for unknown extensions.
        charset: Charset appended to text types.
    """
    mime_type = mime_type_for(path, default)
    if is_text_type(mime_type):
        return f"{mime_type}; charset={charset}"
    return mime_type
