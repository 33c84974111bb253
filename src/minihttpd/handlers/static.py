"""
=============================================================================
FILE HANDLER
=============================================================================

Serves files from one directory. The URL path maps straight onto the
filesystem below the root:

    root_dir = /srv/www

    GET /index.html        → /srv/www/index.html
    GET /css/site.css      → /srv/www/css/site.css
    GET /                  → /srv/www            (a directory: 404)
    GET /../etc/passwd     → /etc/passwd         (outside root: 404)

Only GET is supported; every other method gets 405.

=============================================================================
PATH TRAVERSAL
=============================================================================

The request path is attacker-controlled. After joining it onto the root we
resolve() the result (collapsing ".." and following symlinks) and require
it to still be inside the root:

    full_path = (root_dir / relative).resolve()
    full_path.relative_to(root_dir)     # ValueError if it escaped

Escapes are answered like a missing file, so the response does not reveal
whether the target exists.

=============================================================================
"""

import logging
from pathlib import Path
from typing import Union

from ..handler import RequestHandler
from ..http.mime_types import content_type_for
from ..http.request import HTTPRequest, Method
from ..http.response import (
    HTTPResponse,
    HTTPStatus,
    empty_response,
    internal_error,
    method_not_allowed,
    not_found,
)


logger = logging.getLogger(__name__)


class FileHandler(RequestHandler):
    """
    Handler that returns the bytes of files under ``root_dir``.

    Responses:
        200  file found; Content-Length and Content-Type set
        403  file exists but cannot be opened
        404  no such file, a directory, or a path outside the root
        405  any method other than GET
        500  any other error while reading

    The handler holds no mutable state, so one instance serves all workers.
    """

    def __init__(self, root_dir: Union[str, Path], default_content_type: str = "text/plain"):
        """
        Args:
            root_dir: Directory to serve. Must exist.
            default_content_type: MIME type for unknown file extensions.

        Raises:
            ValueError: If root_dir is not a directory.
        """
        self.root_dir = Path(root_dir).resolve()
        self.default_content_type = default_content_type

        if not self.root_dir.is_dir():
            raise ValueError(f"Root directory does not exist: {root_dir}")

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        if request.method != Method.GET:
            return method_not_allowed("GET")

        relative = request.path.lstrip("/")
        full_path = (self.root_dir / relative).resolve()

        try:
            full_path.relative_to(self.root_dir)
        except ValueError:
            logger.warning(f"Path traversal attempt: {request.path}")
            return not_found()

        logger.debug(f"Resolved {request.path} to {full_path}")

        try:
            if not full_path.is_file():
                return not_found()
        except OSError as e:
            # ENAMETOOLONG and friends: nothing servable at that name
            logger.debug(f"Cannot stat {full_path}: {e}")
            return not_found()

        return self._serve_file(full_path)

    def _serve_file(self, path: Path) -> HTTPResponse:
        try:
            content = path.read_bytes()
        except PermissionError:
            return empty_response(HTTPStatus.FORBIDDEN)
        except OSError as e:
            logger.error(f"Error reading file {path}: {e}")
            return internal_error()

        return HTTPResponse(
            status=HTTPStatus.OK,
            headers={
                "Content-Length": str(len(content)),
                "Content-Type": content_type_for(path, self.default_content_type),
            },
            body=content,
        )
