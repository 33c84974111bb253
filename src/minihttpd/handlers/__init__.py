"""
=============================================================================
HANDLERS
=============================================================================

Ready-made request handlers. The core never imports this package; the CLI
picks one and passes it to HTTPServer.

    FileHandler     serves files under a root directory (GET only)
    GetOnlyHandler  empty 200 for GET, 405 for everything else

Writing your own is a matter of subclassing RequestHandler, or passing any
function that takes an HTTPRequest and returns an HTTPResponse:

    def hello(request):
        return HTTPResponse(200, {"Content-Length": "5"}, b"hello")

    HTTPServer(config, hello).run()

=============================================================================
"""

from .static import FileHandler
from .get_only import GetOnlyHandler

__all__ = [
    "FileHandler",
    "GetOnlyHandler",
]
