"""
Handler that accepts GET and nothing else.

Answers every GET with an empty 200 and everything else with an empty 405.
Useful as a liveness endpoint and as the simplest possible handler when
exercising the server by hand:

    python -m minihttpd --handler get-only
"""

from ..handler import RequestHandler
from ..http.request import HTTPRequest, Method
from ..http.response import HTTPResponse, HTTPStatus, empty_response, method_not_allowed


class GetOnlyHandler(RequestHandler):

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        if request.method == Method.GET:
            return empty_response(HTTPStatus.OK)
        return method_not_allowed("GET")
