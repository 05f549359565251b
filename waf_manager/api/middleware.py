"""
CORS middleware for browser clients of the dashboard.
"""
from fastapi import Response
from fastapi.datastructures import Headers
from fastapi.middleware.cors import CORSMiddleware


class EmptyPreflightCORSMiddleware(CORSMiddleware):
    """CORSMiddleware whose preflight answers carry no body."""

    def preflight_response(self, request_headers: Headers) -> Response:
        response = super().preflight_response(request_headers)
        headers = {
            key: value for key, value in response.headers.items()
            if key not in ("content-length", "content-type")
        }
        return Response(status_code=response.status_code, headers=headers)
