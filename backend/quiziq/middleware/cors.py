"""
CORS with two policies: the collector is open to every site, the
dashboard API only to the configured origins.
"""
from typing import Sequence

from starlette.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp, Receive, Scope, Send

COLLECT_PATH = "/api/collect"


class PathScopedCORSMiddleware:
    """
    Pure ASGI dispatcher between two ``CORSMiddleware`` instances.

    The collector accepts cross-origin POSTs from anywhere without
    credentials; its authorization happens inside the handler.
    """

    def __init__(
        self,
        app: ASGIApp,
        allowed_origins: Sequence[str],
        public_paths: Sequence[str] = (COLLECT_PATH,),
    ) -> None:
        self.app = app
        self.public_paths = tuple(public_paths)
        self.public = CORSMiddleware(
            app,
            allow_origins=["*"],
            allow_credentials=False,
            allow_methods=["POST", "OPTIONS"],
            allow_headers=["Content-Type"],
            max_age=86400,
        )
        self.private = CORSMiddleware(
            app,
            allow_origins=list(allowed_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=["X-Request-ID", "Content-Disposition"],
        )

    def _is_public(self, path: str) -> bool:
        return any(path == p or path.startswith(p + "/") for p in self.public_paths)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        if self._is_public(scope.get("path", "")):
            await self.public(scope, receive, send)
        else:
            await self.private(scope, receive, send)
