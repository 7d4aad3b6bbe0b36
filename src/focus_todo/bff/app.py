"""FastAPI backend-for-frontend.

Checks the caller's bearer token, then forwards ``/api/...`` requests to the
resource server unchanged and relays the upstream answer.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import Depends, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import get_config
from ..server.auth import get_current_user_id


logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]
FORWARDED_HEADERS = ("authorization", "content-type", "accept")


def create_app(client: Optional[httpx.AsyncClient] = None) -> FastAPI:
    """Build the proxy application.

    Args:
        client: Upstream client to use instead of one built from the config
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        settings = get_config().bff
        owns_client = client is None
        app.state.client = client or httpx.AsyncClient(
            base_url=settings.resource_server_url,
            timeout=settings.timeout,
        )
        logger.info(f"Starting focus-todo BFF in front of {settings.resource_server_url}")

        yield

        if owns_client:
            await app.state.client.aclose()
        logger.info("Shutting down focus-todo BFF")

    app = FastAPI(
        title="focus-todo BFF",
        description="Authenticated proxy for the focus-todo resource server",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_config().cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "service": "focus-todo-bff", "version": __version__}

    @app.api_route("/api/{path:path}", methods=PROXY_METHODS)
    async def proxy(path: str, request: Request, user_id: str = Depends(get_current_user_id)):
        """Forward one request to the resource server."""
        upstream: httpx.AsyncClient = request.app.state.client
        headers = {k: v for k, v in request.headers.items() if k.lower() in FORWARDED_HEADERS}

        try:
            response = await upstream.request(
                request.method,
                f"/api/{path}",
                params=list(request.query_params.multi_items()),
                content=await request.body(),
                headers=headers,
            )
        except httpx.TimeoutException:
            logger.error(f"Upstream timed out for {request.method} /api/{path} (user {user_id})")
            return JSONResponse(
                status_code=502,
                content={"detail": "Resource server timed out", "type": "bad_gateway"},
            )
        except httpx.RequestError as e:
            logger.error(f"Upstream request failed for {request.method} /api/{path}: {e}")
            return JSONResponse(
                status_code=502,
                content={"detail": "Resource server unavailable", "type": "bad_gateway"},
            )

        logger.debug(f"Proxied {request.method} /api/{path} for user {user_id}: {response.status_code}")
        return Response(
            content=response.content,
            status_code=response.status_code,
            media_type=response.headers.get("content-type", "application/json"),
        )

    return app


app = create_app()
