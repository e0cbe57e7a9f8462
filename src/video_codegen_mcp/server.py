"""Main FastMCP server — mounts the code-generation sub-server."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastmcp import FastMCP

from . import tracing
from .client import CodegenClient
from .store import reset_store
from .tools.codegen import codegen_server

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(server: FastMCP):
    """Startup/shutdown hook — tracing, shared clients and the job store."""
    tracing.setup()
    yield {}
    closed = await CodegenClient.close_all()
    reset_store()
    tracing.shutdown()
    logger.info("Lifespan shutdown: closed %d client(s)", closed)


app = FastMCP(
    "video-codegen",
    instructions=(
        "Generates Remotion composition code from video scripts — validated, "
        "retried with feedback, with a template fallback so every job gets code."
    ),
    lifespan=_lifespan,
)

app.mount(codegen_server)


def main() -> None:
    """Entry-point for ``video-codegen-mcp`` console script."""
    app.run()


if __name__ == "__main__":
    main()
