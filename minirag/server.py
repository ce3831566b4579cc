from __future__ import annotations

import logging
from typing import Optional

from minirag.config.settings import AppConfig
from minirag.service import RAGService, build_service

LOG = logging.getLogger("server")

try:
    import anyio
    from mcp.server.fastmcp import FastMCP
except ImportError as exc:  # pragma: no cover - dependency is optional at import time
    FastMCP = None
    _IMPORT_ERROR = exc
else:
    _IMPORT_ERROR = None


def _require_server() -> "FastMCP":
    if FastMCP is None:
        raise SystemExit(
            "The mcp package is required to run the server. "
            "Install it with `pip install 'minirag[server]'`."
        ) from _IMPORT_ERROR
    return FastMCP("minirag")


def _json_payload(model) -> dict:
    return model.model_dump(mode="json")


def build_server(service: Optional[RAGService] = None) -> "FastMCP":
    server = _require_server()
    rag = service or build_service()

    # Service calls block on outbound HTTP; each tool call gets a worker thread
    # so the event loop keeps serving other requests.

    @server.tool(
            description="Split a document into overlapping chunks, embed them, and add them to the store."
    )
    async def ingest(text: str) -> dict:
        return _json_payload(await anyio.to_thread.run_sync(rag.ingest, text))

    @server.tool(
            description="Answer a question from the most similar stored chunks."
    )
    async def ask(query: str, topK: int = 3) -> dict:
        return _json_payload(await anyio.to_thread.run_sync(rag.ask, query, topK))

    @server.tool(
            description="Report the number of stored chunks and the peak process memory in MB."
    )
    async def stats() -> dict:
        return _json_payload(await anyio.to_thread.run_sync(rag.stats))

    return server


def main() -> None:
    config = AppConfig.from_env()
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    server = build_server(build_service(config))
    LOG.info("Starting minirag MCP server")
    server.run()


if __name__ == "__main__":
    main()
