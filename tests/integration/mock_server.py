"""Mock FastAPI server for fluent_request integration tests.

Echoes what it receives so tests can check what the client actually sent.
It can be run standalone or spawned as a subprocess by pytest fixtures.

Usage:
    python -m tests.integration.mock_server --port 9999
"""

from __future__ import annotations

import argparse
import asyncio

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.responses import PlainTextResponse

app = FastAPI(title="fluent_request mock server")

ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.api_route("/inspect", methods=ALL_METHODS)
async def inspect(request: Request) -> dict:
    """Describe the request as JSON."""
    return {
        "method": request.method,
        "path": request.url.path,
        "query": [[k, v] for k, v in request.query_params.multi_items()],
        "headers": [[k, v] for k, v in request.headers.items()],
    }


@app.api_route("/echo", methods=ALL_METHODS)
async def echo(request: Request) -> Response:
    """Return the request body unchanged."""
    body = await request.body()
    return Response(content=body, media_type="application/octet-stream")


@app.get("/status/{code}")
async def status(code: int, message: str = "") -> Response:
    """Respond with the given status code and message as the body."""
    return PlainTextResponse(message, status_code=code)


@app.get("/labels/{label}")
async def label(label: str, delay: float = 0.05) -> Response:
    """Respond with the label after a short delay."""
    await asyncio.sleep(delay)
    return PlainTextResponse(label)


def main():
    parser = argparse.ArgumentParser(description="Mock server for fluent_request tests")
    parser.add_argument("--port", type=int, default=9999, help="Port to listen on")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    args = parser.parse_args()

    uvicorn.run(app, host=args.host, port=args.port, log_level="warning")


if __name__ == "__main__":
    main()
