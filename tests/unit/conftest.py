from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict, List, Optional

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer


@dataclass
class SourceReply:
    status: int = 200
    body: str = "{}"
    limit: Optional[str] = "1000"
    remaining: Optional[str] = "100"
    reset: Optional[str] = "1000"
    delay: float = 0.0


@dataclass
class StubSource:
    """A local lookup source; replays its replies in order, repeating the last one."""

    replies: List[SourceReply]
    requests: List[Dict[str, str]] = field(default_factory=list)
    url: str = ""

    @property
    def calls(self) -> int:
        return len(self.requests)

    def next_reply(self) -> SourceReply:
        return self.replies[min(len(self.requests), len(self.replies)) - 1]


@asynccontextmanager
async def serve_source(*replies: dict) -> AsyncIterator[StubSource]:
    stub = StubSource(replies=[SourceReply(**reply) for reply in replies] or [SourceReply()])

    async def handler(request: web.Request) -> web.Response:
        stub.requests.append(dict(request.query))
        reply = stub.next_reply()
        if reply.delay:
            await asyncio.sleep(reply.delay)
        headers = {}
        if reply.limit is not None:
            headers["X-Rate-Limit-Limit"] = reply.limit
        if reply.remaining is not None:
            headers["X-Rate-Limit-Remaining"] = reply.remaining
        if reply.reset is not None:
            headers["X-Rate-Limit-Reset"] = reply.reset
        return web.Response(status=reply.status, text=reply.body, headers=headers, content_type="application/json")

    app = web.Application()
    app.router.add_get("/", handler)
    server = TestServer(app)
    await server.start_server()
    stub.url = str(server.make_url("/"))
    try:
        yield stub
    finally:
        await server.close()


@pytest.fixture
def source_server():
    return serve_source
