import httpx
from fastapi import Request


async def get_http_client(request: Request) -> httpx.AsyncClient:
    # Shared client, opened and closed by the app lifespan
    return request.app.state.http_client
