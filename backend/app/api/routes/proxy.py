from typing import Any

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response

from ...dependencies import get_http_client
from ...services.proxy import forward_openrouter, forward_places_search

router = APIRouter()

PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def _cors_headers(allow_headers: str) -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": "POST, OPTIONS",
        "Access-Control-Allow-Headers": allow_headers,
    }


async def _read_body(request: Request) -> Any:
    raw = await request.body()
    if not raw:
        return {}
    return await request.json()


async def _precheck(request: Request, cors: dict[str, str]) -> Response | None:
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=cors)
    if request.method != "POST":
        return JSONResponse(status_code=405, content={"error": "Method Not Allowed"}, headers=cors)
    return None


@router.api_route("/openrouter", methods=PROXY_METHODS, summary="Forward a chat completion request to OpenRouter")
async def openrouter_proxy(request: Request, client: httpx.AsyncClient = Depends(get_http_client)) -> Response:
    cors = _cors_headers("Content-Type, Authorization")
    early = await _precheck(request, cors)
    if early is not None:
        return early
    try:
        body = await _read_body(request)
    except ValueError:
        return JSONResponse(status_code=400, content={"error": "Invalid JSON body."}, headers=cors)

    status_code, content = await forward_openrouter(client, body, request.headers.get("cache-control"))
    return JSONResponse(status_code=status_code, content=content, headers=cors)


@router.api_route("/places-search", methods=PROXY_METHODS, summary="Forward a text search to Google Places")
async def places_search_proxy(request: Request, client: httpx.AsyncClient = Depends(get_http_client)) -> Response:
    cors = _cors_headers("Content-Type")
    early = await _precheck(request, cors)
    if early is not None:
        return early
    try:
        body = await _read_body(request)
    except ValueError:
        return JSONResponse(status_code=400, content={"error": "Invalid JSON body."}, headers=cors)

    status_code, content = await forward_places_search(client, body, request.headers.get("x-goog-fieldmask"))
    return JSONResponse(status_code=status_code, content=content, headers=cors)
