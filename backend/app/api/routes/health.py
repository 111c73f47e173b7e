from fastapi import APIRouter

router = APIRouter()


@router.get("/health", summary="Proxy health check")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}
