from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(request: Request):
    if getattr(request.app.state, "tenant_store", None) is None:
        return JSONResponse(status_code=503, content={"status": "starting"})
    return {"status": "ok"}
