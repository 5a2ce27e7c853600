# configure logging early so library messages emitted during import are formatted
from .logging_config import get_logger

_early_logger = get_logger(__name__)

# IMPORTANT: Import composition but do NOT call anything that creates engines
# at module import time; composition.wire_app() runs in on_startup().
from . import composition

logger = get_logger(__name__)

from .wiring import create_app

app = create_app()


@app.on_event("startup")
async def on_startup():
    app.state.wiring = await composition.wire_app(app)


@app.on_event("shutdown")
async def on_shutdown():
    wired = getattr(app.state, "wiring", None)
    if wired is not None:
        await wired.teardown()
    logger.info("shutdown complete")


if __name__ == "__main__":
    import uvicorn

    from .config import settings

    uvicorn.run("lubri_entitlements.main:app", host=settings.server_host, port=settings.server_port)
