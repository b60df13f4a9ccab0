from prometheus_fastapi_instrumentator import Instrumentator

from returntrack import create_app
from returntrack.core.config import get_settings
from returntrack.core.logging import configure_logging

settings = get_settings()
configure_logging(settings.LOG_LEVEL)
app = create_app(settings)
instrumentator = Instrumentator()
# Middleware must be registered before the app starts serving.
instrumentator.instrument(app).expose(app)


@app.get("/health")
async def health() -> dict[str, bool]:
    return {"ok": True}
