from prometheus_fastapi_instrumentator import Instrumentator

from journal import create_app
from journal.core.config import settings
from journal.core.logging import configure_logging

configure_logging(settings.LOG_LEVEL)
app = create_app()


@app.get("/health")
async def health() -> dict[str, bool]:
    return {"ok": True}


if settings.METRICS_ENABLED:
    # Middleware must be in place before the app starts serving.
    Instrumentator().instrument(app).expose(app)


def run() -> None:
    import uvicorn

    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_config=None)


if __name__ == "__main__":
    run()
