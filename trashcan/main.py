# trashcan/main.py

from fastapi import FastAPI

from trashcan import __version__
from trashcan.config import get_settings
from trashcan.logging_config import configure_logging
from trashcan.routers import admin_trashcan_router

settings = get_settings()
configure_logging(json_format=settings.LOG_JSON, level=settings.LOG_LEVEL)

app = FastAPI(title="Trashcan Cleaner", version=__version__)

app.include_router(admin_trashcan_router)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

@app.get("/health")
def health() -> dict:
    return {"status": "ok", "service": "trashcan-cleaner"}
