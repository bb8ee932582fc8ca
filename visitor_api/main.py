# visitor_api/main.py
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from .config import get_settings
from .database import get_db, init_db, unit_of_work
from .errors import VisitorServiceError
from .routers import badges, hosts, visitors

logger = logging.getLogger(__name__)

# =================================================================
# 1. SETUP & LIFESPAN
# =================================================================

def configure_logging():
    logging.basicConfig(
        level=get_settings().log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    init_db()
    logger.info("Visitor service starting")
    yield
    logger.info("Visitor service shutting down")


app = FastAPI(
    title="Visitor & Badge Service",
    description="Visitor registration, check-in/check-out and badge inventory",
    version="1.0.0",
    lifespan=lifespan,
)

# =================================================================
# 2. ERROR MAPPING
# =================================================================

@app.exception_handler(VisitorServiceError)
async def visitor_service_error_handler(request: Request, exc: VisitorServiceError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_detail()})

# =================================================================
# 3. ROUTERS
# =================================================================

app.include_router(visitors.router)
app.include_router(badges.router)
app.include_router(hosts.router)


@app.get("/", tags=["General"])
def root():
    return {"message": "Visitor service running. See /docs."}


@app.get("/health", tags=["General"])
def health(db: Session = Depends(get_db)):
    # a failing query surfaces as TransientError -> 503
    with unit_of_work(db):
        db.execute(text("SELECT 1"))
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database": "connected",
    }


if __name__ == "__main__":
    uvicorn.run("visitor_api.main:app", host="127.0.0.1", port=8000, reload=True)
