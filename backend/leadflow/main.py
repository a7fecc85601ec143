import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from leadflow.database import create_db_and_tables
from leadflow.config import settings
from leadflow.exceptions import CRMError, PersistenceError
from leadflow.users.router import router as users_router
from leadflow.auth.router import router as auth_router
from leadflow.leads.router import router as leads_router
from leadflow.targets.router import router as targets_router
from leadflow.reports.router import router as reports_router
from leadflow.leads.history_models import LeadActivity, LeadRemark  # noqa: F401  registers the tables

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting %s %s", settings.APP_TITLE, settings.APP_VERSION)
    create_db_and_tables()
    yield

app = FastAPI(
    title=settings.APP_TITLE,
    version=settings.APP_VERSION,
    lifespan=lifespan
)

@app.exception_handler(CRMError)
async def crm_error_handler(request: Request, exc: CRMError):
    message = exc.message
    if isinstance(exc, PersistenceError):
        logger.error("Persistence failure on %s %s: %s", request.method, request.url.path, exc.message)
        if not settings.DEBUG:
            message = "Internal server error"
    return JSONResponse(status_code=exc.status_code, content={"detail": message})

app.include_router(auth_router)
app.include_router(users_router)
app.include_router(leads_router)
app.include_router(targets_router)
app.include_router(reports_router)

@app.get("/")
def read_root():
    return {"message": "Welcome to the Leadflow CRM API"}
