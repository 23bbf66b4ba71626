import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from leadcrm.core.config import settings
from leadcrm.core.database import Base, engine
from leadcrm.core.errors import register_exception_handlers
from leadcrm.scheduler import start_scheduler, stop_scheduler, run_cleanup
from leadcrm.api import auth, leads, customers, events, tasks, attendance, users, reports, system_clients, whatsapp

from leadcrm.models import *

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


app = FastAPI(title="Lead CRM Backend")

# -------------------------
# CORS
# -------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# -------------------------
# Include Routers
# -------------------------
app.include_router(auth.router)
app.include_router(leads.router)
app.include_router(customers.router)
app.include_router(events.router)
app.include_router(tasks.router)
app.include_router(attendance.router)
app.include_router(users.router)
app.include_router(reports.router)
app.include_router(system_clients.router)
app.include_router(whatsapp.router)


# -------------------------
# DB INIT
# -------------------------
Base.metadata.create_all(bind=engine)

# -------------------------
# FastAPI lifecycle
# -------------------------

@app.on_event("startup")
def startup():
    if settings.SCHEDULER_ENABLED:
        start_scheduler()
        # Catch up on anything that expired while the service was down
        run_cleanup()
        logger.info("Scheduler started")

@app.on_event("shutdown")
def shutdown():
    stop_scheduler()

# -------------------------
# Routes
# -------------------------

@app.get("/")
def root():
    return {"status": "running"}

@app.get("/api/health")
def health():
    return {"status": "ok", "environment": settings.ENVIRONMENT}
