from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .logging_config import configure_logging
from .routers import health, warehouse, warehouse_reports, work_reports

configure_logging(settings.log_level)

app = FastAPI(title="Stockroom API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(warehouse.router)
app.include_router(warehouse_reports.router)
app.include_router(work_reports.router)


@app.get("/")
def root():
    return {"status": "ok"}
