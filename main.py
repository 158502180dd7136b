"""
PoliceDeskVN – FastAPI Application
Run: uvicorn main:app --host 0.0.0.0 --port 8000 --reload
"""
import os
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv
from loguru import logger

load_dotenv()

from database.models import init_db
from api.routes import router, get_store, get_assistant

SYNC_ON_STARTUP = os.getenv("SYNC_ON_STARTUP", "false").lower() in ("1", "true", "yes")

app = FastAPI(
    title="PoliceDeskVN API",
    description="Quản lý công tác Công an xã: TNGT, đăng ký xe, sự kiện, xác minh, tham mưu",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router, prefix="/api/v1")


@app.on_event("startup")
async def startup():
    logger.info("Initialising PoliceDeskVN …")
    init_db()
    logger.info("Local storage ready ✓")
    store = get_store()
    logger.info(f"State loaded: {len(store.data.traffic_accidents)} accidents, "
                f"{len(store.data.verification_requests)} verification requests")
    if SYNC_ON_STARTUP:
        status = store.background_sync()
        logger.info(f"Startup sync: {status.status} {status.message}")
    if not get_assistant().online:
        logger.warning("AI report / extraction unavailable until GROQ_API_KEY is set")
    logger.info("PoliceDeskVN ready ✓  →  http://localhost:8000/docs")


@app.on_event("shutdown")
def shutdown():
    get_store().close()
    logger.info("Pending state flushed, listeners closed")


@app.get("/")
def root():
    return {
        "project": "PoliceDeskVN",
        "version": "1.0.0",
        "docs": "/docs",
        "api":  "/api/v1",
    }
