# FILE: main.py
"""
Repository Q&A Backend - FastAPI Application
Version: 0.3.0

Features:
- Natural-language questions about GitHub repositories (Gemini)
- Primary/secondary Gemini API key failover
- Per-client daily quota (fixed window, fail open)
- Depth- and concurrency-bounded repository tree fetching with TTL caches
- Precomputed whole-repository context in a shared store

Run:
    uvicorn main:app --reload
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

# Load .env FIRST before any other imports that might need env vars
load_dotenv()

from config.settings import get_settings
from app.github.router import router as repository_router
from app.query.router import router as query_router
from app.ratelimit.router import router as rate_limit_router
from app.services import get_services, shutdown_services

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)
logger = logging.getLogger("main")

app = FastAPI(
    title="Repository Q&A",
    version="0.3.0",
    description="Ask questions about GitHub repositories",
)

# ====== CORS ======

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

# ====== ROUTERS ======

app.include_router(query_router)
app.include_router(rate_limit_router)
app.include_router(repository_router)


# ====== LIFECYCLE ======

@app.on_event("startup")
async def on_startup():
    logger.info("[startup] Checking environment variables...")
    if settings.github_token:
        logger.info("[startup] GITHUB_TOKEN: [OK] set")
    else:
        logger.warning("[startup] GITHUB_TOKEN: [X] NOT SET - repository fetches will fail")
    if settings.gemini_api_key:
        logger.info("[startup] GEMINI_API_KEY: [OK] set")
    else:
        logger.warning("[startup] GEMINI_API_KEY: [X] NOT SET - questions will fail")
    if not settings.redis_url:
        logger.warning("[startup] REDIS_URL: [X] NOT SET - quota and context cache are per process")
    get_services()


@app.on_event("shutdown")
async def on_shutdown():
    await shutdown_services()


@app.get("/ping")
def ping():
    return {"status": "ok"}
