import sys

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from starlette.middleware.sessions import SessionMiddleware

from app import config
from app.api.routers import auth, surveys, surveyors, layers, tasks, uploads
from app.db import init_db

logger.remove()
logger.add(sys.stderr, level=config.LOG_LEVEL)

app = FastAPI(title="Field Survey API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

_session_secret = config.SESSION_SECRET
if not _session_secret:
    _session_secret = "dev-secret-key"
    logger.warning("SESSION_SECRET not set; using insecure default")
app.add_middleware(SessionMiddleware, secret_key=_session_secret, same_site="lax")

@app.get("/health")
def health():
    return {"ok": True}


# 初回起動時にDBスキーマを作成
@app.on_event("startup")
def on_startup():
    config.UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
    init_db()

app.include_router(auth.router,      prefix="/auth",      tags=["auth"])
app.include_router(uploads.router,   prefix="/uploads",   tags=["uploads"])
app.include_router(layers.router,    prefix="/layers",    tags=["layers"])
app.include_router(tasks.router,     prefix="/tasks",     tags=["tasks"])
app.include_router(surveys.router,   prefix="/surveys",   tags=["surveys"])
app.include_router(surveyors.router, prefix="/surveyors", tags=["surveyors"])
