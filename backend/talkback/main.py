# talkback/main.py

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from talkback.api import messages, realtime, users
from talkback.config import CORS_ORIGINS
from talkback.core.rate_limit import limiter
from talkback.infra.init_db import init_db
from talkback.realtime.hub import ChatHub
from talkback.utils.logger import setup_logger

setup_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    hub = ChatHub()
    app.state.hub = hub
    await hub.start()
    try:
        yield
    finally:
        await hub.stop()


app = FastAPI(
    title="Talkback",
    version="1.0.0",
    description="Direct messaging with presence and read receipts",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization", "X-User-Id"],
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Register routers
app.include_router(users.router, tags=["Users"])
app.include_router(messages.router, tags=["Messages"])
app.include_router(realtime.router, tags=["Realtime"])


@app.get("/health")
def health_check():
    return {"status": "ok"}
