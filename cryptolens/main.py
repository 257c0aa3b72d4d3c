import asyncio
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cryptolens.analysis.router import router as analysis_router
from cryptolens.auth_router import router as auth_router
from cryptolens.comparables.router import router as comparables_router
from cryptolens.config import settings
from cryptolens.dependencies import APIKey, SessionsDep, all_sessions
from cryptolens.exception_handlers import register_exception_handlers
from cryptolens.logging_config import setup_logging
from cryptolens.market.router import router as market_router
from cryptolens.sentiment.router import router as sentiment_router
from cryptolens.sessions.schemas import ConnectionStatus, SessionHealth

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("app_startup", providers=[session.name for session in all_sessions()])
    yield
    await asyncio.gather(*(session.disconnect() for session in all_sessions()))
    logger.info("app_shutdown")


app = FastAPI(
    title="CryptoLens",
    description="Crypto market data and social sentiment aggregation",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(auth_router, prefix="/api/v1/auth", tags=["auth"])
app.include_router(market_router, prefix="/api/v1/market", tags=["market"])
app.include_router(sentiment_router, prefix="/api/v1/sentiment", tags=["sentiment"])
app.include_router(comparables_router, prefix="/api/v1/comparables", tags=["comparables"])
app.include_router(analysis_router, prefix="/api/v1/analysis", tags=["analysis"])


@app.get("/api/v1/health")
async def health(sessions: SessionsDep) -> dict:
    providers: list[SessionHealth] = list(await asyncio.gather(*(session.health() for session in sessions)))
    healthy = all(provider.status == ConnectionStatus.CONNECTED for provider in providers)
    return {
        "status": "healthy" if healthy else "degraded",
        "providers": [provider.model_dump(mode="json") for provider in providers],
    }


@app.get("/api/v1/health/tools")
async def provider_tools(sessions: SessionsDep, _api_key: APIKey) -> dict[str, list[str]]:
    tools = await asyncio.gather(*(session.list_tools() for session in sessions))
    return {session.name: names for session, names in zip(sessions, tools, strict=True)}
