"""
Main entry point for the matchmaking service.
Initializes the shared store, database, match engine, background worker and FastAPI server.
"""
import asyncio
import logging
from contextlib import asynccontextmanager

import redis.asyncio as redis
from fastapi import FastAPI
import uvicorn

from config.settings import settings
from db.database import init_db, close_db
from db.providers import DatabaseProfileProvider, DatabaseSubscriptionProvider
from core.match_engine import MatchEngine
from core.matchmaking_worker import MatchmakingWorker
from core.memory_store import InMemoryStore
from core.preference_resolver import PreferenceResolver
from api.matchmaking import app as fastapi_app

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def setup_redis() -> redis.Redis:
    """Setup Redis connection with connection pooling."""
    try:
        redis_client = redis.from_url(
            settings.redis_url,
            decode_responses=True,
            max_connections=settings.REDIS_MAX_CONNECTIONS,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
        )

        # Test connection
        await redis_client.ping()
        logger.info("✅ Redis connected successfully with connection pooling")
        return redis_client
    except Exception as e:
        logger.error(f"❌ Failed to connect to Redis: {e}")
        raise


async def setup_store():
    """Setup the shared matchmaking store for the configured backend."""
    if settings.MATCHMAKING_BACKEND == "memory":
        logger.info("✅ Matchmaking store initialized (in-memory backend)")
        return InMemoryStore()
    store = await setup_redis()
    logger.info("✅ Matchmaking store initialized (redis backend)")
    return store


def setup_engine(store) -> MatchEngine:
    """Setup match engine with database-backed preference resolution."""
    resolver = PreferenceResolver(
        profiles=DatabaseProfileProvider(),
        subscriptions=DatabaseSubscriptionProvider(
            store,
            cache_enabled=settings.VIP_CACHE_ENABLED,
            namespace=settings.MATCHMAKING_NAMESPACE,
        ),
    )
    engine = MatchEngine.create(
        store,
        resolver,
        namespace=settings.MATCHMAKING_NAMESPACE,
        pair_ttl_seconds=settings.PAIR_TTL_SECONDS,
        recent_ttl_seconds=settings.RECENT_PARTNER_TTL_SECONDS,
        recent_max=settings.RECENT_PARTNERS_MAX,
        max_attempts=settings.MATCH_MAX_ATTEMPTS,
    )
    logger.info("✅ Match engine initialized")
    return engine


async def log_sweep_match(participant_id: str, partner_id: str) -> None:
    # Sweep matches are picked up by the chat layer through GET /api/match/partner
    logger.info(f"Sweep pair ready for delivery: {participant_id} <-> {partner_id}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for FastAPI app."""
    logger.info("🚀 Starting matchmaking service...")

    try:
        await init_db()
        logger.info("✅ Database initialized")
    except Exception as e:
        logger.error(f"❌ Failed to initialize database: {e}")

    store = await setup_store()
    engine = setup_engine(store)
    worker = MatchmakingWorker(
        engine,
        interval=settings.MATCHMAKING_WORKER_INTERVAL,
        batch_size=settings.MATCHMAKING_WORKER_BATCH_SIZE,
        on_match=log_sweep_match,
    )
    app.state.engine = engine
    worker.start()

    yield

    logger.info("🛑 Shutting down matchmaking service...")
    await worker.stop()
    app.state.engine = None

    try:
        await close_db()
        logger.info("✅ Database closed")
    except Exception as e:
        logger.error(f"❌ Error closing database: {e}")

    await store.aclose()
    logger.info("✅ Store closed")


async def run_fastapi():
    """Run FastAPI server."""
    fastapi_app.router.lifespan_context = lifespan

    config = uvicorn.Config(
        fastapi_app,
        host=settings.API_HOST,
        port=settings.API_PORT,
        log_level="info"
    )
    server = uvicorn.Server(config)
    await server.serve()


if __name__ == "__main__":
    try:
        asyncio.run(run_fastapi())
    except KeyboardInterrupt:
        logger.info("👋 Application stopped by user")
    except Exception as e:
        logger.error(f"❌ Application error: {e}")
