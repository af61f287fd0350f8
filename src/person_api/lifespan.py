"""Application lifespan management (startup/shutdown hooks)."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, Dict

from .config.settings import get_settings
from .enrichment.enricher import Enricher
from .observability.logger import configure_logging, get_logger
from .storage.database import init_db, session_factory
from .storage.memory import InMemoryPersonRepository
from .storage.repositories import PersonRepository, PersonStore

logger = get_logger(__name__)

# Populated during startup; read by the HTTP handlers
app_state: Dict[str, Any] = {}


@asynccontextmanager
async def lifespan_manager(app=None):
    """Manage application lifespan (startup and shutdown)."""
    settings = get_settings()

    configure_logging()
    logger.info("starting_application", service_name=settings.service_name)

    if settings.storage_backend == "memory":
        people: PersonStore = InMemoryPersonRepository()
        logger.warning("in_memory_storage_enabled")
    else:
        await init_db()
        logger.info("database_initialized")
        people = PersonRepository(session_factory=session_factory)

    enricher = Enricher.from_settings(settings)
    logger.info(
        "enricher_configured",
        genderize_url=settings.genderize_url,
        nationalize_url=settings.nationalize_url,
        agify_url=settings.agify_url,
        token_configured=settings.api_token is not None,
        fetch_timeout_seconds=settings.fetch_timeout_seconds,
    )

    app_state["people"] = people
    app_state["enricher"] = enricher

    logger.info("application_started")
    try:
        yield
    finally:
        app_state.clear()
        await enricher.aclose()
        await people.close()
        logger.info("application_shutdown_complete")
