"""
Main application context for InsightSmith.

Builds every component once and wires them together. One instance per
process; tests construct a fresh one each time.
"""

import time
from typing import Callable, Optional

from insightsmith.config import Settings, get_settings
from insightsmith.database import RowStore, SqlAlchemyRowStore
from insightsmith.execution import GenerationExecutor
from insightsmith.logger import LoggerManager, get_logger
from insightsmith.providers import ProviderRegistry
from insightsmith.query_orchestrator import FilterSnapshotProvider, QueryOrchestrator, StaticFilterProvider
from insightsmith.query_processing import IntentClassifier, PromptBuilder, TemplateMatcher
from insightsmith.routing import ProviderRouter
from insightsmith.schema_intelligence import SchemaContextBuilder
from insightsmith.telemetry import HealthMonitor, HealthThresholds, TelemetryRecorder
from insightsmith.utils.caching import RedisBackend, ResponseCache

logger = get_logger(__name__)


class InsightSmithApp:
    """Main application class for InsightSmith."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        registry: Optional[ProviderRegistry] = None,
        row_store: Optional[RowStore] = None,
        filter_provider: Optional[FilterSnapshotProvider] = None,
        clock: Callable[[], float] = time.time,
        configure_logging: bool = False,
    ):
        """
        Initialize the application.

        Args:
            settings: Settings; read from the environment when omitted
            registry: Provider registry; built from settings when omitted
            row_store: Data store for generated SQL; built from database_url when omitted
            filter_provider: Source of the global dashboard filters
            clock: Seconds clock shared by the cache, telemetry and health monitor
            configure_logging: Install the file and console handlers
        """
        self.settings = settings or get_settings()
        if configure_logging and not LoggerManager().configured:
            LoggerManager().setup_logging(level=self.settings.log_level)

        logger.info("Initializing InsightSmith Application")

        self.schema = SchemaContextBuilder(schema_file=self.settings.schema_file)
        self.classifier = IntentClassifier()
        self.matcher = TemplateMatcher()
        self.prompts = PromptBuilder(self.schema)
        self.router = ProviderRouter.from_settings(self.settings)
        self.registry = registry or ProviderRegistry.build_from_settings(self.settings)

        redis = None
        if self.settings.enable_redis:
            redis = RedisBackend(redis_url=self.settings.redis_url)
        self.cache = ResponseCache(
            max_entries=self.settings.cache_max_entries,
            default_ttl=self.settings.cache_default_ttl_seconds,
            clock=clock,
            redis=redis,
        )

        self.telemetry = TelemetryRecorder(clock=clock)
        self.health = HealthMonitor(
            self.telemetry,
            thresholds=HealthThresholds.from_settings(self.settings),
            window_seconds=self.settings.health_window_seconds,
            interval_seconds=self.settings.health_poll_interval_seconds,
            clock=clock,
        )

        if row_store is None and self.settings.database_url:
            row_store = SqlAlchemyRowStore(self.settings.database_url, max_rows=self.settings.max_rows)
        self.row_store = row_store
        self.filter_provider = filter_provider or StaticFilterProvider()

        self.executor = GenerationExecutor(
            settings=self.settings,
            router=self.router,
            registry=self.registry,
            cache=self.cache,
            telemetry=self.telemetry,
            matcher=self.matcher,
            prompts=self.prompts,
            row_store=self.row_store,
        )
        self.orchestrator = QueryOrchestrator(
            settings=self.settings,
            classifier=self.classifier,
            executor=self.executor,
            telemetry=self.telemetry,
            health=self.health,
            filter_provider=self.filter_provider,
        )

        logger.info(
            f"InsightSmith initialized: providers={self.registry.names()} "
            f"tables={self.schema.table_names()} row_store={'on' if self.row_store else 'off'}"
        )

    async def start(self) -> None:
        """Start background tasks (health polling)."""
        self.health.start()

    async def shutdown(self) -> None:
        """Stop background tasks and release clients."""
        logger.info("Shutting down InsightSmith Application")
        await self.health.stop()
        await self.registry.aclose()
        if self.row_store is not None:
            await self.row_store.dispose()
        logger.info("Shutdown complete")
