"""Dependency Injection Container."""

from injector import Injector, Module, provider, singleton

from ..integrations.context_client import HttpContextClient
from ..integrations.interfaces import ContextProvider, GenerationModel
from ..integrations.stub import StubContextProvider, StubGenerationModel
from ..monitoring import metrics_collector
from ..orchestrator.constraints import ConstraintBuilder
from ..orchestrator.orchestrator import GenerationOrchestrator
from ..persistence.interfaces import PersistenceAdapter
from ..persistence.memory import InMemoryPersistence
from ..spec.catalog import DEFAULT_CATALOG, ComponentCatalog
from ..spec.validate import SpecValidator
from .config import Settings, get_settings
from .logging_config import configure_logging, get_logger

logger = get_logger(__name__)


class CoreModule(Module):
    """Core dependencies."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    @singleton
    @provider
    def provide_settings(self) -> Settings:
        """Provide settings singleton."""
        return self.settings

    @singleton
    @provider
    def provide_catalog(self) -> ComponentCatalog:
        """Provide the component catalog."""
        return DEFAULT_CATALOG

    @singleton
    @provider
    def provide_validator(self, settings: Settings, catalog: ComponentCatalog) -> SpecValidator:
        """Provide spec validator limited to catalog types."""
        return SpecValidator(
            max_depth=settings.max_depth,
            max_nodes=settings.max_nodes,
            allowed_types=catalog.allowed_types,
        )

    @singleton
    @provider
    def provide_constraint_builder(self, catalog: ComponentCatalog) -> ConstraintBuilder:
        """Provide constraint builder."""
        return ConstraintBuilder(catalog)

    @singleton
    @provider
    def provide_persistence(self) -> PersistenceAdapter:
        """Provide in-memory persistence."""
        return InMemoryPersistence()

    @singleton
    @provider
    def provide_model(self) -> GenerationModel:
        """Provide deterministic stub model."""
        return StubGenerationModel()

    @singleton
    @provider
    def provide_context_provider(self, settings: Settings) -> ContextProvider:
        """Provide HTTP context client when configured, stub otherwise."""
        if settings.context_url:
            return HttpContextClient(
                settings.context_url,
                api_key=settings.context_api_key,
                timeout=settings.context_timeout,
                fail_max=settings.breaker_fail_max,
                reset_timeout=settings.breaker_reset_timeout,
            )
        logger.info("context_stub_mode")
        return StubContextProvider()

    @singleton
    @provider
    def provide_orchestrator(
        self,
        settings: Settings,
        model: GenerationModel,
        context_provider: ContextProvider,
        persistence: PersistenceAdapter,
        validator: SpecValidator,
        constraint_builder: ConstraintBuilder,
    ) -> GenerationOrchestrator:
        """Provide orchestrator with all dependencies."""
        return GenerationOrchestrator(
            model=model,
            context_provider=context_provider,
            persistence=persistence,
            validator=validator,
            constraint_builder=constraint_builder,
            settings=settings,
            metrics=metrics_collector,
        )


def create_container(settings: Settings | None = None) -> Injector:
    """Configure logging from settings and create the injector."""
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.json_logs)
    return Injector([CoreModule(settings)])
