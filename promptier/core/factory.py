"""Component Factory for strategy instantiation.

The Factory Pattern allows the application to instantiate
different strategy implementations at runtime based on
configuration or environment variables.
"""

import logging

from promptier.core.cache import ExpiringCache
from promptier.core.config import Settings, get_settings
from promptier.interfaces.clipboard import BaseClipboard
from promptier.interfaces.handle import BaseHandleProvider
from promptier.interfaces.notifier import BaseNotifier
from promptier.interfaces.store import (
    BaseHandleRecordStore,
    BaseTemplateStore,
    BaseVariableStore,
)
from promptier.strategies.clipboard import InMemoryClipboard, SystemClipboard
from promptier.strategies.filesystem import (
    FileContentResolver,
    FileHandleRegistry,
    HandleCache,
    InMemoryHandleRecordStore,
    NullHandleProvider,
    PathHandleProvider,
    PermissionGate,
    SqlHandleRecordStore,
)
from promptier.strategies.notifiers import LoggingNotifier, RecordingNotifier
from promptier.strategies.stores import InMemoryTemplateStore, InMemoryVariableStore
from promptier.strategies.template_engine import TemplateParser, VariableResolutionEngine

logger = logging.getLogger(__name__)


class ComponentFactory:
    """Factory for creating component instances based on configuration.

    Components are created lazily and cached, so every consumer obtained
    from one factory shares the same cache, registry and stores.

    Example:
        ```python
        settings = get_settings()
        factory = ComponentFactory(settings)

        registry = factory.get_registry()
        engine = factory.get_engine()
        ```
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize the factory with optional settings.

        Args:
            settings: Application settings. If None, uses global settings.
        """
        self._settings = settings or get_settings()
        self._handle_cache: HandleCache | None = None
        self._parser_cache: TemplateParser | None = None
        self._record_store_cache: BaseHandleRecordStore | None = None
        self._registry_cache: FileHandleRegistry | None = None
        self._permission_gate_cache: PermissionGate | None = None
        self._handle_provider_cache: BaseHandleProvider | None = None
        self._resolver_cache: FileContentResolver | None = None
        self._clipboard_cache: BaseClipboard | None = None
        self._notifier_cache: BaseNotifier | None = None
        self._variable_store_cache: BaseVariableStore | None = None
        self._template_store_cache: BaseTemplateStore | None = None

    @property
    def settings(self) -> Settings:
        return self._settings

    def get_cache(self) -> HandleCache:
        """Get the shared handle cache."""
        if self._handle_cache is None:
            logger.info(
                f"Instantiating handle cache: max_size={self._settings.cache_max_size}, "
                f"enabled={self._settings.cache_enabled}"
            )
            self._handle_cache = HandleCache(
                max_size=self._settings.cache_max_size,
                default_ttl=self._settings.cache_default_ttl_seconds,
                enabled=self._settings.cache_enabled,
            )

        return self._handle_cache

    def get_parser(self) -> TemplateParser:
        """Get the memoizing template parser."""
        if self._parser_cache is None:
            self._parser_cache = TemplateParser(
                cache=ExpiringCache(
                    max_size=self._settings.parse_cache_max_size,
                    default_ttl=self._settings.parse_cache_ttl_seconds,
                )
            )

        return self._parser_cache

    def get_record_store(self, store_type: str | None = None) -> BaseHandleRecordStore:
        """Get the handle record store based on the specified type.

        Args:
            store_type: 'memory' or 'sql'. If None, uses settings.

        Raises:
            ValueError: If the store type is unknown.
        """
        if self._record_store_cache is None or store_type is not None:
            store_type = store_type or self._settings.registry_store_type

            logger.info(f"Instantiating handle record store: {store_type}")

            match store_type:
                case "memory":
                    self._record_store_cache = InMemoryHandleRecordStore()
                case "sql":
                    self._record_store_cache = SqlHandleRecordStore(
                        self._settings.registry_database_url,
                        echo=self._settings.log_level == "DEBUG",
                    )
                case _:
                    raise ValueError(
                        f"Unknown registry store type: {store_type}. "
                        f"Valid options: 'memory', 'sql'"
                    )

        return self._record_store_cache

    def get_registry(self) -> FileHandleRegistry:
        if self._registry_cache is None:
            self._registry_cache = FileHandleRegistry(self.get_record_store())

        return self._registry_cache

    def get_permission_gate(self) -> PermissionGate:
        if self._permission_gate_cache is None:
            self._permission_gate_cache = PermissionGate()

        return self._permission_gate_cache

    def get_handle_provider(self, provider_type: str | None = None) -> BaseHandleProvider:
        """Get the handle provider based on the specified type.

        Args:
            provider_type: 'null' or 'path'. If None, uses settings.

        Raises:
            ValueError: If the provider type is unknown.
        """
        if self._handle_provider_cache is None or provider_type is not None:
            provider_type = provider_type or self._settings.handle_provider_type

            logger.info(f"Instantiating handle provider: {provider_type}")

            match provider_type:
                case "null":
                    self._handle_provider_cache = NullHandleProvider()
                case "path":
                    self._handle_provider_cache = PathHandleProvider()
                case _:
                    raise ValueError(
                        f"Unknown handle provider type: {provider_type}. "
                        f"Valid options: 'null', 'path'"
                    )

        return self._handle_provider_cache

    def get_resolver(self) -> FileContentResolver:
        """Get the file content resolver wired to the shared components."""
        if self._resolver_cache is None:
            self._resolver_cache = FileContentResolver(
                registry=self.get_registry(),
                gate=self.get_permission_gate(),
                cache=self.get_cache(),
                provider=self.get_handle_provider(),
                max_concurrent=self._settings.resolver_max_concurrent,
                max_file_size=self._settings.max_file_size,
                encoding=self._settings.file_encoding,
                wrap_in_tags=self._settings.wrap_file_contents,
                listing_max_depth=self._settings.directory_listing_max_depth,
            )

        return self._resolver_cache

    def get_clipboard(self, clipboard_type: str | None = None) -> BaseClipboard:
        """Get the clipboard sink based on the specified type.

        Args:
            clipboard_type: 'system' or 'memory'. If None, uses settings.

        Raises:
            ValueError: If the clipboard type is unknown.
        """
        if self._clipboard_cache is None or clipboard_type is not None:
            clipboard_type = clipboard_type or self._settings.clipboard_type

            logger.info(f"Instantiating clipboard: {clipboard_type}")

            match clipboard_type:
                case "system":
                    self._clipboard_cache = SystemClipboard()
                case "memory":
                    self._clipboard_cache = InMemoryClipboard()
                case _:
                    raise ValueError(
                        f"Unknown clipboard type: {clipboard_type}. "
                        f"Valid options: 'system', 'memory'"
                    )

        return self._clipboard_cache

    def get_notifier(self, notifier_type: str | None = None) -> BaseNotifier:
        """Get the notification sink based on the specified type.

        Args:
            notifier_type: 'logging' or 'recording'. If None, uses settings.

        Raises:
            ValueError: If the notifier type is unknown.
        """
        if self._notifier_cache is None or notifier_type is not None:
            notifier_type = notifier_type or self._settings.notifier_type

            logger.info(f"Instantiating notifier: {notifier_type}")

            match notifier_type:
                case "logging":
                    self._notifier_cache = LoggingNotifier()
                case "recording":
                    self._notifier_cache = RecordingNotifier()
                case _:
                    raise ValueError(
                        f"Unknown notifier type: {notifier_type}. "
                        f"Valid options: 'logging', 'recording'"
                    )

        return self._notifier_cache

    def get_variable_store(self) -> BaseVariableStore:
        if self._variable_store_cache is None:
            self._variable_store_cache = InMemoryVariableStore()

        return self._variable_store_cache

    def get_template_store(self) -> BaseTemplateStore:
        if self._template_store_cache is None:
            self._template_store_cache = InMemoryTemplateStore()

        return self._template_store_cache

    def get_engine(self) -> VariableResolutionEngine:
        """Get a new engine bound to the shared components.

        Engines hold per-template editing state, so each call returns a
        fresh instance.
        """
        return VariableResolutionEngine(
            parser=self.get_parser(),
            resolver=self.get_resolver(),
            clipboard=self.get_clipboard(),
            notifier=self.get_notifier(),
            variable_store=self.get_variable_store(),
        )

    async def start(self) -> None:
        """Load persisted handle records and start the cache sweep.

        Must be called from a running event loop.
        """
        await self.get_registry().ensure_loaded()
        self.get_cache().start_sweeper(self._settings.cache_sweep_interval_seconds)
        logger.info("Components started")

    async def close(self) -> None:
        """Stop background tasks and release store connections."""
        if self._handle_cache is not None:
            await self._handle_cache.close()
        if isinstance(self._record_store_cache, SqlHandleRecordStore):
            await self._record_store_cache.close()
        logger.info("Components closed")

    def clear_cache(self) -> None:
        """Clear all cached component instances.

        This forces new instances to be created on next access.
        Useful for testing or when settings change.
        """
        self._handle_cache = None
        self._parser_cache = None
        self._record_store_cache = None
        self._registry_cache = None
        self._permission_gate_cache = None
        self._handle_provider_cache = None
        self._resolver_cache = None
        self._clipboard_cache = None
        self._notifier_cache = None
        self._variable_store_cache = None
        self._template_store_cache = None
        logger.debug("Component factory cache cleared")


# Global factory instance
_factory: ComponentFactory | None = None


def get_factory() -> ComponentFactory:
    """Get or create the global ComponentFactory instance.

    Returns:
        The singleton ComponentFactory instance.
    """
    global _factory
    if _factory is None:
        _factory = ComponentFactory()
    return _factory
