"""
Execution context shared by every CLI command.

One AptlyContext is created at process entry and passed to each command.
It resolves configuration once, builds shared resources on first use and
tears them down once at exit:

    progress()           -> ConsoleProgress   (started on construction)
    downloader()         -> Downloader        (needs config + progress)
    database()           -> Storage           (may fail: DatabaseOpenError)
    collection_factory() -> CollectionFactory (needs database; failure is fatal)
    package_pool()       -> PackagePool       (needs config)
    published_storage()  -> PublishedStorage  (needs config)

Commands borrow these handles and must not close them; only shutdown() does.
"""
from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import List, Optional

import click

from .config import ConfigStructure, resolve_config
from .console.progress import ConsoleProgress
from .database.storage import Storage, open_db
from .debug.instrumentation import Instrumentation
from .deb.collections import CollectionFactory
from .errors import DatabaseOpenError, FatalError
from .files.package_pool import PackagePool
from .files.published_storage import PublishedStorage
from .flags import ContextFlags
from .http.downloader import Downloader
from .options import DependencyOptions, compose_dependency_options, resolve_architectures
from .settings import Settings, create_settings_from_env

__all__ = ["AptlyContext", "get_context"]

logger = logging.getLogger(__name__)


class AptlyContext:
    """
    Owner of configuration and lazily constructed shared resources.

    Every accessor builds its resource at most once and returns the same
    instance afterwards. Dependencies are built first: the downloader forces
    config and progress, the collection factory forces the database.
    Designed for one command execution on one thread (plus the optional
    memory-stats sampler thread).
    """

    def __init__(self, flags: ContextFlags, settings: Optional[Settings] = None,
                 config: Optional[ConfigStructure] = None):
        """
        Initialize context without starting anything.

        Args:
            flags: Parsed command-line flags (read only)
            settings: Process settings (if None, loaded from environment)
            config: Pre-resolved configuration; skips the file lookup
        """
        self.flags = flags
        self.settings = settings if settings is not None else create_settings_from_env()

        self._config: Optional[ConfigStructure] = config
        self._dependency_options: Optional[DependencyOptions] = None
        self._architectures: Optional[List[str]] = None

        self._progress: Optional[ConsoleProgress] = None
        self._downloader: Optional[Downloader] = None
        self._database: Optional[Storage] = None
        self._collection_factory: Optional[CollectionFactory] = None
        self._package_pool: Optional[PackagePool] = None
        self._published_storage: Optional[PublishedStorage] = None

        self.instrumentation: Optional[Instrumentation] = None
        self._shut_down = False

    @classmethod
    def create(cls, flags: ContextFlags, settings: Optional[Settings] = None,
               config: Optional[ConfigStructure] = None) -> AptlyContext:
        """
        Create and initialize a context.

        Raises:
            InstrumentationError: If a debug output file cannot be opened
        """
        context = cls(flags, settings=settings, config=config)
        context.initialize()
        return context

    def initialize(self) -> None:
        """
        Start diagnostic instrumentation when debugging is enabled.

        Debug flags are ignored unless ``settings.enable_debug`` is set.
        """
        if not self.settings.enable_debug:
            return
        instrumentation = Instrumentation.from_flags(self.flags)
        if not instrumentation.enabled:
            return
        instrumentation.start()
        self.instrumentation = instrumentation

    def __enter__(self) -> AptlyContext:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown()

    def _check_open(self) -> None:
        if self._shut_down:
            raise RuntimeError("context is shut down")

    @property
    def config_loaded(self) -> bool:
        return self._config is not None

    def config(self) -> ConfigStructure:
        """
        Resolved configuration, loaded on first call.

        Raises:
            FatalError: If the configuration cannot be loaded
        """
        if self._config is None:
            self._config = resolve_config(self.flags.config, self.settings)
        return self._config

    def dependency_options(self) -> DependencyOptions:
        """Dependency options composed once from config OR flags."""
        if self._dependency_options is None:
            self._dependency_options = compose_dependency_options(self.config(), self.flags)
        return self._dependency_options

    def architectures_list(self) -> List[str]:
        """Architecture list: ``--architectures`` override or config list."""
        if self._architectures is None:
            self._architectures = resolve_architectures(self.config(), self.flags)
        return self._architectures

    def progress(self) -> ConsoleProgress:
        self._check_open()
        if self._progress is None:
            progress = ConsoleProgress()
            progress.start()
            self._progress = progress
            logger.debug("Constructed progress reporter")
        return self._progress

    def downloader(self) -> Downloader:
        self._check_open()
        if self._downloader is None:
            concurrency = self.config().download_concurrency
            self._downloader = Downloader(concurrency, self.progress())
            logger.debug(f"Constructed downloader with concurrency {concurrency}")
        return self._downloader

    def db_path(self) -> Path:
        return Path(self.config().root_dir) / "db"

    def database(self) -> Storage:
        """
        Open the database on first call.

        Raises:
            DatabaseOpenError: If the database cannot be opened; the context
                keeps no handle, so a later call tries again
        """
        self._check_open()
        if self._database is None:
            path = self.db_path()
            try:
                self._database = open_db(path)
            except (OSError, sqlite3.Error) as e:
                logger.error(f"Failed to open database at {path}: {e}")
                raise DatabaseOpenError(f"can't open database: {e}") from e
        return self._database

    def collection_factory(self) -> CollectionFactory:
        """
        Raises:
            FatalError: If the database cannot be opened
        """
        self._check_open()
        if self._collection_factory is None:
            try:
                db = self.database()
            except DatabaseOpenError as e:
                raise FatalError(str(e)) from e
            self._collection_factory = CollectionFactory(db)
        return self._collection_factory

    def package_pool(self) -> PackagePool:
        self._check_open()
        if self._package_pool is None:
            self._package_pool = PackagePool(self.config().root_dir)
        return self._package_pool

    def published_storage(self) -> PublishedStorage:
        self._check_open()
        if self._published_storage is None:
            self._published_storage = PublishedStorage(self.config().root_dir)
        return self._published_storage

    def shutdown(self) -> None:
        """
        Release everything that was constructed, in a fixed order.

        Order: instrumentation (heap snapshot, CPU profile, memory sampler),
        database, downloader, progress. Unconstructed resources are skipped.
        Every step runs even if an earlier one fails; the first failure is
        re-raised at the end. Calling shutdown again does nothing.
        """
        if self._shut_down:
            return
        self._shut_down = True

        steps = []
        if self.instrumentation is not None:
            steps.append(("instrumentation", self.instrumentation.stop))
        if self._database is not None:
            steps.append(("database", self._database.close))
        if self._downloader is not None:
            steps.append(("downloader", self._downloader.shutdown))
        if self._progress is not None:
            steps.append(("progress", self._progress.shutdown))

        first_error: Optional[BaseException] = None
        for name, step in steps:
            try:
                step()
            except Exception as e:
                logger.warning(f"Error shutting down {name}: {e}")
                if first_error is None:
                    first_error = e
        logger.debug("Context shut down")
        if first_error is not None:
            raise first_error


def get_context(ctx: Optional[click.Context] = None) -> AptlyContext:
    """
    Return the AptlyContext attached to the running CLI command.

    Walks up from ``ctx`` (or the current click context) to the root callback
    that stored it.

    Raises:
        RuntimeError: If no context has been attached
    """
    current = ctx if ctx is not None else click.get_current_context(silent=True)
    while current is not None:
        if isinstance(current.obj, AptlyContext):
            return current.obj
        current = current.parent
    raise RuntimeError("no execution context attached to this command")
