"""Application context with dependency injection."""

import logging
from dataclasses import dataclass, replace
from pathlib import Path

from codehash.core.config import (
    CodehashConfig,
    ConfigStore,
    FilesystemConfigStore,
    load_config_from_environment,
)
from codehash.core.git.abc import Git
from codehash.core.git.real import RealGit
from codehash.core.http.abc import HttpClient
from codehash.core.http.real import RealHttpClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CodehashContext:
    """Immutable context holding all dependencies for a codehash run.

    Created at the CLI entry point and threaded through the application.
    Frozen to prevent accidental modification at runtime.
    """

    http: HttpClient
    git: Git
    config: CodehashConfig
    cwd: Path

    @staticmethod
    def for_test(
        http: HttpClient | None = None,
        git: Git | None = None,
        config: CodehashConfig | None = None,
        cwd: Path | None = None,
    ) -> "CodehashContext":
        """Create test context with fake integrations for anything not given.

        Args:
            http: Optional HttpClient. If None, creates an empty FakeHttpClient.
            git: Optional Git. If None, creates an empty FakeGit.
            config: Optional config. If None, uses defaults.
            cwd: Optional working directory. If None, uses Path("/test/default/cwd")
                to prevent accidental use of the real Path.cwd() in tests.
        """
        from codehash.core.git.fake import FakeGit
        from codehash.core.http.fake import FakeHttpClient

        return CodehashContext(
            http=http if http is not None else FakeHttpClient(),
            git=git if git is not None else FakeGit(),
            config=config if config is not None else CodehashConfig(),
            cwd=cwd if cwd is not None else Path("/test/default/cwd"),
        )


def create_context(
    *,
    config_store: ConfigStore | None = None,
    max_workers: int | None = None,
) -> CodehashContext:
    """Create production context with real implementations.

    Called once at CLI entry point. Reads the config file and CODEHASH_*
    environment overrides here and nowhere else.

    Args:
        config_store: Optional store; defaults to ~/.codehash/config.toml
        max_workers: Optional override from the command line
    """
    store = config_store if config_store is not None else FilesystemConfigStore()
    if store.exists():
        logger.debug("Loading config from %s", store.path())
    else:
        logger.debug("No config file at %s, using defaults", store.path())
    config = load_config_from_environment(store)
    if max_workers is not None:
        config = replace(config, max_workers=max_workers)

    return CodehashContext(
        http=RealHttpClient(timeout=config.http_timeout),
        git=RealGit(depth=config.clone_depth),
        config=config,
        cwd=Path.cwd(),
    )
