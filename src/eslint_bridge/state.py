"""Mutable server state shared by the validation pipeline and request handlers.

One ServerState is created when the server starts and handed to every
component that needs it. Its stores are partitioned by document URI or by
config file path; they are only mutated between awaits, from the event
loop thread.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from eslint_bridge.config import LintSettings, ServerConfig
from eslint_bridge.engine.eslint import LintEngine
from eslint_bridge.engine.loader import EngineResolver, LibraryLoader
from eslint_bridge.fixes.registry import FixRegistry


@dataclass
class ServerState:
    """Everything the server remembers between requests.

    Attributes:
        config: Process-level configuration.
        loader: Per-document lint engine lookup.
        settings: Lint settings last pushed by the client.
        registry: Fixes recorded by the last validation of each document.
        no_config_reported: Documents already told about a missing configuration.
        config_error_reported: Config files already reported as broken, with the
            engine that reported them.
    """

    config: ServerConfig
    loader: LibraryLoader
    settings: LintSettings = field(default_factory=LintSettings)
    registry: FixRegistry = field(default_factory=FixRegistry)
    no_config_reported: dict[str, LintEngine] = field(default_factory=dict)
    config_error_reported: dict[str, LintEngine] = field(default_factory=dict)

    @classmethod
    def create(cls, config: ServerConfig, loader: LibraryLoader | None = None) -> ServerState:
        if loader is None:
            loader = LibraryLoader(EngineResolver(eslint_path=config.eslint_path))
        return cls(config=config, loader=loader)

    def reset_no_config(self) -> None:
        self.no_config_reported.clear()

    def close_document(self, uri: str) -> None:
        """Forget the fixes and engine entry of a closed document."""
        self.registry.clear(uri)
        self.loader.forget(uri)

    def shutdown(self) -> None:
        self.registry.clear_all()
        self.no_config_reported.clear()
        self.config_error_reported.clear()
        self.loader.clear()
