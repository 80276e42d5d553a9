from __future__ import annotations

from typing import Iterator

from aiusage.config import Config, Credentials
from aiusage.providers import (
    AmazonQAdapter,
    ClaudeCodeAdapter,
    ClineAdapter,
    CodexCliAdapter,
    CursorAdapter,
    GeminiCliAdapter,
    GeminiCodeAssistAdapter,
    GithubCopilotAdapter,
    OpenAICodexAdapter,
    OpenCodeAdapter,
    ReplitAdapter,
    SourcegraphCodyAdapter,
    TabnineAdapter,
    WarpAdapter,
    WindsurfAdapter,
)
from aiusage.providers.base import ProviderAdapter

# report rows follow this order
PROVIDER_CLASSES: tuple[type[ProviderAdapter], ...] = (
    ClaudeCodeAdapter,
    CursorAdapter,
    GithubCopilotAdapter,
    ClineAdapter,
    WindsurfAdapter,
    WarpAdapter,
    OpenCodeAdapter,
    OpenAICodexAdapter,
    CodexCliAdapter,
    GeminiCliAdapter,
    AmazonQAdapter,
    TabnineAdapter,
    GeminiCodeAssistAdapter,
    SourcegraphCodyAdapter,
    ReplitAdapter,
)


def provider_names() -> tuple[str, ...]:
    return tuple(cls.descriptor.name for cls in PROVIDER_CLASSES)


class Registry:
    def __init__(self, adapters: list[ProviderAdapter]) -> None:
        self._adapters = list(adapters)

    def __iter__(self) -> Iterator[ProviderAdapter]:
        return iter(self._adapters)

    def __len__(self) -> int:
        return len(self._adapters)

    def names(self) -> list[str]:
        return [a.name for a in self._adapters]

    def select(self, tool: str | None) -> Registry:
        """Keep providers whose name or display name contains ``tool``."""
        if not tool:
            return self
        needle = tool.lower()
        return Registry(
            [
                a
                for a in self._adapters
                if needle in a.descriptor.name.lower() or needle in a.descriptor.display_name.lower()
            ]
        )


def default_registry(cfg: Config, credentials: Credentials) -> Registry:
    adapters = []
    for cls in PROVIDER_CLASSES:
        pc = cfg.provider(cls.descriptor.name)
        if not pc.enabled:
            continue
        adapters.append(cls.build(pc, credentials, cfg.network.timeout_seconds))
    return Registry(adapters)
