"""Adapter registry — IoC loader and factory for job source adapters."""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from job_scraper.adapters.base import JobSourceAdapter


class AdapterRegistry:
    """Decorator-based registry that maps source name strings to adapter classes.

    The ``{source}`` segment of ``/scrape/{source}`` is looked up here.

    Usage::

        @AdapterRegistry.register
        class IndeedAdapter(JobSourceAdapter):
            @property
            def source_name(self) -> str:
                return "indeed"
            ...
    """

    _registry: ClassVar[dict[str, type[JobSourceAdapter]]] = {}

    @classmethod
    def register(cls, adapter_class: type[JobSourceAdapter]) -> type[JobSourceAdapter]:
        """Class decorator — registers an adapter by its ``source_name``."""
        instance = adapter_class.__new__(adapter_class)
        cls._registry[instance.source_name] = adapter_class
        return adapter_class

    @classmethod
    def get(cls, source_name: str) -> JobSourceAdapter:
        """Return a new instance of the adapter registered under *source_name*.

        Lookup is case-insensitive.
        """
        key = source_name.lower()
        if key not in cls._registry:
            msg = f"No adapter registered for source: '{source_name}'"
            raise ValueError(msg)
        return cls._registry[key]()

    @classmethod
    def list_registered(cls) -> list[str]:
        """Return all registered source name strings."""
        return list(cls._registry.keys())
