"""Registry mapping file extensions to language capability bundles.

Adding support for a new language requires only:

1. Creating a new subclass of :class:`LanguageBundle`.
2. Registering an instance via :meth:`LanguageRegistry.register`.

A missing bundle is a valid state: the file analyzer falls back to
unknown-language analysis for such files.
"""

from __future__ import annotations

import pathlib

import structlog

from cartograph.parsers.base import LanguageBundle
from cartograph.parsers.javascript_parser import JavaScriptBundle
from cartograph.parsers.python_parser import PythonBundle

logger = structlog.get_logger(__name__)


class LanguageRegistry:
    """Extension-keyed lookup of :class:`LanguageBundle` instances.

    Usage::

        registry = LanguageRegistry()
        registry.register(JavaScriptBundle())
        bundle = registry.for_path(pathlib.Path("src/app.js"))
    """

    def __init__(self) -> None:
        self._by_extension: dict[str, LanguageBundle] = {}

    def register(self, bundle: LanguageBundle) -> None:
        """Register *bundle* for each of its extensions.

        Later registrations replace earlier ones for the same extension.

        Args:
            bundle: A concrete :class:`LanguageBundle` instance.
        """
        for ext in bundle.extensions:
            self._by_extension[ext.lower()] = bundle
        logger.debug("bundle_registered", language=bundle.name, extensions=list(bundle.extensions))

    def get(self, extension: str) -> LanguageBundle | None:
        """Return the bundle for *extension* (e.g. ``".js"``), or ``None``."""
        return self._by_extension.get(extension.lower())

    def for_path(self, path: pathlib.Path | str) -> LanguageBundle | None:
        """Return the bundle for the extension of *path*, or ``None``."""
        return self.get(pathlib.PurePath(path).suffix)

    @property
    def supported_extensions(self) -> list[str]:
        """Return a sorted list of registered extensions."""
        return sorted(self._by_extension.keys())


def default_registry() -> LanguageRegistry:
    """Create a :class:`LanguageRegistry` pre-loaded with the built-in bundles."""
    registry = LanguageRegistry()
    registry.register(JavaScriptBundle())
    registry.register(PythonBundle())
    return registry
