"""Language capability bundles (tree-sitter grammars + extractions)."""

from cartograph.parsers.base import LanguageBundle
from cartograph.parsers.factory import LanguageRegistry, default_registry

__all__ = ["LanguageBundle", "LanguageRegistry", "default_registry"]
