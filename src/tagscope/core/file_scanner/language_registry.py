"""
Language registry for mapping file extensions and MIME types to categories.
"""

import logging
from pathlib import Path

import yaml

from tagscope.core.errors import ClassificationAmbiguity

from .models import Category

logger = logging.getLogger(__name__)

# Default path to the languages configuration file
_DEFAULT_LANGUAGES_CONFIG = Path(__file__).parent.parent / "languages.yaml"


def mime_subtype(mime_type: str) -> str:
    """
    Normalize a MIME type to its lower-cased subtype.

    Parameters are dropped: ``"text/x-c; charset=us-ascii"`` -> ``"x-c"``.
    A value without a ``/`` is returned as-is (lower-cased).
    """
    value = mime_type.split(";", 1)[0].strip().lower()
    return value.rsplit("/", 1)[-1]


class LanguageRegistry:
    """
    Registry mapping file extensions and MIME subtypes to categories.

    Loaded from YAML; new mappings can be registered at runtime before the
    registry is handed to the classifier. Once a scan starts the registry
    is only read.

    Example:
        >>> registry = LanguageRegistry(load_defaults=False)
        >>> registry.register(Category.PYTHON, [".py"], ["x-script.python"])
        >>> registry.detect(".PY")
        <Category.PYTHON: 'python'>
        >>> registry.detect_mime("text/x-script.python")
        <Category.PYTHON: 'python'>
    """

    def __init__(self, load_defaults: bool = True):
        """
        Initialize the language registry.

        Args:
            load_defaults: If True, load default mappings from languages.yaml.
        """
        self._extension_to_category: dict[str, Category] = {}
        self._mime_to_categories: dict[str, set[Category]] = {}

        if load_defaults:
            self._load_from_yaml(_DEFAULT_LANGUAGES_CONFIG)

    @classmethod
    def from_yaml(cls, config_path: Path | str) -> "LanguageRegistry":
        """
        Create a LanguageRegistry from a YAML configuration file.

        Raises:
            ValueError: If the config file format is invalid
        """
        registry = cls(load_defaults=False)
        registry._load_from_yaml(Path(config_path))
        return registry

    def _load_from_yaml(self, config_path: Path) -> None:
        """
        Load mappings from a YAML file.

        Expected format:
            category_name:
              extensions: [.ext1, .ext2]
              mime_types: [x-subtype]
        """
        if not config_path.exists():
            logger.warning(f"Languages config not found: {config_path}, using empty registry")
            return

        try:
            data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            logger.error(f"Failed to parse languages config: {e}")
            raise ValueError(f"Invalid YAML in languages config: {e}") from e

        if data is None:
            return

        if not isinstance(data, dict):
            raise ValueError(
                f"Invalid languages config format: expected dict, got {type(data)}"
            )

        for name, spec in data.items():
            try:
                category = Category(str(name))
            except ValueError:
                logger.warning(f"Unknown category in languages config: {name}")
                continue
            if category is Category.UNSUPPORTED or not isinstance(spec, dict):
                logger.warning(f"Invalid entry for {name} in languages config")
                continue
            self.register(
                category,
                [str(ext) for ext in spec.get("extensions") or []],
                [str(mime) for mime in spec.get("mime_types") or []],
            )

    def register(
        self,
        category: Category,
        extensions: list[str],
        mime_types: list[str] | None = None,
    ) -> "LanguageRegistry":
        """
        Register extensions and MIME subtypes for a category.

        An extension registered twice keeps the latest category. A MIME
        subtype registered for two categories becomes ambiguous.

        Returns:
            Self for method chaining
        """
        for ext in extensions:
            self._extension_to_category[ext.lower()] = category
        for mime in mime_types or []:
            self._mime_to_categories.setdefault(mime_subtype(mime), set()).add(category)
        return self

    def detect(self, extension: str | None) -> Category:
        """
        Detect the category from a file extension including the dot.

        Returns:
            Category, or Category.UNSUPPORTED if the extension is unknown
        """
        if not extension:
            return Category.UNSUPPORTED
        return self._extension_to_category.get(extension.lower(), Category.UNSUPPORTED)

    def detect_from_path(self, file_path: Path | str) -> Category:
        """Detect the category from a file path's suffix."""
        return self.detect(Path(file_path).suffix)

    def detect_mime(self, mime_type: str) -> Category:
        """
        Map a sniffed MIME type to a category.

        Raises:
            ClassificationAmbiguity: If the subtype is registered for more
                than one category
        """
        candidates = self._mime_to_categories.get(mime_subtype(mime_type))
        if not candidates:
            return Category.UNSUPPORTED
        if len(candidates) > 1:
            raise ClassificationAmbiguity(mime_type, [c.value for c in candidates])
        return next(iter(candidates))

    def is_supported(self, extension: str) -> bool:
        """Check if an extension is registered."""
        return extension.lower() in self._extension_to_category

    def get_all_extensions(self) -> set[str]:
        """Get all registered file extensions."""
        return set(self._extension_to_category)

    def get_all_categories(self) -> set[Category]:
        """Get all categories with at least one mapping."""
        categories = set(self._extension_to_category.values())
        for mapped in self._mime_to_categories.values():
            categories.update(mapped)
        return categories


# Global default registry instance
_default_registry: LanguageRegistry | None = None


def get_default_registry() -> LanguageRegistry:
    """Get the global default language registry."""
    global _default_registry
    if _default_registry is None:
        _default_registry = LanguageRegistry()
    return _default_registry
