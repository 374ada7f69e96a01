"""YAML text catalog loader.

All user-facing strings (highlight insights, forecast factors, narrator
lines, notification titles) live in ``templates/insights.yaml``.
"""

from __future__ import annotations

import functools
import logging
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

_CATALOG_PATH = Path(__file__).resolve().parent.parent / "templates" / "insights.yaml"


class TemplateError(Exception):
    """Raised when the text catalog is missing or malformed."""


def load_catalog(path: Path | str = _CATALOG_PATH) -> dict[str, Any]:
    """Parse a text catalog file.

    Raises:
        TemplateError: If the file is missing or not a YAML mapping.
    """
    try:
        raw = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise TemplateError(f"Failed to load text catalog {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise TemplateError(f"Text catalog {path} must be a mapping")
    logger.debug("Loaded text catalog from %s", path)
    return raw


@functools.lru_cache(maxsize=1)
def catalog() -> dict[str, Any]:
    """Process-wide text catalog, loaded once."""
    return load_catalog()


def text(dotted_key: str, **values: Any) -> Any:
    """Look up ``section.key`` in the catalog, formatting strings with ``values``.

    Raises:
        TemplateError: If the key is absent.
    """
    node: Any = catalog()
    for part in dotted_key.split("."):
        if not isinstance(node, dict) or part not in node:
            raise TemplateError(f"Unknown text key: {dotted_key}")
        node = node[part]
    if isinstance(node, str) and values:
        return node.format(**values)
    return node
