"""Static clinical content library and Jinja2 phrase templates."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any

import jinja2

from fertility_engine.config import load_yaml

logger = logging.getLogger(__name__)

CONTENT_DIR = Path(__file__).parent / "resources"
DEFAULT_CONTENT_PATH = CONTENT_DIR / "clinical_content.yaml"
DEFAULT_PHRASES_PATH = CONTENT_DIR / "phrases.yaml"


@dataclass(frozen=True)
class ContentEntry:
    """Explanation, recommendations and sources for one content key."""

    explanation: str
    recommendations: tuple[str, ...] = ()
    sources: tuple[str, ...] = ()


class ContentLibrary:
    """Immutable keyed clinical content.

    Parameters
    ----------
    entries : Mapping[str, ContentEntry]
        Content bodies keyed by content key.
    """

    def __init__(self, entries: Mapping[str, ContentEntry]) -> None:
        self._entries = MappingProxyType(dict(entries))

    @classmethod
    def from_yaml(cls, path: str | Path) -> ContentLibrary:
        """Load a library from a YAML mapping of key -> entry."""
        data = load_yaml(Path(path))
        entries: dict[str, ContentEntry] = {}
        for key, body in data.items():
            if not isinstance(body, dict) or "explanation" not in body:
                msg = f"Content entry {key!r} must define an explanation"
                raise ValueError(msg)
            entries[key] = ContentEntry(
                explanation=str(body["explanation"]).strip(),
                recommendations=tuple(str(r) for r in body.get("recommendations", []) or []),
                sources=tuple(str(s) for s in body.get("sources", []) or []),
            )
        logger.debug("Loaded %d content entries from %s", len(entries), path)
        return cls(entries)

    def get(self, key: str) -> ContentEntry:
        """Return the entry for *key*.

        Raises
        ------
        KeyError
            If *key* is not in the library.
        """
        if key not in self._entries:
            msg = f"Unknown content key {key!r}"
            raise KeyError(msg)
        return self._entries[key]

    def keys(self) -> list[str]:
        return sorted(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class PhraseBook:
    """Jinja2 templates for report phrases, loaded from YAML.

    Template lookup uses dotted paths, e.g. ``"benchmark.above"``.
    """

    def __init__(self, templates: Mapping[str, Any]) -> None:
        self._templates = templates
        self._env = jinja2.Environment(undefined=jinja2.StrictUndefined, autoescape=False)

    @classmethod
    def from_yaml(cls, path: str | Path) -> PhraseBook:
        return cls(load_yaml(Path(path)))

    def render(self, path: str, **variables: Any) -> str:
        """Render the template at dotted *path* with *variables*.

        Raises
        ------
        KeyError
            If *path* does not name a template string.
        """
        node: Any = self._templates
        for part in path.split("."):
            if not isinstance(node, Mapping) or part not in node:
                msg = f"Unknown phrase template {path!r}"
                raise KeyError(msg)
            node = node[part]
        if not isinstance(node, str):
            msg = f"Phrase template {path!r} is not a string"
            raise KeyError(msg)
        return " ".join(self._env.from_string(node).render(**variables).split())


@lru_cache(maxsize=1)
def default_library() -> ContentLibrary:
    """Packaged clinical content, loaded once."""
    return ContentLibrary.from_yaml(DEFAULT_CONTENT_PATH)


@lru_cache(maxsize=1)
def default_phrases() -> PhraseBook:
    """Packaged phrase templates, loaded once."""
    return PhraseBook.from_yaml(DEFAULT_PHRASES_PATH)
