"""
Cache des rendus publics de pages (/u/<slug>).

Invalidé par chemin après chaque mutation d'une page. Les entrées expirent
aussi d'elles-mêmes (TTL) : chaque worker a son propre cache, un rendu
périmé ne survit donc pas plus de RENDER_CACHE_TTL secondes.
"""

import logging
from typing import Any, Callable, Optional

from cachetools import TTLCache

logger = logging.getLogger(__name__)

RENDER_CACHE_SIZE = 1024
RENDER_CACHE_TTL = 60


class RenderCache:

    def __init__(self, maxsize: int = RENDER_CACHE_SIZE, ttl: float = RENDER_CACHE_TTL):
        self._entries: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl)

    def get(self, path: str) -> Optional[Any]:
        return self._entries.get(path)

    def get_or_render(self, path: str, render: Callable[[], Any]) -> Any:
        rendered = self._entries.get(path)
        if rendered is not None:
            return rendered
        rendered = render()
        self._entries[path] = rendered
        return rendered

    def revalidate_path(self, path: str) -> None:
        if self._entries.pop(path, None) is not None:
            logger.debug(f"Revalidated {path}")

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def public_path(slug: str) -> str:
    return f"/u/{slug}"


def edit_path(edit_token: str) -> str:
    return f"/edit/{edit_token}"


render_cache = RenderCache()


def revalidate_page_paths(slug: str, edit_token: str) -> None:
    render_cache.revalidate_path(public_path(slug))
    render_cache.revalidate_path(edit_path(edit_token))
