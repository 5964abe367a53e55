"""
Candidate sources.

The catalog is owned by an external content service; the core only
reads candidates from it once per request. ``CachedCatalogSource`` keeps
the last good answer per query and serves it when the source is down.
"""

from threading import RLock
from typing import Dict, Iterable, List, Optional, Protocol, Set, Tuple

from content.vectorizer import ContentVectorizer
from core.errors import DependencyError
from core.logging import LoggerMixin
from recs.models import ContentItemBase, ContentType, EventType, Popularity


class CatalogSource(Protocol):
    def get_candidates(
        self,
        content_type: Optional[ContentType] = None,
        exclude_ids: Optional[Set[str]] = None,
    ) -> List[ContentItemBase]:
        ...

    def get_item(self, item_id: str) -> Optional[ContentItemBase]:
        ...


class InMemoryCatalog(LoggerMixin):
    """
    Catalog held in process memory.

    With a vectorizer, items are vectorized on the way in against a
    vocabulary fitted on the initial load; upserts re-vectorize only items
    whose text changed.
    """

    def __init__(
        self,
        items: Iterable[ContentItemBase] = (),
        vectorizer: Optional[ContentVectorizer] = None,
    ):
        self._items: Dict[str, ContentItemBase] = {}
        self._lock = RLock()
        self.vectorizer = vectorizer

        items = list(items)
        if vectorizer is not None and items:
            if vectorizer.vocabulary is None:
                vectorizer.fit(items)
            items = vectorizer.vectorize_catalog(items)
        for item in items:
            self._items[item.id] = item

    def __len__(self) -> int:
        return len(self._items)

    def upsert(self, item: ContentItemBase) -> ContentItemBase:
        if self.vectorizer is not None:
            item = self.vectorizer.vectorize(item)
        with self._lock:
            self._items[item.id] = item
        return item

    def get_item(self, item_id: str) -> Optional[ContentItemBase]:
        with self._lock:
            return self._items.get(item_id)

    def get_candidates(
        self,
        content_type: Optional[ContentType] = None,
        exclude_ids: Optional[Set[str]] = None,
    ) -> List[ContentItemBase]:
        exclude_ids = exclude_ids or set()
        wanted = content_type.value if content_type is not None else None
        with self._lock:
            return [
                item for item in self._items.values()
                if item.id not in exclude_ids
                and (wanted is None or getattr(item, "type", None) == wanted)
            ]

    def record_engagement(self, item_id: str, event_type: EventType) -> None:
        """Bump view / like counters. Other event types are ignored."""
        if event_type not in (EventType.VIEW, EventType.LIKE):
            return
        with self._lock:
            item = self._items.get(item_id)
            if item is None:
                return
            pop = item.popularity
            self._items[item_id] = item.model_copy(update={"popularity": Popularity(
                views=pop.views + (1 if event_type == EventType.VIEW else 0),
                likes=pop.likes + (1 if event_type == EventType.LIKE else 0),
            )})


class CachedCatalogSource(LoggerMixin):
    """
    Wraps a source with a last-known-good cache.

    On ``DependencyError`` the cached candidates for the same query are
    returned; with nothing cached the error propagates.
    """

    def __init__(self, source: CatalogSource):
        self._source = source
        self._cache: Dict[Tuple[Optional[str], Tuple[str, ...]], List[ContentItemBase]] = {}
        self._lock = RLock()

    @staticmethod
    def _cache_key(
        content_type: Optional[ContentType],
        exclude_ids: Optional[Set[str]],
    ) -> Tuple[Optional[str], Tuple[str, ...]]:
        return (
            content_type.value if content_type is not None else None,
            tuple(sorted(exclude_ids or ())),
        )

    def get_candidates(
        self,
        content_type: Optional[ContentType] = None,
        exclude_ids: Optional[Set[str]] = None,
    ) -> List[ContentItemBase]:
        key = self._cache_key(content_type, exclude_ids)
        try:
            items = self._source.get_candidates(content_type, exclude_ids)
        except DependencyError as e:
            with self._lock:
                cached = self._cache.get(key)
            if cached is None:
                raise
            self.logger.warning(
                "catalog_unavailable_serving_cache",
                error=str(e),
                cached_items=len(cached),
            )
            return list(cached)

        with self._lock:
            self._cache[key] = list(items)
        return items

    def get_item(self, item_id: str) -> Optional[ContentItemBase]:
        try:
            return self._source.get_item(item_id)
        except DependencyError:
            with self._lock:
                for items in self._cache.values():
                    for item in items:
                        if item.id == item_id:
                            return item
            raise

    def record_engagement(self, item_id: str, event_type: EventType) -> None:
        record = getattr(self._source, "record_engagement", None)
        if record is not None:
            record(item_id, event_type)

