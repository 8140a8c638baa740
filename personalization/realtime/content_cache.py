"""Process-lifetime cache of content items.

Appended to by new-content events and read by every identity. Iteration works
on a snapshot so a concurrent append never disturbs an in-flight scoring pass.
"""

from dataclasses import dataclass, field

from personalization.domain.entities import ContentItem


@dataclass
class ContentCache:
    _items: dict[str, ContentItem] = field(default_factory=dict, init=False)

    def __len__(self) -> int:
        return len(self._items)

    def add(self, item: ContentItem) -> ContentItem:
        self._items[item.content_id] = item
        return item

    def get(self, content_id: str) -> ContentItem | None:
        return self._items.get(content_id)

    def snapshot(self) -> list[ContentItem]:
        return list(self._items.values())
