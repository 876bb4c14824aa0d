"""Category taxonomy — static schema merged with tags seen in fetched records."""

import re
from typing import Iterable, Mapping

from debug_console.models import LogRecord

TAG_PATTERN = re.compile(r"\[([^\[\]]+)\]")

# Main category -> known sub-tags, as emitted by the client apps.
STATIC_SCHEMA: dict[str, set[str]] = {
    "API": {"Notifications", "Points", "Auth", "Users", "Debug"},
    "Auth": {"Login", "Logout", "Recovery", "Update", "Error"},
    "Settings": {"Recovery Key", "Language", "Theme", "Privacy"},
    "Map": {"Geolocation", "Route", "Tiles", "Markers"},
    "Notifications": {"Push", "Broadcast", "Popup", "Permission"},
    "Points": {"Submit", "Confirm", "Deactivate", "Details"},
    "Logger": {"Init", "Upload"},
    "System": {"Startup", "Offline", "Crash"},
}


def extract_tags(category: str) -> list[str]:
    """Return the bracketed tags of a category string, in order."""
    if not category:
        return []
    return [tag.strip() for tag in TAG_PATTERN.findall(category) if tag.strip()]


class TaxonomyMap:
    """Two-level category map. Only grows; rebuild it rather than patching it."""

    def __init__(self, mapping: Mapping[str, Iterable[str]] | None = None):
        self._map: dict[str, set[str]] = {}
        for main, subs in (mapping or {}).items():
            self._map[main] = set(subs)

    def add(self, main: str, subs: Iterable[str] = ()) -> None:
        self._map.setdefault(main, set()).update(subs)

    def main_categories(self) -> list[str]:
        return sorted(self._map)

    def sub_tags(self, main: str) -> list[str]:
        return sorted(self._map.get(main, ()))

    def is_sub_tag(self, main: str, tag: str) -> bool:
        """Case-insensitive check that *tag* is a known sub-tag of *main*."""
        main_key = self._lookup(main)
        if main_key is None:
            return False
        lowered = tag.lower()
        return any(sub.lower() == lowered for sub in self._map[main_key])

    def suggestions(self, path: list[str]) -> list[str]:
        """Drill-down candidates for a bracket path.

        An empty path suggests main categories; otherwise the sub-tags of
        the path's main category that are not already on the path.
        """
        if not path:
            return self.main_categories()
        main_key = self._lookup(path[0])
        if main_key is None:
            return []
        chosen = {tag.lower() for tag in path[1:]}
        return [sub for sub in self.sub_tags(main_key) if sub.lower() not in chosen]

    def as_dict(self) -> dict[str, set[str]]:
        return {main: set(subs) for main, subs in self._map.items()}

    def _lookup(self, main: str) -> str | None:
        if main in self._map:
            return main
        lowered = main.lower()
        for key in self._map:
            if key.lower() == lowered:
                return key
        return None

    def __contains__(self, main: str) -> bool:
        return main in self._map

    def __len__(self) -> int:
        return len(self._map)

    def __eq__(self, other) -> bool:
        if not isinstance(other, TaxonomyMap):
            return NotImplemented
        return self._map == other._map

    def __repr__(self) -> str:
        return f"TaxonomyMap({self._map!r})"


def build_taxonomy(
    static_schema: Mapping[str, Iterable[str]],
    records: Iterable[LogRecord],
) -> TaxonomyMap:
    """Merge the static schema with the tags found in *records*.

    The schema is copied, never mutated. For each record the first tag is
    the main category and every following tag is added to its sub-tag set.
    """
    taxonomy = TaxonomyMap(static_schema)
    for record in records:
        if not isinstance(record, LogRecord) or record.malformed:
            continue
        tags = extract_tags(record.category)
        if not tags:
            continue
        taxonomy.add(tags[0], tags[1:])
    return taxonomy


STATIC_TAXONOMY = TaxonomyMap(STATIC_SCHEMA)
