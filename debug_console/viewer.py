"""Debug-log viewer — the surface handed to the rendering layer."""

import threading
from dataclasses import replace
from typing import Iterable, Mapping

from debug_console.client import AdminApiClient
from debug_console.filters import build_predicate
from debug_console.formatter import DISPLAY_TIMEZONE, ClientInfo, describe_client, format_display_time
from debug_console.models import DebugUser, LogRecord
from debug_console.query import QueryToken, append_tag, category_path, tokenize
from debug_console.tail import LiveTailController
from debug_console.taxonomy import STATIC_SCHEMA, TaxonomyMap, build_taxonomy


class DebugLogViewer:
    """Ties the tail controller to the query, filters and taxonomy."""

    def __init__(
        self,
        controller: LiveTailController,
        static_schema: Mapping[str, Iterable[str]] = STATIC_SCHEMA,
        client: AdminApiClient | None = None,
        tz_name: str = DISPLAY_TIMEZONE,
    ):
        self._controller = controller
        self._static_schema = static_schema
        self._client = client
        self._tz_name = tz_name
        self._lock = threading.Lock()
        self._query = ""
        self._levels: frozenset[str] = frozenset()
        self._severities: frozenset[str] = frozenset()
        self._taxonomy_key: tuple[int, int] | None = None
        self._taxonomy: TaxonomyMap | None = None
        self._user: DebugUser | None = None

    @property
    def controller(self) -> LiveTailController:
        return self._controller

    @property
    def user(self) -> DebugUser | None:
        return self._user

    @property
    def query(self) -> str:
        return self._query

    @property
    def following(self) -> bool:
        return self._controller.following

    @property
    def error(self) -> str | None:
        return self._controller.error

    def open(self, user: DebugUser) -> bool:
        self._user = user
        return self._controller.select_subject(user.id, debug_enabled=user.debug_enabled)

    def set_query(self, query: str):
        self._query = query or ""

    def set_level_filter(self, levels: Iterable[str] | None):
        self._levels = frozenset(str(v).lower() for v in levels or ())

    def set_severity_filter(self, severities: Iterable[str] | None):
        self._severities = frozenset(str(v).lower() for v in severities or ())

    def taxonomy(self) -> TaxonomyMap:
        """Taxonomy over the current records, rebuilt when they change."""
        state = self._controller.state
        key = (state.epoch, len(state.records))
        with self._lock:
            if self._taxonomy is None or self._taxonomy_key != key:
                self._taxonomy = build_taxonomy(self._static_schema, state.records)
                self._taxonomy_key = key
            return self._taxonomy

    def tokens(self) -> list[QueryToken]:
        return tokenize(self._query, self.taxonomy())

    def predicate(self):
        return build_predicate(
            self.tokens(),
            self._levels,
            self._severities,
            format_time=lambda ts: format_display_time(ts, self._tz_name),
        )

    def visible_records(self) -> list[LogRecord]:
        predicate = self.predicate()
        return [record for record in self._controller.records if predicate(record)]

    def main_categories(self) -> list[str]:
        return self.taxonomy().main_categories()

    def sub_tags(self, main: str) -> list[str]:
        return self.taxonomy().sub_tags(main)

    def suggestions(self) -> list[str]:
        """Next drill-down choices for the query as typed so far."""
        return self.taxonomy().suggestions(category_path(self.tokens()))

    def add_category(self, tag: str) -> str:
        self._query = append_tag(self._query, tag)
        return self._query

    def toggle_following(self) -> bool:
        return self._controller.toggle_following()

    def consume_scroll_request(self) -> bool:
        return self._controller.consume_scroll_request()

    def client_info(self) -> ClientInfo | None:
        return describe_client(self._controller.records)

    def toggle_debug(self) -> bool:
        """Flip the subject's debug flag server-side and follow accordingly."""
        if self._client is None or self._user is None:
            raise RuntimeError("toggle_debug needs an API client and an open subject")
        enabled = self._client.toggle_debug(self._user.id)
        self._user = replace(self._user, debug_enabled=enabled)
        self._controller.set_following(enabled)
        return enabled

    def close(self):
        self._controller.close()
