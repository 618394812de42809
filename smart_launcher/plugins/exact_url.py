"""Turns a query that looks like a hostname into a URL command."""

import re
from typing import List

from smart_launcher.core.plugins import PluginContext, create_plugin
from smart_launcher.models.schemas import (
    AppMode,
    CommandHandler,
    CommandPriority,
    ExecutableCommand,
)

HOSTNAME_PATTERN = re.compile(r"[a-zA-Z0-9\-\.]{1,61}\.[a-zA-Z]{2,}")
SCHEME_PATTERN = re.compile(r"^https?://", re.IGNORECASE)


def looks_like_url(query: str) -> bool:
    query = query.strip()
    return bool(query) and " " not in query and bool(HOSTNAME_PATTERN.search(query))


def normalize_url(query: str) -> str:
    query = query.strip()
    return query if SCHEME_PATTERN.match(query) else f"https://{query}"


def exact_url_results(query: str, context: PluginContext) -> List[ExecutableCommand]:
    if not looks_like_url(query):
        return []
    return [
        ExecutableCommand(
            label=query,
            value=normalize_url(query),
            handler=CommandHandler.URL,
            smart_match=True,
            priority=CommandPriority.TOP,
            app_modes=[AppMode.INITIAL],
        )
    ]


PluginExactUrl = create_plugin(name="ExactUrl", add_search_results=exact_url_results)
