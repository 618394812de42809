"""Web search plugins: the literal search and live search suggestions."""

import logging
from typing import Any, List
from urllib.parse import quote, quote_plus

from smart_launcher.core.plugins import PluginContext, PluginDispatch, create_plugin
from smart_launcher.models.schemas import (
    AppMode,
    CommandHandler,
    CommandPriority,
    ExecutableCommand,
    SearchEngine,
)

logger = logging.getLogger(__name__)

MIN_COMPLETION_QUERY_LENGTH = 3

SEARCH_URLS = {
    SearchEngine.DUCKDUCKGO: "https://duckduckgo.com/?q={query}",
    SearchEngine.STARTPAGE: "https://www.startpage.com/do/search?q={query}",
    SearchEngine.GOOGLE: "https://www.google.com/search?q={query}",
    SearchEngine.SCIRA: "https://scira.com/search?q={query}",
}


def get_search_url(query: str, engine: SearchEngine) -> str:
    return SEARCH_URLS[SearchEngine(engine)].format(query=quote_plus(query))


def _completion_list(payload: Any) -> List[str]:
    """Accept OpenSearch ``[query, [...]]``, a plain list or ``{"suggestions": ...}``."""
    if isinstance(payload, dict):
        items = payload.get("suggestions", [])
    elif (
        isinstance(payload, list)
        and len(payload) == 2
        and isinstance(payload[0], str)
        and isinstance(payload[1], list)
    ):
        items = payload[1]
    elif isinstance(payload, list):
        items = payload
    else:
        return []

    completions = []
    for item in items:
        if isinstance(item, dict):
            item = item.get("text") or item.get("phrase")
        if isinstance(item, str) and item.strip():
            completions.append(item.strip())
    return completions


async def fetch_completions(query: str, context: PluginContext) -> List[str]:
    url = context.settings.suggestions_url.format(query=quote(query))
    try:
        response = await context.fetch(url)
        response.raise_for_status()
    except Exception as e:
        logger.warning(f"Fetching completions for {query!r} failed: {e}")
        context.fail("Failed to fetch completions")
        return []

    try:
        payload = response.json()
    except ValueError as e:
        logger.warning(f"Invalid completions payload for {query!r}: {e}")
        context.fail("Failed to parse completions")
        return []
    return _completion_list(payload)


def _search_command(
    query: str, context: PluginContext, priority: int = CommandPriority.LOW
) -> ExecutableCommand:
    return ExecutableCommand(
        label=query,
        value=get_search_url(query, context.settings.default_search_engine),
        handler=CommandHandler.URL,
        priority=priority,
        app_modes=[AppMode.INITIAL],
    )


def web_search_results(query: str, context: PluginContext) -> List[ExecutableCommand]:
    """The literal search for the query, available without any fetch."""
    query = query.strip()
    if not query:
        return []
    return [_search_command(query, context, CommandPriority.MEDIUM)]


async def suggestion_results(
    query: str, context: PluginContext
) -> List[ExecutableCommand]:
    """Search completions from the suggestions service."""
    query = query.strip()
    if len(query) < MIN_COMPLETION_QUERY_LENGTH:
        return []
    return [
        _search_command(completion, context)
        for completion in await fetch_completions(query, context)
        if completion != query
    ]


PluginWebSearch = create_plugin(
    name="WebSearch",
    add_search_results=web_search_results,
)

PluginWebSuggestions = create_plugin(
    name="WebSuggestions",
    add_search_results=suggestion_results,
    dispatch=PluginDispatch.DEFERRED,
)
