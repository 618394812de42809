"""Filesystem search plugin backed by a spotlight-like search collaborator."""

import logging
from typing import List

from smart_launcher.core.plugins import Plugin, PluginContext, PluginDispatch, create_plugin
from smart_launcher.core.sources import FilesystemSearch, build_fs_commands
from smart_launcher.models.schemas import ExecutableCommand

logger = logging.getLogger(__name__)


def create_filesystem_plugin(search: FilesystemSearch) -> Plugin:
    """Build the debounced filesystem plugin around a search backend."""

    async def filesystem_results(
        query: str, context: PluginContext
    ) -> List[ExecutableCommand]:
        if len(query) < context.settings.fs_search_min_length:
            return []
        results = await search.search(
            query,
            context.settings.fs_search_extensions,
            context.settings.fs_search_home_only,
        )
        logger.debug(f"Filesystem search for {query!r} found {len(results)} items")
        return build_fs_commands(results)

    return create_plugin(
        name="Filesystem",
        add_search_results=filesystem_results,
        dispatch=PluginDispatch.DEBOUNCED,
    )
