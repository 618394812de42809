#!/usr/bin/env python3
"""Smart Launcher MCP Server - query resolution over stdio."""

import asyncio
import logging
import json
import sys
from typing import Any, Dict, List, Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import Tool, TextContent
from mcp.server.models import InitializationOptions
from mcp.server.lowlevel import NotificationOptions

from smart_launcher.config import Settings, get_settings
from smart_launcher.core.aggregator import SourceAggregator
from smart_launcher.core.cache import MemoryCache
from smart_launcher.core.history import CommandHistory, JsonFileStore
from smart_launcher.core.interpreter import QueryInterpreter
from smart_launcher.core.plugins import PluginRegistry
from smart_launcher.core.sources import (
    AppIndexWatcher,
    ClipboardHistory,
    DirectoryAppIndex,
    HttpFetcher,
    MarkdownNotesProvider,
    SpotlightSearch,
    SubprocessExecutor,
)
from smart_launcher.models.schemas import (
    AppMode,
    ExecutableCommand,
    HistoryState,
    dict_of,
)
from smart_launcher.plugins.exact_url import PluginExactUrl
from smart_launcher.plugins.filesystem import create_filesystem_plugin
from smart_launcher.plugins.nlp import create_nlp_plugin
from smart_launcher.plugins.notes import PluginNotes
from smart_launcher.plugins.web_search import PluginWebSearch, PluginWebSuggestions

logger = logging.getLogger(__name__)

SERVER_NAME = "smart-launcher"
SERVER_VERSION = "0.1.0"


def build_default_aggregator(settings: Optional[Settings] = None) -> SourceAggregator:
    """Wire the aggregator to the local adapters and built-in plugins."""
    settings = settings or get_settings()
    shell = SubprocessExecutor(timeout=settings.fetch_timeout)
    interpreter = QueryInterpreter(
        cache=MemoryCache(default_ttl=settings.currency_cache_ttl)
    )
    registry = PluginRegistry(
        [
            PluginExactUrl,
            PluginWebSearch,
            PluginWebSuggestions,
            PluginNotes,
            create_nlp_plugin(interpreter),
            create_filesystem_plugin(SpotlightSearch(shell)),
        ]
    )
    history = CommandHistory(
        JsonFileStore(settings.history_path, HistoryState), settings=settings
    )
    return SourceAggregator(
        history,
        registry=registry,
        interpreter=interpreter,
        settings=settings,
        app_index=DirectoryAppIndex(settings.app_directories),
        shell=shell,
        notes_provider=MarkdownNotesProvider(settings.notes_dir),
        clipboard=ClipboardHistory(),
        fetch=HttpFetcher(timeout=settings.fetch_timeout),
    )


class SmartLauncherMCPServer:
    """MCP Server exposing launcher search, computation and history."""

    def __init__(self, aggregator: Optional[SourceAggregator] = None):
        self.aggregator = aggregator or build_default_aggregator()
        self.watcher: Optional[AppIndexWatcher] = None
        self._started = False

        self.app = Server(SERVER_NAME)
        self._register_handlers()

    def _register_handlers(self):
        """Register MCP protocol handlers."""

        @self.app.list_tools()
        async def list_tools() -> List[Tool]:
            return [
                Tool(
                    name="launcher_search",
                    description="Ranked launcher results for a query",
                    inputSchema={
                        "type": "object",
                        "properties": {
                            "query": {
                                "type": "string",
                                "description": "Text typed into the launcher",
                            },
                            "app_mode": {
                                "type": "string",
                                "enum": [mode.value for mode in AppMode],
                                "default": AppMode.INITIAL.value,
                            },
                            "wait": {
                                "type": "boolean",
                                "description": "Wait for web and filesystem results",
                                "default": True,
                            },
                            "limit": {
                                "type": "integer",
                                "default": 20,
                                "minimum": 1,
                                "maximum": 200,
                            },
                        },
                        "required": ["query"],
                    },
                ),
                Tool(
                    name="launcher_compute",
                    description="Evaluate arithmetic, units, currency, dates or fractions",
                    inputSchema={
                        "type": "object",
                        "properties": {
                            "query": {
                                "type": "string",
                                "description": "e.g. '10 km to miles' or 'two thirds of ninety'",
                            }
                        },
                        "required": ["query"],
                    },
                ),
                Tool(
                    name="launcher_history",
                    description="List run history, most recent first",
                    inputSchema={
                        "type": "object",
                        "properties": {
                            "limit": {
                                "type": "integer",
                                "default": 20,
                                "minimum": 1,
                                "maximum": 500,
                            }
                        },
                    },
                ),
                Tool(
                    name="launcher_history_remove",
                    description="Remove one history entry by handler and value",
                    inputSchema={
                        "type": "object",
                        "properties": {
                            "handler": {"type": "string"},
                            "value": {"type": "string"},
                        },
                        "required": ["handler", "value"],
                    },
                ),
                Tool(
                    name="launcher_run",
                    description="Run a launcher result and record it in history",
                    inputSchema={
                        "type": "object",
                        "properties": {
                            "handler": {
                                "type": "string",
                                "description": "Result handler, e.g. APP, URL or FS_ITEM",
                            },
                            "value": {"type": "string"},
                            "label": {
                                "type": "string",
                                "description": "Display text, defaults to the value",
                            },
                        },
                        "required": ["handler", "value"],
                    },
                ),
                Tool(
                    name="launcher_clipboard_add",
                    description="Record a clipboard snapshot for clipboard mode",
                    inputSchema={
                        "type": "object",
                        "properties": {
                            "text": {
                                "type": "string",
                                "description": "Copied text",
                            }
                        },
                        "required": ["text"],
                    },
                ),
            ]

        @self.app.call_tool()
        async def call_tool(name: str, arguments: Dict[str, Any]) -> List[TextContent]:
            """Handle MCP tool calls with structured output."""
            try:
                result = await self._dispatch_tool_call(name, arguments or {})
                return [
                    TextContent(
                        type="text",
                        text=json.dumps(result, indent=2, ensure_ascii=False),
                    )
                ]
            except Exception as e:
                logger.warning(f"Tool {name} failed: {e}")
                error_result = {"error": str(e), "tool": name, "arguments": arguments}
                return [
                    TextContent(type="text", text=json.dumps(error_result, indent=2))
                ]

    async def _dispatch_tool_call(
        self, name: str, arguments: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Dispatch tool calls to appropriate handlers."""
        handlers = {
            "launcher_search": self._handle_search,
            "launcher_compute": self._handle_compute,
            "launcher_history": self._handle_history,
            "launcher_history_remove": self._handle_history_remove,
            "launcher_run": self._handle_run,
            "launcher_clipboard_add": self._handle_clipboard_add,
        }

        handler = handlers.get(name)
        if not handler:
            raise ValueError(f"Unknown tool: {name}")

        await self.start()
        return await handler(arguments)

    async def start(self):
        """Restore history and index local sources once."""
        if self._started:
            return
        self._started = True
        await self.aggregator.history.restore()
        await self.aggregator.refresh_apps()
        await self.aggregator.refresh_shortcuts()
        await self.aggregator.refresh_notes()

    async def _handle_search(self, args: Dict[str, Any]) -> Dict[str, Any]:
        query = args["query"]
        app_mode = AppMode(args.get("app_mode", AppMode.INITIAL.value)).value
        limit = args.get("limit", 20)

        self.aggregator.failures.clear()
        commands = await self.aggregator.build(query, app_mode)
        if args.get("wait", True):
            await self.aggregator.drain()
            commands = self.aggregator.commands

        return {
            "query": query,
            "app_mode": app_mode,
            "results": [dict_of(command) for command in commands[:limit]],
            "count": len(commands),
            "failures": list(self.aggregator.failures),
        }

    async def _handle_compute(self, args: Dict[str, Any]) -> Dict[str, Any]:
        query = args["query"]
        context = self.aggregator.context(query, AppMode.INITIAL.value)
        results = await self.aggregator.interpreter.interpret(query, context)
        if not results:
            return {"query": query, "status": "no_match"}
        return {
            "query": query,
            "status": "ok",
            "value": results[0].value,
            "label": results[0].label,
        }

    async def _handle_history(self, args: Dict[str, Any]) -> Dict[str, Any]:
        limit = args.get("limit", 20)
        commands = self.aggregator.history.commands_most_recent_first()
        return {
            "entries": [dict_of(command) for command in commands[:limit]],
            "count": len(commands),
            "limit": limit,
        }

    async def _handle_history_remove(self, args: Dict[str, Any]) -> Dict[str, Any]:
        handler, value = args["handler"], args["value"]
        removed = await self.aggregator.history.remove(handler, value)
        return {
            "handler": handler,
            "value": value,
            "status": "removed" if removed else "not_found",
        }

    async def _handle_run(self, args: Dict[str, Any]) -> Dict[str, Any]:
        command = ExecutableCommand(
            label=args.get("label") or args["value"],
            value=args["value"],
            handler=args["handler"],
        )
        result = await self.aggregator.run_command(command)
        return {
            "command": dict_of(command),
            "status": "handled" if result["matched"] else "dispatched",
        }

    async def _handle_clipboard_add(self, args: Dict[str, Any]) -> Dict[str, Any]:
        clipboard = self.aggregator.clipboard
        if clipboard is None or not self.aggregator.settings.clipboard_recording_enabled:
            return {"status": "disabled"}

        added = clipboard.add_snapshot(args["text"])
        return {
            "status": "added" if added else "duplicate",
            "count": len(clipboard.snapshots()),
        }

    async def run(self):
        """Run MCP server over stdio."""
        await self.start()
        self.watcher = AppIndexWatcher(
            self.aggregator.settings.app_directories, self.aggregator.on_apps_changed
        )
        self.watcher.start()
        try:
            async with stdio_server() as (read_stream, write_stream):
                await self.app.run(
                    read_stream,
                    write_stream,
                    InitializationOptions(
                        server_name=SERVER_NAME,
                        server_version=SERVER_VERSION,
                        capabilities=self.app.get_capabilities(
                            notification_options=NotificationOptions(),
                            experimental_capabilities={},
                        ),
                    ),
                )
        finally:
            self.watcher.stop()
            await self.aggregator.close()


async def async_main():
    """Main async entry point."""
    server = SmartLauncherMCPServer()
    await server.run()


def main():
    """Synchronous entry point for console script."""
    # stdout carries the MCP protocol
    logging.basicConfig(level=logging.INFO, stream=sys.stderr)
    try:
        asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Smart Launcher MCP Server stopped")
    except Exception as e:
        logger.error(f"Server error: {e}")
        raise


if __name__ == "__main__":
    main()
