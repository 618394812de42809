"""Plugin contract: factories, instances with optional capabilities, registry."""

import asyncio
import inspect
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple

from pydantic import ValidationError

from smart_launcher.config import Settings, get_settings
from smart_launcher.core.i18n import translate
from smart_launcher.models.schemas import AppMode, ExecutableCommand, Note

logger = logging.getLogger(__name__)

Fetch = Callable[..., Awaitable[Any]]
Exec = Callable[[ExecutableCommand], Awaitable[None]]
Translate = Callable[..., str]
Fail = Callable[[str], None]


class PluginDispatch(str, Enum):
    """When the aggregator asks a plugin for search results."""

    # awaited during the first pass of a build
    IMMEDIATE = "IMMEDIATE"
    # zero-delay task after the first pass, guarded by the build token
    DEFERRED = "DEFERRED"
    # debounced task guarded by the filesystem token
    DEBOUNCED = "DEBOUNCED"


async def unavailable_fetch(url: str, **kwargs: Any) -> Any:
    raise RuntimeError(f"No fetch capability configured for {url}")


async def unavailable_exec(command: ExecutableCommand) -> None:
    logger.debug(f"No exec capability configured for {command.handler}")


def _log_failure(reason: str) -> None:
    logger.warning(reason)


@dataclass(frozen=True)
class PluginContext:
    """Read-only snapshot handed to every plugin and parser call."""

    query: str = ""
    app_mode: str = AppMode.INITIAL.value
    settings: Settings = field(default_factory=get_settings)
    notes: Tuple[Note, ...] = ()
    fetch: Fetch = unavailable_fetch
    exec: Exec = unavailable_exec
    t: Translate = translate
    fail: Fail = _log_failure

    def evolve(self, **changes: Any) -> "PluginContext":
        return replace(self, **changes)


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def _as_command(item: Any) -> ExecutableCommand:
    if isinstance(item, ExecutableCommand):
        return item
    return ExecutableCommand.model_validate(item)


class Plugin:
    """A plugin factory: call it with a context to get an instance."""

    def __init__(
        self,
        name: str,
        on_register: Optional[Callable] = None,
        handle_command: Optional[Callable] = None,
        add_app_modes: Optional[Callable] = None,
        add_search_results: Optional[Callable] = None,
        app_modes: Iterable[str] = (AppMode.INITIAL.value,),
        dispatch: PluginDispatch = PluginDispatch.IMMEDIATE,
    ):
        self.name = name
        self.on_register = on_register
        self.handle_command = handle_command
        self.add_app_modes = add_app_modes
        self.add_search_results = add_search_results
        self.app_modes = tuple(
            mode.value if isinstance(mode, Enum) else mode for mode in app_modes
        )
        self.dispatch = dispatch
        self.registered = False

    def __call__(self, context: PluginContext) -> "PluginInstance":
        return PluginInstance(self, context)

    def serves(self, app_mode: str) -> bool:
        return app_mode in self.app_modes

    def __repr__(self) -> str:
        return f"Plugin({self.name!r}, dispatch={self.dispatch.value})"


class PluginInstance:
    """A plugin bound to one context.

    ``add_app_modes`` and ``add_search_results`` are None when the plugin
    does not implement them, so callers check before calling.
    """

    def __init__(self, plugin: Plugin, context: PluginContext):
        self.plugin = plugin
        self.name = plugin.name
        self.context = context
        self.add_app_modes = self._add_app_modes if plugin.add_app_modes else None
        self.add_search_results = (
            self._add_search_results if plugin.add_search_results else None
        )

    async def register(self) -> "PluginInstance":
        """Run the one-time setup hook; later calls are no-ops."""
        if self.plugin.on_register is not None and not self.plugin.registered:
            await _resolve(self.plugin.on_register(self.context))
            self.plugin.registered = True
            logger.debug(f"Registered plugin {self.name}")
        return self

    async def handle_command(self, command: ExecutableCommand) -> Dict[str, bool]:
        if self.plugin.handle_command is None:
            return {"matched": False}
        result = await _resolve(self.plugin.handle_command(command, self.context))
        if isinstance(result, dict):
            return {"matched": bool(result.get("matched", False))}
        return {"matched": bool(result)}

    async def _add_app_modes(self) -> List[str]:
        modes = await _resolve(self.plugin.add_app_modes(self.context))
        return [str(mode) for mode in modes or []]

    async def _add_search_results(self, query: str) -> List[ExecutableCommand]:
        results = await _resolve(self.plugin.add_search_results(query, self.context))
        return [_as_command(item) for item in results or []]


def create_plugin(
    name: str,
    on_register: Optional[Callable] = None,
    handle_command: Optional[Callable] = None,
    add_app_modes: Optional[Callable] = None,
    add_search_results: Optional[Callable] = None,
    app_modes: Iterable[str] = (AppMode.INITIAL.value,),
    dispatch: PluginDispatch = PluginDispatch.IMMEDIATE,
) -> Plugin:
    """Create a plugin factory; every capability is optional.

    Callbacks may be plain functions or coroutines:
    ``on_register(context)``, ``handle_command(command, context)``,
    ``add_app_modes(context)`` and ``add_search_results(query, context)``.
    """
    return Plugin(
        name=name,
        on_register=on_register,
        handle_command=handle_command,
        add_app_modes=add_app_modes,
        add_search_results=add_search_results,
        app_modes=app_modes,
        dispatch=dispatch,
    )


class PluginRegistry:
    """Holds plugin factories and fans calls out to the capable ones."""

    def __init__(self, plugins: Optional[Iterable[Plugin]] = None):
        self.plugins: List[Plugin] = list(plugins or [])

    async def register(self, plugin: Plugin, context: PluginContext) -> PluginInstance:
        if plugin not in self.plugins:
            self.plugins.append(plugin)
        return await plugin(context).register()

    async def register_all(self, context: PluginContext):
        for plugin in self.plugins:
            await plugin(context).register()

    def has_dispatch(self, app_mode: str, dispatch: PluginDispatch) -> bool:
        return any(
            plugin.add_search_results is not None
            and plugin.dispatch == dispatch
            and plugin.serves(app_mode)
            for plugin in self.plugins
        )

    async def search(
        self,
        context: PluginContext,
        dispatch: PluginDispatch = PluginDispatch.IMMEDIATE,
    ) -> List[ExecutableCommand]:
        """Collect search results from plugins serving the context's mode."""
        eligible = [
            plugin
            for plugin in self.plugins
            if plugin.add_search_results is not None
            and plugin.dispatch == dispatch
            and plugin.serves(context.app_mode)
        ]
        outcomes = await asyncio.gather(
            *(self._search_one(plugin, context) for plugin in eligible)
        )
        return [command for commands in outcomes for command in commands]

    async def _search_one(
        self, plugin: Plugin, context: PluginContext
    ) -> List[ExecutableCommand]:
        try:
            commands = await plugin(context).add_search_results(context.query)
        except ValidationError:
            raise
        except Exception as e:
            logger.warning(f"Plugin {plugin.name} failed to add search results: {e}")
            return []
        return [command for command in commands if context.app_mode in command.app_modes]

    async def app_modes(self, context: PluginContext) -> List[str]:
        """Extra UI modes contributed by plugins, in registration order."""
        modes: List[str] = []
        for plugin in self.plugins:
            instance = plugin(context)
            if instance.add_app_modes is None:
                continue
            try:
                contributed = await instance.add_app_modes()
            except Exception as e:
                logger.warning(f"Plugin {plugin.name} failed to add app modes: {e}")
                continue
            modes.extend(mode for mode in contributed if mode not in modes)
        return modes

    async def handle_command(
        self, command: ExecutableCommand, context: PluginContext
    ) -> Dict[str, bool]:
        """Offer a command to each plugin; the first one to match claims it."""
        for plugin in self.plugins:
            if plugin.handle_command is None:
                continue
            try:
                result = await plugin(context).handle_command(command)
            except Exception as e:
                logger.warning(f"Plugin {plugin.name} failed to handle command: {e}")
                continue
            if result["matched"]:
                logger.debug(f"Plugin {plugin.name} handled {command.handler}")
                return result
        return {"matched": False}
