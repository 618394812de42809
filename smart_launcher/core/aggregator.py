"""Source aggregator: collects candidates per UI mode and publishes rankings.

A build first publishes what the fast sources give (apps, history,
shortcuts, menu, immediate plugins and the offline parsers' answer).
Slower plugins, network-bound parsers included, run afterwards; each
stores its results in its own cache and re-publishes the ranking,
provided its cancellation token is still current.
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, Coroutine, Dict, List, Optional, Set, Tuple

from smart_launcher.config import Settings, get_settings
from smart_launcher.core.cancellation import CancellationCoordinator, DebounceScheduler
from smart_launcher.core.history import CommandHistory
from smart_launcher.core.i18n import translate
from smart_launcher.core.interpreter import QueryInterpreter
from smart_launcher.core.plugins import (
    Exec,
    Fail,
    Fetch,
    PluginContext,
    PluginDispatch,
    PluginRegistry,
    Translate,
    unavailable_exec,
    unavailable_fetch,
)
from smart_launcher.core.ranking import rank_commands
from smart_launcher.core.sources import (
    AppIndex,
    ClipboardSource,
    NotesProvider,
    ShellExecutor,
    build_app_commands,
    build_clipboard_commands,
    build_menu_commands,
    build_shortcut_commands,
)
from smart_launcher.models.schemas import (
    AppMode,
    CommandHandler,
    ExecutableCommand,
    Note,
    SystemCommand,
)
from smart_launcher.plugins.exact_url import looks_like_url, normalize_url

logger = logging.getLogger(__name__)

Listener = Callable[[List[ExecutableCommand]], Any]


class SourceAggregator:
    """Builds the ranked command list for a query and UI mode."""

    def __init__(
        self,
        history: CommandHistory,
        registry: Optional[PluginRegistry] = None,
        interpreter: Optional[QueryInterpreter] = None,
        settings: Optional[Settings] = None,
        app_index: Optional[AppIndex] = None,
        shell: Optional[ShellExecutor] = None,
        notes_provider: Optional[NotesProvider] = None,
        clipboard: Optional[ClipboardSource] = None,
        fetch: Fetch = unavailable_fetch,
        exec: Exec = unavailable_exec,
        fail: Optional[Fail] = None,
        t: Translate = translate,
        listener: Optional[Listener] = None,
    ):
        self.history = history
        self.registry = registry or PluginRegistry()
        self.interpreter = interpreter or QueryInterpreter()
        self.settings = settings or get_settings()
        self.app_index = app_index
        self.shell = shell
        self.notes_provider = notes_provider
        self.clipboard = clipboard
        self.fetch = fetch
        self.exec = exec
        self.fail = fail or self._log_failure
        self.t = t
        self.listener = listener

        self.coordinator = CancellationCoordinator("build")
        self.fs_coordinator = CancellationCoordinator("fs")
        self.debouncer = DebounceScheduler()

        self.signed_in = False
        self.failures: List[str] = []
        self.app_commands: List[ExecutableCommand] = []
        self.shortcut_commands: List[ExecutableCommand] = []
        self.notes: Tuple[Note, ...] = ()
        self.commands: List[ExecutableCommand] = []

        # Per-cycle results, read synchronously by _compose
        self._query = ""
        self._app_mode: str = AppMode.INITIAL.value
        self._formula_results: List[ExecutableCommand] = []
        self._immediate_results: List[ExecutableCommand] = []
        self._menu_commands: List[ExecutableCommand] = []

        # Scoped caches written by the async producers
        self._deferred_results: List[ExecutableCommand] = []
        self._debounced_results: List[ExecutableCommand] = []

        self._is_refining = False
        self._background: Set[asyncio.Task] = set()

    def _log_failure(self, reason: str):
        logger.warning(f"Producer reported failure: {reason}")
        self.failures.append(reason)

    def context(self, query: str, app_mode: str) -> PluginContext:
        return PluginContext(
            query=query,
            app_mode=app_mode,
            settings=self.settings,
            notes=self.notes,
            fetch=self.fetch,
            exec=self.exec,
            t=self.t,
            fail=self.fail,
        )

    # Local sources

    async def refresh_apps(self):
        if self.app_index is None:
            return
        try:
            apps = await self.app_index.find()
        except Exception as e:
            logger.warning(f"Application index lookup failed: {e}")
            return
        self.app_commands = build_app_commands(apps)
        logger.info(f"Indexed {len(self.app_commands)} applications")

    async def refresh_shortcuts(self):
        if self.shell is None:
            return
        try:
            result = await self.shell.run("shortcuts", ["list"])
        except Exception as e:
            logger.warning(f"Listing shortcuts failed: {e}")
            return
        if result.exit_code != 0:
            logger.debug(f"Shortcuts unavailable: {result.stderr.strip()}")
            return
        self.shortcut_commands = build_shortcut_commands(result.stdout)

    async def refresh_notes(self):
        if self.notes_provider is None:
            return
        try:
            self.notes = tuple(await self.notes_provider.list())
        except Exception as e:
            logger.warning(f"Listing notes failed: {e}")

    def on_apps_changed(self):
        """Watcher callback: re-index applications, then rebuild."""
        self._spawn(self._reindex_and_rebuild())

    async def _reindex_and_rebuild(self):
        await self.refresh_apps()
        await self.build(self._query, self._app_mode)

    # Build cycle

    async def build(
        self, query: str, app_mode: str = AppMode.INITIAL.value
    ) -> List[ExecutableCommand]:
        """Start a build cycle and return the list published for it."""
        if self._is_refining:
            logger.debug("Rebuild requested while refining, ignoring")
            return list(self.commands)

        token = self.coordinator.begin_cycle()
        # Pending and in-flight filesystem searches belong to an older query now
        self.debouncer.cancel()
        fs_token = self.fs_coordinator.begin_cycle()
        app_mode = getattr(app_mode, "value", app_mode)

        if app_mode == AppMode.NOTES:
            await self.refresh_notes()
        context = self.context(query, app_mode)

        formula_results: List[ExecutableCommand] = []
        if app_mode == AppMode.INITIAL and query.strip():
            # Network-bound answers arrive later through deferred plugins
            formula_results = await self.interpreter.interpret(
                query, context, offline=True
            )
        immediate_results = await self.registry.search(context, PluginDispatch.IMMEDIATE)
        menu_commands = self._menu_commands
        if app_mode in (AppMode.INITIAL, AppMode.MENU):
            extra_modes = await self.registry.app_modes(context)
            menu_commands = build_menu_commands(
                self.signed_in, self.settings, self.t, extra_modes
            )

        if not self.coordinator.is_current(token):
            logger.debug(f"Build for {query!r} superseded before publishing")
            return list(self.commands)

        if (query, app_mode) != (self._query, self._app_mode):
            # Async results of the previous query no longer apply
            self._deferred_results = []
            self._debounced_results = []
        self._query, self._app_mode = query, app_mode
        self._formula_results = formula_results
        self._immediate_results = immediate_results
        self._menu_commands = menu_commands
        await self._publish(self._compose())

        if app_mode == AppMode.INITIAL and query.strip():
            self._dispatch_deferred(context, token)
            self._dispatch_debounced(context, fs_token)
        return list(self.commands)

    def _history_candidates(self) -> List[ExecutableCommand]:
        commands = self.history.commands_most_recent_first()
        if not looks_like_url(self._query):
            return commands
        # The exact-URL result already stands for this query
        literal = {self._query.strip(), normalize_url(self._query)}
        return [
            command
            for command in commands
            if not (command.handler == CommandHandler.URL and command.value in literal)
        ]

    def _formula_answers(self) -> Tuple[List[ExecutableCommand], List[ExecutableCommand]]:
        """Formula results and the other deferred results.

        A deferred answer went through every parser in order, so it
        replaces the one found by the offline parsers.
        """
        answers, others = [], []
        for command in self._deferred_results:
            if command.handler == CommandHandler.FORMULA_RESULT:
                answers.append(command)
            else:
                others.append(command)
        return answers or self._formula_results, others

    def _compose(self) -> List[ExecutableCommand]:
        query, app_mode = self._query, self._app_mode
        formula_results, deferred_results = self._formula_answers()
        if app_mode == AppMode.INITIAL:
            if not query.strip():
                return rank_commands(
                    self.history.commands_most_recent_first(), query, app_mode
                )
            candidates = (
                self.app_commands
                + self._immediate_results
                + deferred_results
                + self._debounced_results
                + self._history_candidates()
                + self.shortcut_commands
                + self._menu_commands
            )
        elif app_mode == AppMode.MENU:
            candidates = self._menu_commands
        elif app_mode == AppMode.CLIPBOARD:
            snapshots = self.clipboard.snapshots() if self.clipboard else []
            candidates = build_clipboard_commands(snapshots)
        else:
            candidates = self._immediate_results

        eligible = [command for command in candidates if app_mode in command.app_modes]
        return rank_commands(eligible, query, app_mode, formula_results)

    async def _publish(self, commands: List[ExecutableCommand]):
        self.commands = commands
        if self.listener is None:
            return
        try:
            result = self.listener(list(commands))
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Result listener failed")

    async def _refine(self):
        """Re-publish after an async producer stored new results.

        Builds requested by the listener meanwhile are ignored, so a
        refinement never re-triggers the fetch that caused it.
        """
        self._is_refining = True
        try:
            await self._publish(self._compose())
        finally:
            self._is_refining = False

    # Async producers

    def _dispatch_deferred(self, context: PluginContext, token: str):
        if self.registry.has_dispatch(context.app_mode, PluginDispatch.DEFERRED):
            # create_task starts on the next loop iteration, after build returns
            self._spawn(self._run_deferred(context, token))

    async def _run_deferred(self, context: PluginContext, token: str):
        results = await self.registry.search(context, PluginDispatch.DEFERRED)
        if not self.coordinator.is_current(token):
            logger.debug(f"Discarding stale deferred results for {context.query!r}")
            return
        self._deferred_results = results
        await self._refine()

    def _dispatch_debounced(self, context: PluginContext, token: str):
        if len(context.query) < self.settings.fs_search_min_length:
            return
        if not self.registry.has_dispatch(context.app_mode, PluginDispatch.DEBOUNCED):
            return
        self.debouncer.schedule(
            lambda: self._spawn(self._run_debounced(context, token)),
            self.settings.fs_search_debounce_ms / 1000,
        )

    async def _run_debounced(self, context: PluginContext, token: str):
        results = await self.registry.search(context, PluginDispatch.DEBOUNCED)
        if not self.fs_coordinator.is_current(token):
            logger.debug(f"Discarding stale filesystem results for {context.query!r}")
            return
        self._debounced_results = results
        await self._refine()

    def _spawn(self, coroutine: Coroutine[Any, Any, Any]) -> asyncio.Task:
        task = asyncio.create_task(coroutine)
        self._background.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task):
        self._background.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Background producer failed: {task.exception()!r}")

    async def drain(self):
        """Wait until pending debounce timers and producers have finished."""
        while self._background or self.debouncer.pending:
            if self._background:
                await asyncio.gather(*list(self._background), return_exceptions=True)
            else:
                await asyncio.sleep(0.01)

    async def close(self):
        self.debouncer.cancel()
        tasks = list(self._background)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    # Execution

    async def run_command(self, command: ExecutableCommand) -> Dict[str, bool]:
        """Record a command in history and hand it to whoever handles it."""
        await self.history.record(command)

        if command.handler == CommandHandler.SYSTEM:
            if command.value == SystemCommand.CLEAR_HISTORY.value:
                await self.history.clear()
                return {"matched": True}
            if command.value == SystemCommand.CLEAR_NOTES.value:
                await self.history.remove_handler(CommandHandler.OPEN_NOTE)

        result = await self.registry.handle_command(
            command, self.context(self._query, self._app_mode)
        )
        if not result["matched"]:
            await self.exec(command)
        return result
