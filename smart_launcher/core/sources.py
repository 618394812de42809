"""Local result sources: collaborator contracts, default adapters and builders."""

import asyncio
import logging
import os
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, Sequence

import httpx
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from smart_launcher.config import Settings
from smart_launcher.models.schemas import (
    AppEntry,
    AppMode,
    CommandHandler,
    ExecutableCommand,
    FsSearchResult,
    Note,
    ShellResult,
    SystemCommand,
)

logger = logging.getLogger(__name__)

USER_AGENT = "smart-launcher/0.1"

DEFAULT_FS_EXTENSIONS = (
    "pdf", "txt", "md", "rtf", "doc", "docx", "xls", "xlsx", "ppt", "pptx",
    "pages", "numbers", "key", "csv", "png", "jpg", "jpeg",
)

FOLDER_CONTENT_TYPE = "public.folder"


# Collaborator contracts


class AppIndex(Protocol):
    async def find(self) -> List[AppEntry]: ...


class ShellExecutor(Protocol):
    async def run(self, command: str, args: Sequence[str] = ()) -> ShellResult: ...


class FilesystemSearch(Protocol):
    async def search(
        self, query: str, extra_extensions: Sequence[str], home_only: bool
    ) -> List[FsSearchResult]: ...


class NotesProvider(Protocol):
    async def list(self) -> List[Note]: ...


class ClipboardSource(Protocol):
    def add_snapshot(self, text: str) -> bool: ...

    def snapshots(self) -> List[str]: ...


# Default adapters


class HttpFetcher:
    """Fetch capability backed by httpx, injected into plugin contexts."""

    def __init__(self, timeout: float = 5.0):
        self.timeout = timeout

    async def __call__(
        self, url: str, headers: Optional[Dict[str, str]] = None
    ) -> httpx.Response:
        request_headers = {"User-Agent": USER_AGENT, **(headers or {})}
        async with httpx.AsyncClient(
            timeout=self.timeout, follow_redirects=True
        ) as client:
            return await client.get(url, headers=request_headers)


class SubprocessExecutor:
    """Runs a program and captures its output."""

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout

    async def run(self, command: str, args: Sequence[str] = ()) -> ShellResult:
        try:
            process = await asyncio.create_subprocess_exec(
                command,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError:
            return ShellResult(stderr=f"{command}: command not found", exit_code=127)

        stdout, stderr = await asyncio.wait_for(process.communicate(), self.timeout)
        return ShellResult(
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
            exit_code=process.returncode or 0,
        )


class DirectoryAppIndex:
    """Finds application bundles (``*.app``) below the given directories."""

    def __init__(self, directories: Iterable[str], max_depth: int = 3):
        self.directories = list(directories)
        self.max_depth = max_depth

    def _scan(self, directory: str, depth: int) -> List[AppEntry]:
        apps: List[AppEntry] = []
        try:
            entries = sorted(os.scandir(directory), key=lambda entry: entry.name)
        except OSError:
            # Missing directory or permission error
            return apps

        for entry in entries:
            if not entry.is_dir():
                continue
            if entry.name.endswith(".app"):
                apps.append(AppEntry(name=entry.name[: -len(".app")], path=entry.path))
            elif depth < self.max_depth:
                apps.extend(self._scan(entry.path, depth + 1))
        return apps

    def _scan_all(self) -> List[AppEntry]:
        apps: List[AppEntry] = []
        for directory in self.directories:
            apps.extend(self._scan(directory, 0))
        return apps

    async def find(self) -> List[AppEntry]:
        return await asyncio.to_thread(self._scan_all)


class _AppChangeHandler(FileSystemEventHandler):
    def __init__(self, on_change: Callable[[], None]):
        self.on_change = on_change
        super().__init__()

    def on_any_event(self, event: FileSystemEvent):
        if event.event_type not in ("created", "deleted", "moved"):
            return
        paths = [str(event.src_path), str(getattr(event, "dest_path", "") or "")]
        if any(path.endswith(".app") for path in paths):
            logger.info(f"Application change detected: {event.src_path}")
            self.on_change()


class AppIndexWatcher:
    """Watches application directories and reports bundle changes.

    The callback runs on the event loop that called ``start``.
    """

    def __init__(self, directories: Iterable[str], on_change: Callable[[], Any]):
        self.directories = [d for d in directories if os.path.isdir(d)]
        self.on_change = on_change
        self.observer = None

    def start(self):
        loop = asyncio.get_running_loop()
        handler = _AppChangeHandler(lambda: loop.call_soon_threadsafe(self.on_change))
        self.observer = Observer()
        for directory in self.directories:
            self.observer.schedule(handler, directory, recursive=False)
        logger.info(f"Watching {len(self.directories)} application directories")
        self.observer.start()

    def stop(self):
        if self.observer is None:
            return
        self.observer.stop()
        self.observer.join()
        self.observer = None


class SpotlightSearch:
    """Filesystem search through the ``mdfind`` command line tool."""

    def __init__(self, executor: ShellExecutor, limit: int = 20):
        self.executor = executor
        self.limit = limit

    async def search(
        self,
        query: str,
        extra_extensions: Sequence[str] = (),
        home_only: bool = True,
    ) -> List[FsSearchResult]:
        args = ["-name", query]
        if home_only:
            args += ["-onlyin", os.path.expanduser("~")]
        result = await self.executor.run("mdfind", args)
        if result.exit_code != 0:
            raise RuntimeError(result.stderr.strip() or "mdfind failed")

        allowed = {ext.lower().lstrip(".") for ext in DEFAULT_FS_EXTENSIONS}
        allowed.update(ext.lower().lstrip(".") for ext in extra_extensions)
        results: List[FsSearchResult] = []
        for path in result.stdout.splitlines():
            path = path.strip()
            if not path:
                continue
            is_folder = os.path.isdir(path)
            extension = os.path.splitext(path)[1].lower().lstrip(".")
            if not is_folder and extension not in allowed:
                continue
            results.append(
                FsSearchResult(
                    display_name=os.path.basename(path.rstrip("/")),
                    path=path,
                    content_type=FOLDER_CONTENT_TYPE if is_folder else f"public.{extension}",
                )
            )
            if len(results) >= self.limit:
                break
        return results


class MarkdownNotesProvider:
    """Lists markdown notes stored in one directory."""

    def __init__(self, notes_dir: str):
        self.notes_dir = os.path.expanduser(notes_dir)

    def _list(self) -> List[Note]:
        if not os.path.isdir(self.notes_dir):
            return []
        notes = []
        for entry in os.scandir(self.notes_dir):
            if entry.is_file() and entry.name.endswith(".md"):
                notes.append(
                    Note(
                        title=entry.name[: -len(".md")],
                        filename=entry.name,
                        path=entry.path,
                        updated_at=entry.stat().st_mtime,
                    )
                )
        return sorted(notes, key=lambda note: note.updated_at, reverse=True)

    async def list(self) -> List[Note]:
        return await asyncio.to_thread(self._list)


class ClipboardHistory:
    """Clipboard snapshots kept in memory, oldest first."""

    def __init__(self, max_entries: int = 200):
        self.max_entries = max_entries
        self._snapshots: List[str] = []

    def add_snapshot(self, text: str) -> bool:
        if self._snapshots and self._snapshots[-1] == text:
            return False
        self._snapshots.append(text)
        del self._snapshots[: -self.max_entries]
        return True

    def clear(self):
        self._snapshots.clear()

    def snapshots(self) -> List[str]:
        return list(self._snapshots)


# Command builders


def build_app_commands(apps: Iterable[AppEntry]) -> List[ExecutableCommand]:
    return [
        ExecutableCommand(
            label=app.name,
            value=app.path,
            handler=CommandHandler.APP,
            metadata={"path": app.path},
            app_modes=[AppMode.INITIAL],
        )
        for app in apps
    ]


def build_shortcut_commands(stdout: str) -> List[ExecutableCommand]:
    """One command per line of ``shortcuts list`` output."""
    return [
        ExecutableCommand(
            label=name,
            value=name,
            handler=CommandHandler.RUN_SHORTCUT,
            app_modes=[AppMode.INITIAL],
        )
        for name in (line.strip() for line in stdout.splitlines())
        if name
    ]


def build_fs_commands(results: Iterable[FsSearchResult]) -> List[ExecutableCommand]:
    return [
        ExecutableCommand(
            label=result.display_name,
            value=result.path,
            handler=CommandHandler.FS_ITEM,
            metadata={"content_type": result.content_type, "path": result.path},
            app_modes=[AppMode.INITIAL],
        )
        for result in results
    ]


def build_clipboard_commands(snapshots: Sequence[str]) -> List[ExecutableCommand]:
    """Most recent snapshot first; empty snapshots are skipped."""
    return [
        ExecutableCommand(
            label=snapshot.strip().splitlines()[0][:120],
            localized_label=snapshot,
            value=snapshot,
            handler=CommandHandler.COPY_TO_CLIPBOARD,
            app_modes=[AppMode.CLIPBOARD],
        )
        for snapshot in reversed(snapshots)
        if snapshot.strip()
    ]


def _menu_command(
    label: str, value: str, handler: CommandHandler = CommandHandler.SYSTEM
) -> ExecutableCommand:
    return ExecutableCommand(
        label=label,
        value=value,
        handler=handler,
        app_modes=[AppMode.INITIAL, AppMode.MENU],
    )


def build_menu_commands(
    signed_in: bool,
    settings: Settings,
    t: Callable[..., str],
    extra_modes: Sequence[str] = (),
) -> List[ExecutableCommand]:
    """Static menu entries; some depend on sign-in and feature settings."""
    if signed_in:
        commands = [_menu_command(t("commands.menuItems.profile"), SystemCommand.PROFILE.value)]
    else:
        commands = [_menu_command(t("commands.menuItems.signIn"), SystemCommand.SIGN_IN.value)]

    commands.append(
        _menu_command(
            t("commands.menuItems.notes"), AppMode.NOTES.value, CommandHandler.CHANGE_MODE
        )
    )
    if settings.clipboard_recording_enabled:
        commands.append(
            _menu_command(
                t("commands.menuItems.clipboardHistory"),
                AppMode.CLIPBOARD.value,
                CommandHandler.CHANGE_MODE,
            )
        )
    for mode in extra_modes:
        commands.append(
            _menu_command(
                t("commands.actions.changeMode", mode=mode), mode, CommandHandler.CHANGE_MODE
            )
        )

    for key, system_command in (
        ("clearNotes", SystemCommand.CLEAR_NOTES),
        ("clearHistory", SystemCommand.CLEAR_HISTORY),
        ("help", SystemCommand.HELP),
        ("settings", SystemCommand.SETTINGS),
        ("exit", SystemCommand.EXIT),
    ):
        commands.append(_menu_command(t(f"commands.menuItems.{key}"), system_command.value))
    return commands
