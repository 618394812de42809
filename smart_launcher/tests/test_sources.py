"""Tests for local source adapters and command builders."""

import os
from unittest.mock import AsyncMock, Mock, patch

import pytest
from watchdog.events import DirCreatedEvent, DirModifiedEvent, FileCreatedEvent

from smart_launcher.config import Settings
from smart_launcher.core.i18n import translate
from smart_launcher.core.sources import (
    USER_AGENT,
    ClipboardHistory,
    DirectoryAppIndex,
    HttpFetcher,
    MarkdownNotesProvider,
    SpotlightSearch,
    SubprocessExecutor,
    _AppChangeHandler,
    build_app_commands,
    build_clipboard_commands,
    build_menu_commands,
    build_shortcut_commands,
)
from smart_launcher.models.schemas import (
    AppEntry,
    AppMode,
    CommandHandler,
    ShellResult,
    SystemCommand,
)


class TestAdapters:
    """Test the default collaborator implementations."""

    @pytest.mark.asyncio
    async def test_http_fetcher_sends_user_agent(self):
        client = Mock()
        client.get = AsyncMock(return_value="response")
        with patch("smart_launcher.core.sources.httpx.AsyncClient") as client_cls:
            client_cls.return_value.__aenter__.return_value = client

            result = await HttpFetcher(timeout=2)("https://rates.test/usd.json")

        assert result == "response"
        client_cls.assert_called_once_with(timeout=2, follow_redirects=True)
        client.get.assert_awaited_once_with(
            "https://rates.test/usd.json", headers={"User-Agent": USER_AGENT}
        )

    @pytest.mark.asyncio
    async def test_missing_program_exits_127(self):
        result = await SubprocessExecutor().run("definitely-not-a-real-program-xyz")

        assert result.exit_code == 127
        assert "command not found" in result.stderr

    @pytest.mark.asyncio
    async def test_app_index_finds_bundles(self, tmp_path):
        (tmp_path / "Safari.app").mkdir()
        (tmp_path / "Utilities" / "Terminal.app").mkdir(parents=True)
        (tmp_path / "readme.txt").write_text("not an app")

        apps = await DirectoryAppIndex([str(tmp_path), str(tmp_path / "missing")]).find()

        assert sorted(app.name for app in apps) == ["Safari", "Terminal"]

    @pytest.mark.asyncio
    async def test_notes_provider_lists_markdown(self, tmp_path):
        (tmp_path / "Ideas.md").write_text("# Ideas")
        (tmp_path / "image.png").write_bytes(b"")

        notes = await MarkdownNotesProvider(str(tmp_path)).list()

        assert [note.title for note in notes] == ["Ideas"]
        assert notes[0].path == os.path.join(str(tmp_path), "Ideas.md")

    @pytest.mark.asyncio
    async def test_notes_provider_missing_directory(self, tmp_path):
        assert await MarkdownNotesProvider(str(tmp_path / "nope")).list() == []

    @pytest.mark.asyncio
    async def test_spotlight_filters_extensions(self, tmp_path):
        folder = tmp_path / "Reports"
        folder.mkdir()
        stdout = "\n".join(
            ["/u/report.pdf", "/u/report.exe", "/u/report.sketch", str(folder), ""]
        )
        executor = Mock()
        executor.run = AsyncMock(return_value=ShellResult(stdout=stdout))

        results = await SpotlightSearch(executor).search(
            "report", extra_extensions=[".sketch"], home_only=False
        )

        assert [r.display_name for r in results] == ["report.pdf", "report.sketch", "Reports"]
        assert results[0].content_type == "public.pdf"
        assert results[2].content_type == "public.folder"
        executor.run.assert_awaited_once_with("mdfind", ["-name", "report"])

    @pytest.mark.asyncio
    async def test_spotlight_failure_raises(self):
        executor = Mock()
        executor.run = AsyncMock(return_value=ShellResult(stderr="boom", exit_code=1))

        with pytest.raises(RuntimeError):
            await SpotlightSearch(executor).search("report")

    def test_clipboard_history_skips_consecutive_duplicates(self):
        clipboard = ClipboardHistory(max_entries=2)

        assert clipboard.add_snapshot("a")
        assert not clipboard.add_snapshot("a")
        clipboard.add_snapshot("b")
        clipboard.add_snapshot("c")

        assert clipboard.snapshots() == ["b", "c"]
        clipboard.clear()
        assert clipboard.snapshots() == []

    def test_app_change_handler_reacts_to_bundles_only(self):
        on_change = Mock()
        handler = _AppChangeHandler(on_change)

        handler.on_any_event(FileCreatedEvent("/Applications/notes.txt"))
        handler.on_any_event(DirModifiedEvent("/Applications/Safari.app"))
        on_change.assert_not_called()

        handler.on_any_event(DirCreatedEvent("/Applications/Safari.app"))
        on_change.assert_called_once_with()


class TestBuilders:
    """Test the conversion of source data into commands."""

    def test_app_commands(self):
        commands = build_app_commands([AppEntry(name="Safari", path="/Applications/Safari.app")])

        assert commands[0].handler == CommandHandler.APP.value
        assert commands[0].value == "/Applications/Safari.app"
        assert commands[0].metadata.path == "/Applications/Safari.app"

    def test_shortcut_commands_one_per_line(self):
        commands = build_shortcut_commands("Morning\n\n  Focus  \n")

        assert [c.value for c in commands] == ["Morning", "Focus"]
        assert all(c.handler == CommandHandler.RUN_SHORTCUT.value for c in commands)

    def test_clipboard_commands_newest_first(self):
        commands = build_clipboard_commands(["first", "  ", "second\nline two"])

        assert [c.value for c in commands] == ["second\nline two", "first"]
        assert commands[0].label == "second"
        assert commands[0].app_modes == [AppMode.CLIPBOARD.value]

    def test_menu_signed_out(self):
        settings = Settings(clipboard_recording_enabled=False)

        commands = build_menu_commands(False, settings, translate)

        assert [c.value for c in commands] == [
            SystemCommand.SIGN_IN.value,
            AppMode.NOTES.value,
            SystemCommand.CLEAR_NOTES.value,
            SystemCommand.CLEAR_HISTORY.value,
            SystemCommand.HELP.value,
            SystemCommand.SETTINGS.value,
            SystemCommand.EXIT.value,
        ]
        assert all(
            c.app_modes == [AppMode.INITIAL.value, AppMode.MENU.value] for c in commands
        )

    def test_menu_signed_in_with_clipboard_and_extra_modes(self):
        settings = Settings(clipboard_recording_enabled=True)

        commands = build_menu_commands(True, settings, translate, ["CALENDAR"])

        assert commands[0].label == "Profile"
        assert [c.value for c in commands[1:4]] == ["NOTES", "CLIPBOARD", "CALENDAR"]
        assert commands[3].label == "Switch to CALENDAR"
        assert commands[3].handler == CommandHandler.CHANGE_MODE.value
