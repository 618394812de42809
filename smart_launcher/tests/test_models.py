"""Tests for data models, settings and message lookup."""

import pytest
from pydantic import ValidationError

from smart_launcher.config import Settings
from smart_launcher.core.i18n import translate
from smart_launcher.models.schemas import (
    AppMode,
    CommandHandler,
    CommandPriority,
    ExecutableCommand,
    HistoryEntry,
    SearchEngine,
    dict_of,
)


class TestExecutableCommand:
    """Test validation of the universal result unit."""

    def test_defaults(self):
        command = ExecutableCommand(label="Safari", value="/A/Safari.app", handler=CommandHandler.APP)

        assert command.handler == "APP"
        assert command.localized_label == "Safari"
        assert command.app_modes == [AppMode.INITIAL.value]
        assert command.priority == CommandPriority.LOW
        assert command.is_core_handler
        assert command.identity == ("APP", "/A/Safari.app")

    def test_custom_handler_is_allowed(self):
        command = ExecutableCommand(label="x", value="x", handler="TODO_ITEM")

        assert not command.is_core_handler

    @pytest.mark.parametrize(
        "overrides",
        [{"handler": ""}, {"handler": "   "}, {"app_modes": []}, {"app_modes": [""]}],
    )
    def test_invalid_commands(self, overrides):
        data = {"label": "x", "value": "x", "handler": "APP", **overrides}

        with pytest.raises(ValidationError):
            ExecutableCommand(**data)

    def test_commands_are_immutable(self):
        command = ExecutableCommand(label="x", value="x", handler="APP")

        with pytest.raises(ValidationError):
            command.label = "y"

    def test_formula_result(self):
        command = ExecutableCommand.formula_result("6.21", label="6.21 miles")

        assert command.handler == CommandHandler.FORMULA_RESULT.value
        assert command.label == "6.21 miles"
        assert command.smart_match
        assert command.priority == CommandPriority.TOP

    def test_dict_of_drops_empty_metadata(self):
        data = dict_of(ExecutableCommand(label="x", value="x", handler="APP"))

        assert data["metadata"] == {}
        assert data["historical"] is False


class TestHistoryEntry:
    def test_round_trip_keeps_localized_label_only(self):
        command = ExecutableCommand(
            label="Sign In", localized_label="Anmelden", value="SIGN_IN", handler="APP",
            priority=CommandPriority.HIGH,
        )

        entry = HistoryEntry.from_command(command, ran_at=12.5)
        restored = entry.to_command()

        assert "label" not in entry.model_dump()
        assert restored.label == "Anmelden"
        assert restored.historical
        assert restored.priority == CommandPriority.HIGH
        assert restored.metadata.ran_at == 12.5


class TestSettings:
    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("SMART_LAUNCHER_BASE_CURRENCY", " EUR ")
        monkeypatch.setenv("SMART_LAUNCHER_SEARCH_ENGINE", "google")
        monkeypatch.setenv("SMART_LAUNCHER_INCOGNITO", "yes")
        monkeypatch.setenv("SMART_LAUNCHER_FS_SEARCH_EXTENSIONS", "sketch, fig")

        settings = Settings()

        assert settings.base_currency == "eur"
        assert settings.default_search_engine == SearchEngine.GOOGLE
        assert settings.incognito_enabled is True
        assert settings.fs_search_extensions == ["sketch", "fig"]

    def test_history_path(self, tmp_path):
        settings = Settings(data_dir=str(tmp_path))

        assert settings.history_path == str(tmp_path / "history.json")


class TestTranslate:
    def test_fills_placeholders(self):
        assert translate("commands.actions.createNote", query="plan") == 'Create note "plan"'

    def test_unknown_key_echoes(self):
        assert translate("commands.unknown") == "commands.unknown"

    def test_missing_parameter_returns_template(self):
        assert translate("commands.actions.changeMode") == "Switch to {mode}"
