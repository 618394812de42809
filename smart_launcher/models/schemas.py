"""Data models for the Smart Launcher query engine."""

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
import time


class CommandHandler(str, Enum):
    """Core handler tags. The order is used when sorting command types."""

    SYSTEM = "SYSTEM"
    APP = "APP"
    CHANGE_MODE = "CHANGE_MODE"
    COPY_TO_CLIPBOARD = "COPY_TO_CLIPBOARD"
    RUN_SHORTCUT = "RUN_SHORTCUT"
    OPEN_NOTE = "OPEN_NOTE"
    CREATE_NOTE = "CREATE_NOTE"
    URL = "URL"
    EMBEDDED_URL = "EMBEDDED_URL"
    FS_ITEM = "FS_ITEM"
    OPEN_CALENDAR = "OPEN_CALENDAR"
    FORMULA_RESULT = "FORMULA_RESULT"


class AppMode(str, Enum):
    """Built-in UI modes. Plugins may contribute more as plain strings."""

    INITIAL = "INITIAL"
    MENU = "MENU"
    NOTES = "NOTES"
    CLIPBOARD = "CLIPBOARD"
    CALENDAR = "CALENDAR"


class CommandPriority:
    """Priority tiers, higher is shown first."""

    LOW = 0
    MEDIUM = 10
    HIGH = 100
    TOP = 1000


class SearchEngine(str, Enum):
    DUCKDUCKGO = "DUCKDUCKGO"
    STARTPAGE = "STARTPAGE"
    GOOGLE = "GOOGLE"
    SCIRA = "SCIRA"


class SystemCommand(str, Enum):
    SIGN_IN = "SIGN_IN"
    PROFILE = "PROFILE"
    CLEAR_NOTES = "CLEAR_NOTES"
    CLEAR_HISTORY = "CLEAR_HISTORY"
    HELP = "HELP"
    SETTINGS = "SETTINGS"
    EXIT = "EXIT"


def _non_empty_tag(value: Any, field: str) -> str:
    if isinstance(value, Enum):
        value = value.value
    if not isinstance(value, str):
        raise ValueError(f"{field} must be a string")
    value = value.strip()
    if not value:
        raise ValueError(f"{field} must not be empty")
    return value


class CalendarEvent(BaseModel):
    """Calendar sub-schema attached to OPEN_CALENDAR commands."""

    title: str
    start: Optional[float] = None
    end: Optional[float] = None
    calendar_name: Optional[str] = None


class CommandMetadata(BaseModel):
    """Optional bag of details a handler or the ranking may need."""

    model_config = ConfigDict(extra="allow", frozen=True)

    content_type: Optional[str] = None
    path: Optional[str] = None
    ran_at: Optional[float] = None
    updated_at: Optional[float] = None
    calendar: Optional[CalendarEvent] = None


class ExecutableCommand(BaseModel):
    """The universal result unit produced by every source."""

    model_config = ConfigDict(frozen=True)

    label: str
    localized_label: str = ""
    value: str
    handler: str
    metadata: CommandMetadata = Field(default_factory=CommandMetadata)
    app_modes: List[str] = Field(
        default_factory=lambda: [AppMode.INITIAL.value], min_length=1
    )
    smart_match: bool = False
    priority: int = CommandPriority.LOW
    historical: bool = False

    @model_validator(mode="before")
    @classmethod
    def _default_localized_label(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("localized_label"):
            data = {**data, "localized_label": data.get("label", "")}
        return data

    @field_validator("handler", mode="before")
    @classmethod
    def _validate_handler(cls, value: Any) -> str:
        return _non_empty_tag(value, "handler")

    @field_validator("app_modes", mode="before")
    @classmethod
    def _validate_app_modes(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple, set)):
            return [_non_empty_tag(mode, "app mode") for mode in value]
        return value

    @property
    def identity(self) -> Tuple[str, str]:
        """Key used for deduplication and history removal."""
        return (self.handler, self.value)

    @property
    def is_core_handler(self) -> bool:
        return self.handler in CommandHandler.__members__

    @classmethod
    def formula_result(
        cls, value: str, label: Optional[str] = None
    ) -> "ExecutableCommand":
        """Build the result of a deterministic expression parser."""
        return cls(
            label=label if label is not None else value,
            value=value,
            handler=CommandHandler.FORMULA_RESULT,
            smart_match=True,
            priority=CommandPriority.TOP,
            app_modes=[AppMode.INITIAL],
        )


class HistoryEntry(BaseModel):
    """A previously executed command, stored without its display label."""

    localized_label: str
    value: str
    handler: str
    metadata: CommandMetadata = Field(default_factory=CommandMetadata)
    app_modes: List[str] = Field(
        default_factory=lambda: [AppMode.INITIAL.value], min_length=1
    )
    smart_match: bool = False
    priority: int = CommandPriority.LOW

    @field_validator("handler", mode="before")
    @classmethod
    def _validate_handler(cls, value: Any) -> str:
        return _non_empty_tag(value, "handler")

    @property
    def identity(self) -> Tuple[str, str]:
        return (self.handler, self.value)

    @classmethod
    def from_command(
        cls, command: ExecutableCommand, ran_at: Optional[float] = None
    ) -> "HistoryEntry":
        metadata = command.metadata.model_copy(
            update={"ran_at": ran_at if ran_at is not None else time.time()}
        )
        return cls(
            localized_label=command.localized_label,
            value=command.value,
            handler=command.handler,
            metadata=metadata,
            app_modes=list(command.app_modes),
            smart_match=command.smart_match,
            priority=command.priority,
        )

    def to_command(self) -> ExecutableCommand:
        return ExecutableCommand(
            label=self.localized_label,
            localized_label=self.localized_label,
            value=self.value,
            handler=self.handler,
            metadata=self.metadata,
            app_modes=self.app_modes,
            smart_match=self.smart_match,
            priority=self.priority,
            historical=True,
        )


class HistoryState(BaseModel):
    """Persisted shape of the run history."""

    entries: List[HistoryEntry] = Field(default_factory=list)


class Note(BaseModel):
    title: str
    filename: str
    path: str
    updated_at: float = Field(default_factory=time.time)


class AppEntry(BaseModel):
    name: str
    path: str


class FsSearchResult(BaseModel):
    display_name: str
    path: str
    content_type: str = "public.item"


class ShellResult(BaseModel):
    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0


def dict_of(command: ExecutableCommand) -> Dict[str, Any]:
    """JSON-ready representation of a command."""
    return command.model_dump(mode="json", exclude_none=True)
