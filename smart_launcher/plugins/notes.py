"""Notes plugin: open known notes or create a new one from the query."""

from typing import List

from smart_launcher.core.plugins import PluginContext, create_plugin
from smart_launcher.models.schemas import (
    AppMode,
    CommandHandler,
    CommandPriority,
    ExecutableCommand,
)


def build_create_note_command(query: str, context: PluginContext) -> ExecutableCommand:
    """Create a note titled after the query, or today's daily note."""
    if query:
        label = context.t("commands.actions.createNote", query=query)
    else:
        label = context.t("commands.actions.createDailyNote")
    return ExecutableCommand(
        label=label,
        value=query,
        handler=CommandHandler.CREATE_NOTE,
        priority=CommandPriority.MEDIUM,
        app_modes=[AppMode.INITIAL, AppMode.NOTES],
    )


def notes_results(query: str, context: PluginContext) -> List[ExecutableCommand]:
    open_note_commands = [
        ExecutableCommand(
            label=note.title,
            value=note.filename,
            handler=CommandHandler.OPEN_NOTE,
            metadata={"path": note.path, "updated_at": note.updated_at},
            app_modes=[AppMode.INITIAL, AppMode.NOTES],
        )
        for note in context.notes
    ]
    return [build_create_note_command(query, context)] + open_note_commands


PluginNotes = create_plugin(
    name="Notes",
    add_search_results=notes_results,
    app_modes=(AppMode.INITIAL, AppMode.NOTES),
)
