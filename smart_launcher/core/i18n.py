"""Default English message catalogue used as the context translation function."""

import logging
from typing import Any, Dict

logger = logging.getLogger(__name__)

MESSAGES: Dict[str, str] = {
    "commands.actions.createNote": 'Create note "{query}"',
    "commands.actions.createDailyNote": "Create daily note",
    "commands.actions.changeMode": "Switch to {mode}",
    "commands.menuItems.signIn": "Sign In",
    "commands.menuItems.profile": "Profile",
    "commands.menuItems.notes": "Notes",
    "commands.menuItems.clipboardHistory": "Clipboard History",
    "commands.menuItems.clearNotes": "Clear Notes",
    "commands.menuItems.clearHistory": "Clear History",
    "commands.menuItems.help": "Help",
    "commands.menuItems.settings": "Settings",
    "commands.menuItems.exit": "Exit",
}


def translate(key: str, **params: Any) -> str:
    """Look up a message and fill in its placeholders; unknown keys echo back."""
    template = MESSAGES.get(key)
    if template is None:
        logger.debug(f"Missing translation for {key}")
        return key
    try:
        return template.format(**params)
    except (KeyError, IndexError, ValueError):
        return template
