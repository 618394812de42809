"""Ranking of aggregated candidates into the final result list."""

from typing import Iterable, List, Sequence

from smart_launcher.core.fuzzy import fuzzy_filter
from smart_launcher.models.schemas import AppMode, ExecutableCommand


def _match_keys(command: ExecutableCommand):
    return (command.label, command.localized_label)


def _bypasses_filter(command: ExecutableCommand) -> bool:
    # Recorded formula answers go through the filter like any history entry
    return command.smart_match and not command.historical


def deduplicate(commands: Iterable[ExecutableCommand]) -> List[ExecutableCommand]:
    """Keep the first command for each (handler, value)."""
    seen = set()
    unique = []
    for command in commands:
        if command.identity in seen:
            continue
        seen.add(command.identity)
        unique.append(command)
    return unique


def sort_by_recency(commands: Iterable[ExecutableCommand]) -> List[ExecutableCommand]:
    ordered = sorted(commands, key=lambda command: command.metadata.ran_at or 0.0)
    ordered.reverse()
    return ordered


def sort_by_priority(commands: Iterable[ExecutableCommand]) -> List[ExecutableCommand]:
    """Highest priority first; sorted() is stable so ties keep their order."""
    return sorted(commands, key=lambda command: -command.priority)


def rank_commands(
    candidates: Sequence[ExecutableCommand],
    query: str,
    app_mode: str,
    formula_results: Sequence[ExecutableCommand] = (),
) -> List[ExecutableCommand]:
    """Order candidates for display.

    An empty query in the initial mode lists the most recently run
    commands first. Otherwise candidates are fuzzy filtered on their labels,
    computed answers are put in front, duplicates dropped and the list is
    stably sorted by priority.
    """
    query = query.strip()
    if not query and app_mode == AppMode.INITIAL:
        return deduplicate(sort_by_recency(candidates))

    if query:
        direct = [command for command in candidates if _bypasses_filter(command)]
        filtered = fuzzy_filter(
            [command for command in candidates if not _bypasses_filter(command)],
            query,
            keys=_match_keys,
        )
        combined = list(formula_results) + direct + filtered
    else:
        combined = list(formula_results) + list(candidates)

    return sort_by_priority(deduplicate(combined))
