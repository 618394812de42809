"""Query interpreter: resolves a query into a computed answer, if any."""

import logging
from typing import Awaitable, Callable, List, Optional, Tuple, Union

from smart_launcher.core.arithmetic import parse_math_expression, parse_text_math_expression
from smart_launcher.core.cache import MemoryCache
from smart_launcher.core.currency import match_conversion, parse_currency_conversion
from smart_launcher.core.fraction import parse_fraction
from smart_launcher.core.plugins import PluginContext
from smart_launcher.core.relative_time import parse_relative_time
from smart_launcher.core.units import parse_unit_conversion
from smart_launcher.models.schemas import ExecutableCommand

logger = logging.getLogger(__name__)

ParserResult = Union[List[ExecutableCommand], Awaitable[List[ExecutableCommand]]]
Parser = Callable[[str, PluginContext], ParserResult]

# Parsers that wait on a network round trip
NETWORK_PARSERS = frozenset({"currency"})


class QueryInterpreter:
    """Tries each expression parser in order and keeps the first answer.

    Some inputs read differently depending on the parser, so the order is
    fixed: symbolic arithmetic, worded arithmetic, currency, units,
    relative time, fractions.
    """

    def __init__(self, cache: Optional[MemoryCache] = None):
        self.cache = cache if cache is not None else MemoryCache(max_size=256)
        self.parsers: List[Tuple[str, Parser]] = [
            ("symbolic", lambda query, context: parse_math_expression(query)),
            ("worded", lambda query, context: parse_text_math_expression(query)),
            ("currency", self._parse_currency),
            ("units", lambda query, context: parse_unit_conversion(query)),
            ("relative_time", lambda query, context: parse_relative_time(query)),
            ("fraction", lambda query, context: parse_fraction(query)),
        ]

    async def _parse_currency(
        self, query: str, context: PluginContext
    ) -> List[ExecutableCommand]:
        return await parse_currency_conversion(query, context, self.cache)

    def needs_network(self, query: str, context: PluginContext) -> bool:
        """Whether a network-bound parser could answer this query."""
        return match_conversion(query, context.settings.base_currency) is not None

    async def interpret(
        self, query: str, context: PluginContext, offline: bool = False
    ) -> List[ExecutableCommand]:
        """Return zero or one formula result for the query.

        With ``offline`` the network-bound parsers are skipped, so the
        call never waits on a remote service.
        """
        query = query.strip()
        if not query:
            return []

        for name, parser in self.parsers:
            if offline and name in NETWORK_PARSERS:
                continue
            try:
                result = parser(query, context)
                if not isinstance(result, list):
                    result = await result
            except Exception as e:
                logger.warning(f"Parser {name} failed on {query!r}: {e}")
                continue
            if result:
                logger.debug(f"Query {query!r} resolved by {name} parser")
                return result[:1]
        return []
