"""The query interpreter exposed through the plugin contract.

The aggregator answers from the offline parsers in its first pass; this
deferred plugin supplies answers that need a network round trip, such as
currency conversions, once the first list is out.
"""

from typing import List

from smart_launcher.core.interpreter import QueryInterpreter
from smart_launcher.core.plugins import Plugin, PluginContext, PluginDispatch, create_plugin
from smart_launcher.models.schemas import ExecutableCommand


def create_nlp_plugin(interpreter: QueryInterpreter) -> Plugin:
    """Build the deferred interpreter plugin around a shared interpreter."""

    async def nlp_results(query: str, context: PluginContext) -> List[ExecutableCommand]:
        if not interpreter.needs_network(query, context):
            return []
        return await interpreter.interpret(query, context)

    return create_plugin(
        name="NLP",
        add_search_results=nlp_results,
        dispatch=PluginDispatch.DEFERRED,
    )
