from typing import Callable

from langgraph.graph import END, StateGraph

from nlql.datasources.database import Database
from nlql.execution.executor import QueryExecutor
from nlql.formatting.formatter import ResultFormatter
from nlql.pipeline.nodes import (
    ExecuteNode,
    FormatNode,
    IntrospectNode,
    TranslateNode,
    ValidateNode,
    route_after_validation,
    route_unless_failed,
)
from nlql.pipeline.state import GraphState
from nlql.schema.models import SchemaSnapshot
from nlql.translation.prompt_builder import PromptBuilder
from nlql.translation.provider import TranslationProvider
from nlql.validation.validator import StatementValidator


def build_graph(
    database: Database,
    load_snapshot: Callable[[Database], SchemaSnapshot],
    prompt_builder: PromptBuilder,
    provider: TranslationProvider,
    validator: StatementValidator,
    executor: QueryExecutor,
    formatter: ResultFormatter,
):
    """Builds the query pipeline graph.

    introspect -> translate -> validate -> (execute ->) format. A failed
    stage routes directly to END; dry runs and rejected statements skip
    execution.

    Returns:
        The compiled LangGraph runnable.
    """
    graph = StateGraph(GraphState)

    graph.add_node("introspect", IntrospectNode(database, load_snapshot))
    graph.add_node("translate", TranslateNode(prompt_builder, provider))
    graph.add_node("validate", ValidateNode(validator))
    graph.add_node("execute", ExecuteNode(executor))
    graph.add_node("format", FormatNode(formatter))

    graph.set_entry_point("introspect")
    graph.add_conditional_edges(
        "introspect",
        route_unless_failed("translate"),
        {"translate": "translate", "end": END},
    )
    graph.add_conditional_edges(
        "translate",
        route_unless_failed("validate"),
        {"validate": "validate", "end": END},
    )
    graph.add_conditional_edges(
        "validate",
        route_after_validation,
        {"execute": "execute", "format": "format"},
    )
    graph.add_conditional_edges(
        "execute",
        route_unless_failed("format"),
        {"format": "format", "end": END},
    )
    graph.add_edge("format", END)

    return graph.compile()
