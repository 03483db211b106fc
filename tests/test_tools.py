"""Tests for the graph tools and their registry."""

import asyncio

import pytest

from graphrag_bridge.errors import QueryExecutionError
from graphrag_bridge.graph import GRAPH_SCHEMA_DESCRIPTION, NO_RESULTS
from graphrag_bridge.tools import (
    SEMANTIC_UNAVAILABLE,
    SemanticSearchWithContextArgs,
    ToolRegistry,
    group_context_rows,
)

from conftest import FakeGraph


def run(graph, name, arguments=None):
    registry = ToolRegistry(graph.capabilities())
    return asyncio.run(registry.execute(name, arguments))


def context_row(match_id, name, connected=None, relation="CALLS"):
    return {
        "matchId": match_id,
        "matchName": name,
        "matchLabel": "Function",
        "matchPath": f"src/{name}.py",
        "distance": 0.2,
        "connectedId": connected and f"id-{connected}",
        "connectedName": connected,
        "connectedLabel": connected and "Function",
        "relationType": connected and relation,
    }


class TestRegistry:
    """Test tool declaration and dispatch."""

    def test_declares_all_tools(self, graph):
        """Test the registry declares the seven tools."""
        registry = ToolRegistry(graph.capabilities())

        assert set(registry.names) == {
            "graph_query",
            "vector_graph_query",
            "semantic_search",
            "semantic_search_with_context",
            "get_schema",
            "get_code_content",
            "get_codebase_stats",
        }
        assert len(registry) == 7
        assert "graph_query" in registry

    def test_specs_use_function_format(self, graph):
        """Test specs use the function-calling format."""
        specs = {s["function"]["name"]: s for s in ToolRegistry(graph.capabilities()).specs()}

        query_spec = specs["graph_query"]
        assert query_spec["type"] == "function"
        assert query_spec["function"]["description"]
        params = query_spec["function"]["parameters"]
        assert params["type"] == "object"
        assert "query" in params["properties"]
        assert params["required"] == ["query"]
        assert specs["get_schema"]["function"]["parameters"]["properties"] == {}

    def test_unknown_tool(self, graph):
        """Test an unknown tool name is reported as an error result."""
        result = run(graph, "drop_database")

        assert result.startswith("Unknown tool: drop_database")
        assert "graph_query" in result

    def test_invalid_arguments_are_reported(self, graph):
        """Test argument validation failures."""
        result = run(graph, "graph_query", {})

        assert result.startswith("Invalid arguments for graph_query")
        assert "query" in result
        assert graph.calls == []

    def test_unexpected_failure_names_the_purpose(self):
        """Test unexpected errors carry the tool's purpose."""
        graph = FakeGraph()
        graph.is_embedding_ready = lambda: 1 / 0

        result = run(graph, "semantic_search", {"query": "auth"})

        assert "running the semantic search" in result
        assert "ZeroDivisionError" in result


class TestGraphQuery:
    """Test the raw query tool."""

    def test_empty_result_is_exactly_the_sentinel(self, graph):
        """Test an empty result gives the sentinel text."""
        assert run(graph, "graph_query", {"query": "MATCH (n) RETURN n"}) == NO_RESULTS

    def test_lazy_empty_result_is_the_sentinel(self):
        """Test a backend that returns an exhausted iterator."""
        graph = FakeGraph(query_rows=lambda query: iter([]))

        assert run(graph, "graph_query", {"query": "MATCH (n) RETURN n"}) == NO_RESULTS

    def test_lazy_rows_are_formatted(self):
        """Test a backend that yields rows from a generator."""
        graph = FakeGraph(query_rows=lambda query: (row for row in [["parse"], ["load"]]))

        result = run(graph, "graph_query", {"query": "MATCH (n) RETURN n"})

        assert result == "Query returned 2 results:\n[1] parse\n[2] load"

    def test_rows_are_formatted(self):
        """Test rows are rendered through the row formatter."""
        graph = FakeGraph(query_rows=[{"name": "parse"}, ["load", 2]])

        result = run(graph, "graph_query", {"query": "MATCH (n) RETURN n"})

        assert result == 'Query returned 2 results:\n[1] {"name":"parse"}\n[2] load, 2'
        assert graph.called("execute_query") == ["MATCH (n) RETURN n"]

    def test_backend_error_kind_and_hint(self):
        """Test backend errors keep their kind and a syntax hint."""
        graph = FakeGraph(
            query_rows=QueryExecutionError("unexpected token", kind="Parser exception")
        )

        result = run(graph, "graph_query", {"query": "MATC (n)"})

        assert result == (
            "Parser exception: unexpected token\n\n"
            "Please check your query syntax and try again."
        )

    def test_error_kind_defaults_to_class_name(self):
        """Test errors without a kind use the class name."""
        graph = FakeGraph(query_rows=RuntimeError("connection reset"))

        result = run(graph, "graph_query", {"query": "MATCH (n) RETURN n"})

        assert result.startswith("RuntimeError: connection reset")


class TestVectorGraphQuery:
    """Test the vector-augmented query tool."""

    TEMPLATE = (
        "CALL QUERY_VECTOR_INDEX('CodeEmbedding', 'code_embedding_idx', "
        "{{QUERY_VECTOR}}, 10) YIELD node AS emb, distance RETURN emb.nodeId"
    )

    def test_index_not_ready(self):
        """Test the tool refuses before the index is ready."""
        graph = FakeGraph(embedding_ready=False)

        result = run(graph, "vector_graph_query", {
            "natural_language_query": "auth", "templated_query": self.TEMPLATE,
        })

        assert result == SEMANTIC_UNAVAILABLE
        assert graph.calls == []

    def test_missing_placeholder_never_embeds(self, graph):
        """Test a template without the placeholder never embeds."""
        result = run(graph, "vector_graph_query", {
            "natural_language_query": "auth", "templated_query": "MATCH (n) RETURN n",
        })

        assert "{{QUERY_VECTOR}}" in result
        assert graph.called("embed") == []
        assert graph.called("execute_query") == []

    def test_substitutes_vector_and_runs_query(self):
        """Test the vector is injected before the query runs."""
        graph = FakeGraph(query_rows=[["node-1"]])

        result = run(graph, "vector_graph_query", {
            "natural_language_query": "auth", "templated_query": self.TEMPLATE,
        })

        assert result == "Query returned 1 results:\n[1] node-1"
        assert graph.called("embed") == ["auth"]
        (query,) = graph.called("execute_query")
        assert "CAST([0.5,0.25] AS FLOAT[2])" in query
        assert "{{QUERY_VECTOR}}" not in query

    def test_embedder_start_failure_is_explained(self):
        """Test embedder start failures are explained."""
        graph = FakeGraph(embedder_ready=False, init_errors=[RuntimeError("oom")])

        result = run(graph, "vector_graph_query", {
            "natural_language_query": "auth", "templated_query": self.TEMPLATE,
        })

        assert result.startswith("Vector search is unavailable")
        assert graph.called("execute_query") == []


class TestSemanticSearch:
    """Test plain semantic search."""

    def test_not_ready_never_calls_backend(self):
        """Test the backend is not called before the index is ready."""
        graph = FakeGraph(embedding_ready=False)

        result = run(graph, "semantic_search", {"query": "auth"})

        assert result == SEMANTIC_UNAVAILABLE
        assert graph.called("semantic_search") == []

    def test_passes_limit_and_distance(self, graph):
        """Test limit and maximum distance reach the backend."""
        run(graph, "semantic_search", {"query": "auth", "limit": 3})

        assert graph.called("semantic_search") == [("auth", 3, 0.5)]

    def test_no_matches(self, graph):
        """Test the no-match message."""
        result = run(graph, "semantic_search", {"query": "auth"})

        assert result.startswith('No code found matching "auth"')

    def test_lazy_empty_matches(self):
        """Test an exhausted iterator from the backend counts as no matches."""
        graph = FakeGraph(search_rows=iter([]))

        result = run(graph, "semantic_search", {"query": "auth"})

        assert result.startswith('No code found matching "auth"')

    def test_renders_relevance_and_lines(self):
        """Test relevance and line ranges in the rendering."""
        graph = FakeGraph(search_rows=[
            ["id-1", "login", "Function", "src/auth.py", 0.13, 10, 24],
            {"nodeId": "id-2", "name": "Auth", "label": "Class",
             "filePath": "src/auth.py", "distance": 0.4},
        ])

        result = run(graph, "semantic_search", {"query": "auth"})

        assert result.startswith("Found 2 semantically similar code elements:")
        assert "[1] Function: login" in result
        assert "File: src/auth.py (lines 10-24)" in result
        assert "Relevance: 0.87" in result
        assert "[2] Class: Auth" in result
        assert "Relevance: 0.60" in result


class TestSemanticSearchWithContext:
    """Test semantic search with graph neighbours."""

    def test_groups_by_match_in_first_seen_order(self):
        """Test rows group by match in first-seen order."""
        rows = [
            context_row("a", "alpha", "x"),
            context_row("b", "beta", "z"),
            context_row("a", "alpha", "y"),
        ]

        groups = group_context_rows(rows)

        assert [g.id for g in groups] == ["a", "b"]
        assert len(groups[0].connections) == 2
        assert len(groups[1].connections) == 1

    def test_positional_rows(self):
        """Test grouping of positional rows."""
        rows = [
            ["a", "alpha", "Function", "src/a.py", 0.1, "id-x", "x", "Function", "CALLS"],
            ["a", "alpha", "Function", "src/a.py", 0.1, None, None, None, None],
        ]

        (group,) = group_context_rows(rows)

        assert group.connections == ["x [Function] (CALLS)"]

    def test_rendered_output(self):
        """Test the grouped rendering."""
        graph = FakeGraph(context_rows=[
            context_row("a", "alpha", "x"),
            context_row("a", "alpha", "y", relation="IMPORTS"),
            context_row("b", "beta"),
        ])

        result = run(graph, "semantic_search_with_context", {"query": "parse"})

        assert result.startswith("Found 2 code elements with context:")
        assert "Connected to (2): x [Function] (CALLS), y [Function] (IMPORTS)" in result
        assert "Connected to: none" in result
        assert result.index("alpha") < result.index("beta")

    def test_connections_are_capped(self):
        """Test the per-match connection cap."""
        rows = [context_row("a", "alpha", f"n{i}") for i in range(20)]

        (group,) = group_context_rows(rows)
        rendered = group.render(1)

        assert "n14 [Function]" in rendered
        assert "n15 [Function]" not in rendered
        assert rendered.endswith(", and 5 more")

    @pytest.mark.parametrize("hops, expected", [(0, 1), (1, 1), (2, 2), (3, 3), (10, 3)])
    def test_hops_are_clamped(self, hops, expected):
        """Test hops are clamped to the allowed range."""
        assert SemanticSearchWithContextArgs(query="q", hops=hops).hops == expected

    def test_not_ready_never_calls_backend(self):
        """Test the backend is not called before the index is ready."""
        graph = FakeGraph(embedding_ready=False)

        result = run(graph, "semantic_search_with_context", {"query": "q", "hops": 9})

        assert result == SEMANTIC_UNAVAILABLE
        assert graph.called("semantic_search_with_context") == []

    def test_defaults_passed_to_backend(self, graph):
        """Test defaults and clamped hops reach the backend."""
        run(graph, "semantic_search_with_context", {"query": "q", "hops": 9})

        assert graph.called("semantic_search_with_context") == [("q", 5, 3)]


class TestGetSchema:
    def test_is_constant_and_offline(self, graph):
        """Test the schema text is constant and needs no backend."""
        first = run(graph, "get_schema")
        second = run(graph, "get_schema", {})

        assert first == second == GRAPH_SCHEMA_DESCRIPTION
        assert "{{QUERY_VECTOR}}" in first
        assert graph.calls == []


class TestGetCodeContent:
    """Test source lookup by node id."""

    def test_quotes_node_id(self, graph):
        """Test node ids are quoted in the lookup query."""
        run(graph, "get_code_content", {"node_id": "Function:o'brien.py:f"})

        (query,) = graph.called("execute_query")
        assert "{id: 'Function:o''brien.py:f'}" in query

    def test_not_found(self, graph):
        """Test an unknown node id."""
        result = run(graph, "get_code_content", {"node_id": "missing"})

        assert result == "No node found with ID: missing"

    def test_node_without_content(self):
        """Test a node with no stored source."""
        graph = FakeGraph(query_rows=[["README", "File", "README.md", None, None, None]])

        result = run(graph, "get_code_content", {"node_id": "File:README.md"})

        assert result == 'File "README" in README.md (no source code available)'

    def test_node_with_content(self):
        """Test a node with source and line range."""
        graph = FakeGraph(query_rows=[{
            "name": "login", "label": "Function", "filePath": "src/auth.py",
            "content": "def login():\n    pass", "startLine": 3, "endLine": 4,
        }])

        result = run(graph, "get_code_content", {"node_id": "Function:src/auth.py:login"})

        assert result == (
            "Function: login\nFile: src/auth.py\nLines: 3-4\n\n"
            "```\ndef login():\n    pass\n```"
        )

    def test_backend_failure_names_the_node(self):
        """Test lookup failures name the node."""
        graph = FakeGraph(query_rows=QueryExecutionError("db closed"))

        result = run(graph, "get_code_content", {"node_id": "n1"})

        assert result.startswith("Error retrieving code for node 'n1'")
        assert "db closed" in result


class TestGetCodebaseStats:
    def test_counts_and_embedding_status(self):
        """Test counts and the embedding status line."""
        def rows(query):
            if "CodeRelation" in query:
                return [{"type": "CALLS", "count": 12}]
            return [["Function", 40], ["File", 7]]

        graph = FakeGraph(query_rows=rows, embedding_ready=False)

        result = run(graph, "get_codebase_stats")

        assert "Nodes by type:\n  Function: 40\n  File: 7" in result
        assert "Relationships by type:\n  CALLS: 12" in result
        assert result.endswith("Embeddings: Not generated (use graph_query for queries)")

    def test_failure_names_the_step(self):
        """Test failures name the failing step."""
        graph = FakeGraph(query_rows=QueryExecutionError("boom", kind="Runtime exception"))

        result = run(graph, "get_codebase_stats")

        assert result == (
            "Error getting codebase statistics while counting nodes by label. "
            "Runtime exception: boom"
        )
