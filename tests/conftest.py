"""Shared fakes: an in-memory graph backend and a scripted chat model."""

import json

import pytest
from openai.types.chat import ChatCompletion

from graphrag_bridge.adapters import OpenAIRequestAdapter
from graphrag_bridge.graph import GraphCapabilities
from graphrag_bridge.models import BaseChatModel
from graphrag_bridge.types import ChatResponse


def make_completion(content="", tool_calls=None):
    """Build a ChatCompletion; tool_calls is a list of (id, name, args) tuples."""
    message = {"role": "assistant", "content": content or (None if tool_calls else "")}
    if tool_calls:
        message["tool_calls"] = [
            {
                "id": call_id,
                "type": "function",
                "function": {"name": name, "arguments": json.dumps(args)},
            }
            for call_id, name, args in tool_calls
        ]
    return ChatCompletion.model_validate({
        "id": "cmpl-test",
        "choices": [{"finish_reason": "stop", "index": 0, "message": message}],
        "created": 0,
        "model": "test-model",
        "object": "chat.completion",
    })


class ScriptedChatModel(BaseChatModel):
    """Replays one scripted turn per request.

    Each turn is ``(deltas, completion)`` or an exception to raise.
    """

    def __init__(self, turns):
        super().__init__("test-model", name="scripted")
        self.turns = list(turns)
        self.requests = []
        self._adapter = OpenAIRequestAdapter()

    @property
    def adapter(self):
        return self._adapter

    async def _stream_impl(self, messages, params):
        self.requests.append({"messages": list(messages), "params": params})
        turn = self.turns.pop(0)
        if isinstance(turn, Exception):
            raise turn
        deltas, completion = turn
        for delta in deltas:
            yield ChatResponse(content=delta)
        yield self.adapter.from_provider(completion)


class FakeGraph:
    """In-memory stand-in for the graph engine and embedding model.

    Every capability call is recorded in ``calls`` as ``(name, args)``.
    A configured result that is an exception is raised instead of returned.
    """

    def __init__(
        self,
        query_rows=None,
        search_rows=None,
        context_rows=None,
        embedding_ready=True,
        vector=(0.5, 0.25),
        embedder_ready=True,
        init_errors=(),
    ):
        self.query_rows = [] if query_rows is None else query_rows
        self.search_rows = [] if search_rows is None else search_rows
        self.context_rows = [] if context_rows is None else context_rows
        self.embedding_ready = embedding_ready
        self.vector = vector
        self.embedder_ready = embedder_ready
        self.init_errors = list(init_errors)
        self.calls = []

    def _result(self, value, *args):
        if isinstance(value, Exception):
            raise value
        if callable(value):
            return value(*args)
        return value

    async def execute_query(self, query):
        self.calls.append(("execute_query", query))
        return self._result(self.query_rows, query)

    async def semantic_search(self, query, limit, max_distance):
        self.calls.append(("semantic_search", (query, limit, max_distance)))
        return self._result(self.search_rows)

    async def semantic_search_with_context(self, query, limit, hops):
        self.calls.append(("semantic_search_with_context", (query, limit, hops)))
        return self._result(self.context_rows)

    def is_embedding_ready(self):
        return self.embedding_ready

    async def embed(self, text):
        self.calls.append(("embed", text))
        return self._result(self.vector)

    def is_embedder_ready(self):
        return self.embedder_ready

    async def init_embedder(self, backend):
        self.calls.append(("init_embedder", backend))
        if self.init_errors:
            error = self.init_errors.pop(0)
            if error is not None:
                raise error
        self.embedder_ready = True

    def called(self, name):
        return [args for call, args in self.calls if call == name]

    def capabilities(self):
        return GraphCapabilities(
            execute_query=self.execute_query,
            semantic_search=self.semantic_search,
            semantic_search_with_context=self.semantic_search_with_context,
            is_embedding_ready=self.is_embedding_ready,
            embed=self.embed,
            init_embedder=self.init_embedder,
            is_embedder_ready=self.is_embedder_ready,
        )


@pytest.fixture
def graph():
    return FakeGraph()
