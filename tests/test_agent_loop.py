"""Tests for ConversationLoop."""

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from kube_assistant.agent.context import PLAIN_INSTRUCTION, SCHEMA_LOOKUP_INSTRUCTION
from kube_assistant.agent.loop import ConversationLoop
from kube_assistant.agent.retry import RetryPolicy
from kube_assistant.agent.tools.schema import build_schema_tools
from kube_assistant.config.schema import Settings
from kube_assistant.errors import (
    ProviderRequestError,
    SchemaError,
    ToolIterationLimitError,
    UnknownToolError,
)
from kube_assistant.kube.openapi import OpenAPISchemaSource
from kube_assistant.providers.base import FinalText, ToolCall, ToolCallRequest
from kube_assistant.providers.openai_provider import CompletionClient

OPENAPI_URL = "https://schema.test/openapi/v2"

DEFINITIONS = {
    "io.k8s.api.core.v1.Pod": {"type": "object"},
    "io.k8s.api.core.v1.PodSpec": {"type": "object", "required": ["containers"]},
    "io.k8s.api.apps.v1.Deployment": {"type": "object"},
}


def make_settings(**overrides) -> Settings:
    values = {
        "openai_api_key": "sk-test",
        "openai_endpoint": "https://api.test/v1",
        "openai_deployment_name": "gpt-4o",
        "use_k8s_api": True,
        "k8s_openapi_url": OPENAPI_URL,
        "temperature": 0.0,
    }
    values.update(overrides)
    return Settings(**values)


def find_names_call(resource: str = "pod") -> ToolCall:
    return ToolCall(ToolCallRequest(name="findSchemaNames", arguments_json=json.dumps({"resourceName": resource})))


@pytest.fixture
def sleep():
    return AsyncMock()


@pytest.fixture
def schema_source():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"definitions": DEFINITIONS})

    return OpenAPISchemaSource(openapi_url=OPENAPI_URL, transport=httpx.MockTransport(handler))


@pytest.fixture
def mock_client():
    """Completion client with mocked calls."""
    client = MagicMock(spec=CompletionClient)
    client.complete_chat = AsyncMock()
    client.complete_text = AsyncMock()
    return client


def make_loop(client, source, sleep, **overrides) -> ConversationLoop:
    return ConversationLoop(
        client=client,
        tools=build_schema_tools(source),
        settings=make_settings(**overrides),
        retry_policy=RetryPolicy(sleep=sleep),
    )


@pytest.mark.asyncio
async def test_direct_answer_is_returned_without_fences(mock_client, schema_source, sleep):
    mock_client.complete_chat.return_value = FinalText("```yaml\nkind: Pod\n```")
    loop = make_loop(mock_client, schema_source, sleep)

    result = await loop.run(["create a pod"])

    assert result == "\nkind: Pod\n"
    mock_client.complete_chat.assert_awaited_once()
    prompt, temperature, tools_enabled = mock_client.complete_chat.await_args.args
    assert prompt == SCHEMA_LOOKUP_INSTRUCTION + "create a pod"
    assert temperature == 0.0
    assert tools_enabled is True


@pytest.mark.asyncio
async def test_prompt_fragments_are_concatenated(mock_client, schema_source, sleep):
    mock_client.complete_chat.return_value = FinalText("kind: Pod")
    loop = make_loop(mock_client, schema_source, sleep, use_k8s_api=False)

    await loop.run(["create a pod", " named web", ""])

    prompt, _, tools_enabled = mock_client.complete_chat.await_args.args
    assert prompt == PLAIN_INSTRUCTION + "create a pod named web"
    assert tools_enabled is False


@pytest.mark.asyncio
async def test_tool_call_then_final_text_takes_two_calls(mock_client, schema_source, sleep):
    mock_client.complete_chat.side_effect = [find_names_call(), FinalText("apiVersion: v1\nkind: Pod")]
    loop = make_loop(mock_client, schema_source, sleep)

    result = await loop.run(["create a pod"])

    assert result == "apiVersion: v1\nkind: Pod"
    assert mock_client.complete_chat.await_count == 2


@pytest.mark.asyncio
async def test_tool_result_is_appended_to_next_transcript(mock_client, schema_source, sleep):
    mock_client.complete_chat.side_effect = [find_names_call("pod"), FinalText("kind: Pod")]
    loop = make_loop(mock_client, schema_source, sleep)

    await loop.run(["create a pod"])

    first_prompt = mock_client.complete_chat.await_args_list[0].args[0]
    second_prompt = mock_client.complete_chat.await_args_list[1].args[0]
    assert second_prompt == first_prompt + "io.k8s.api.core.v1.Pod\nio.k8s.api.core.v1.PodSpec"


@pytest.mark.asyncio
async def test_tool_round_trip_over_http(schema_source, sleep):
    """findSchemaNames request, dispatch and follow-up call through the real client."""
    bodies: list[dict] = []
    responses = [
        {
            "choices": [
                {
                    "message": {
                        "content": None,
                        "tool_calls": [
                            {
                                "id": "call_1",
                                "type": "function",
                                "function": {"name": "findSchemaNames", "arguments": '{"resourceName":"pod"}'},
                            }
                        ],
                    }
                }
            ]
        },
        {"choices": [{"message": {"content": "```yaml\napiVersion: v1\nkind: Pod\n```"}}]},
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json=responses.pop(0))

    settings = make_settings()
    tools = build_schema_tools(schema_source)
    client = CompletionClient.from_settings(
        settings,
        tool_definitions=tools.get_definitions(),
        transport=httpx.MockTransport(handler),
    )
    loop = ConversationLoop(client=client, tools=tools, settings=settings, retry_policy=RetryPolicy(sleep=sleep))

    result = await loop.run(["create a pod"])

    assert result == "\napiVersion: v1\nkind: Pod\n"
    assert len(bodies) == 2
    assert bodies[0]["tool_choice"] == "auto"
    assert [t["function"]["name"] for t in bodies[0]["tools"]] == ["findSchemaNames", "getSchema"]
    assert "io.k8s.api.core.v1.Pod\nio.k8s.api.core.v1.PodSpec" in bodies[1]["messages"][0]["content"]


@pytest.mark.asyncio
async def test_non_chat_model_uses_plain_completion_once(mock_client, schema_source, sleep):
    mock_client.complete_text.return_value = "```yaml\nkind: Pod\n```"
    loop = make_loop(mock_client, schema_source, sleep, openai_deployment_name="text-davinci-003", use_k8s_api=True)

    result = await loop.run(["create a pod"])

    assert result == "\nkind: Pod\n"
    mock_client.complete_text.assert_awaited_once()
    mock_client.complete_chat.assert_not_awaited()
    prompt, _ = mock_client.complete_text.await_args.args
    assert prompt == PLAIN_INSTRUCTION + "create a pod"


@pytest.mark.asyncio
async def test_non_chat_model_request_never_carries_tools(schema_source, sleep):
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"choices": [{"text": "kind: Pod"}]})

    settings = make_settings(openai_deployment_name="text-davinci-003", use_k8s_api=True)
    tools = build_schema_tools(schema_source)
    client = CompletionClient.from_settings(
        settings,
        tool_definitions=tools.get_definitions(),
        transport=httpx.MockTransport(handler),
    )
    loop = ConversationLoop(client=client, tools=tools, settings=settings, retry_policy=RetryPolicy(sleep=sleep))

    assert await loop.run(["create a pod"]) == "kind: Pod"
    assert len(requests) == 1
    assert requests[0].url.path == "/v1/completions"
    body = json.loads(requests[0].content)
    assert "tools" not in body
    assert "tool_choice" not in body


@pytest.mark.asyncio
async def test_rate_limited_call_is_retried(mock_client, schema_source, sleep):
    mock_client.complete_chat.side_effect = [ProviderRequestError(429, "slow down"), FinalText("kind: Pod")]
    loop = make_loop(mock_client, schema_source, sleep)

    assert await loop.run(["create a pod"]) == "kind: Pod"
    assert mock_client.complete_chat.await_count == 2
    sleep.assert_awaited_once_with(1)


@pytest.mark.asyncio
async def test_fatal_provider_error_aborts(mock_client, schema_source, sleep):
    error = ProviderRequestError(401, "Incorrect API key provided")
    mock_client.complete_chat.side_effect = error
    loop = make_loop(mock_client, schema_source, sleep)

    with pytest.raises(ProviderRequestError) as exc_info:
        await loop.run(["create a pod"])

    assert exc_info.value is error
    assert mock_client.complete_chat.await_count == 1


@pytest.mark.asyncio
async def test_unknown_tool_aborts(mock_client, schema_source, sleep):
    mock_client.complete_chat.side_effect = [
        ToolCall(ToolCallRequest(name="applyManifest", arguments_json="{}")),
        FinalText("kind: Pod"),
    ]
    loop = make_loop(mock_client, schema_source, sleep)

    with pytest.raises(UnknownToolError):
        await loop.run(["create a pod"])

    assert mock_client.complete_chat.await_count == 1


@pytest.mark.asyncio
async def test_schema_failure_aborts(mock_client, sleep):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"paths": {}})

    source = OpenAPISchemaSource(openapi_url=OPENAPI_URL, transport=httpx.MockTransport(handler))
    mock_client.complete_chat.side_effect = [find_names_call(), FinalText("kind: Pod")]
    loop = make_loop(mock_client, source, sleep)

    with pytest.raises(SchemaError, match="unable to assert schema definitions"):
        await loop.run(["create a pod"])


@pytest.mark.asyncio
async def test_tool_iteration_limit(mock_client, schema_source, sleep):
    mock_client.complete_chat.return_value = find_names_call()
    loop = make_loop(mock_client, schema_source, sleep, max_tool_iterations=3)

    with pytest.raises(ToolIterationLimitError) as exc_info:
        await loop.run(["create a pod"])

    assert exc_info.value.limit == 3
    assert mock_client.complete_chat.await_count == 4


@pytest.mark.asyncio
async def test_each_run_starts_a_fresh_transcript(mock_client, schema_source, sleep):
    mock_client.complete_chat.side_effect = [find_names_call(), FinalText("a"), FinalText("b")]
    loop = make_loop(mock_client, schema_source, sleep)

    await loop.run(["create a pod"])
    await loop.run(["create a pod"])

    third_prompt = mock_client.complete_chat.await_args_list[2].args[0]
    assert third_prompt == SCHEMA_LOOKUP_INSTRUCTION + "create a pod"
