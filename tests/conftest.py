"""Shared fixtures: a fake model backend and canned OpenAI-style responses."""

from __future__ import annotations

import copy
import json

import pytest


def tool_call_response(name, arguments, call_id="call_abc123") -> dict:
    """Build a chat completion dict whose first choice selects one tool.

    ``arguments`` may be a dict (encoded to JSON) or a raw string sent as-is.
    """
    if isinstance(arguments, dict):
        arguments = json.dumps(arguments)
    return {
        "id": "chatcmpl-test123",
        "object": "chat.completion",
        "model": "gpt-4o",
        "choices": [
            {
                "index": 0,
                "message": {
                    "role": "assistant",
                    "content": None,
                    "refusal": None,
                    "tool_calls": [
                        {
                            "id": call_id,
                            "type": "function",
                            "function": {"name": name, "arguments": arguments},
                        }
                    ],
                },
                "finish_reason": "tool_calls",
            }
        ],
    }


def text_response(content: str = "Sure, happy to help!") -> dict:
    return {
        "id": "chatcmpl-test456",
        "object": "chat.completion",
        "model": "gpt-4o",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content, "tool_calls": None},
                "finish_reason": "stop",
            }
        ],
    }


def parsed_response(parsed=None, refusal=None) -> dict:
    """Build a parsed (structured output) completion dict."""
    return {
        "id": "chatcmpl-test789",
        "object": "chat.completion",
        "model": "gpt-4o-2024-08-06",
        "choices": [
            {
                "index": 0,
                "message": {
                    "role": "assistant",
                    "content": None if parsed is None else json.dumps(parsed),
                    "refusal": refusal,
                    "parsed": parsed,
                    "tool_calls": None,
                },
                "finish_reason": "stop",
            }
        ],
    }


class FakeBackend:
    """Records every request and answers with a canned response."""

    def __init__(self, response: dict):
        self.response = response
        self.requests = []
        self.cancel_tokens = []
        self.closed = False

    def submit(self, request, cancel=None) -> dict:
        self.requests.append(request)
        self.cancel_tokens.append(cancel)
        return copy.deepcopy(self.response)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def make_backend():
    return FakeBackend


def sdk_completion_body(content=None, finish_reason="stop", tool_calls=None) -> dict:
    """A chat completion body as the HTTP API returns it."""
    message = {"role": "assistant", "content": content, "refusal": None}
    if tool_calls is not None:
        message["tool_calls"] = tool_calls
    return {
        "id": "chatcmpl-sdk123",
        "object": "chat.completion",
        "created": 1725148800,
        "model": "gpt-4o-2024-08-06",
        "choices": [
            {
                "index": 0,
                "message": message,
                "finish_reason": finish_reason,
                "logprobs": None,
            }
        ],
        "usage": {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15},
    }


def sdk_model_client(body: dict):
    """A ModelClient driving the real OpenAI SDK against an httpx mock transport."""
    import httpx
    from openai import OpenAI

    from config import Settings
    from llm_client import ModelClient

    transport = httpx.MockTransport(lambda request: httpx.Response(200, json=body))
    sdk = OpenAI(
        api_key="test-key",
        base_url="http://test-api/v1",
        max_retries=0,
        http_client=httpx.Client(transport=transport),
    )
    return ModelClient(Settings(), client=sdk)
