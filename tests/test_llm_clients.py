from __future__ import annotations

import pytest

from conftest import make_settings
from llm.factory import build_llm_client
from llm.openai_client import OpenAIClient
from llm.vllm_client import SSE_DONE, VLLMClient, delta_content, sse_data
from relay.errors import TokenSourceError


def test_factory_without_credentials_runs_placeholder_mode():
    assert build_llm_client(make_settings(llm_provider="openai")) is None
    assert build_llm_client(make_settings(llm_provider="self_hosted_vllm")) is None


def test_factory_builds_configured_clients():
    openai_client = build_llm_client(make_settings(llm_provider="openai", llm_api_key="sk-test"))
    vllm_client = build_llm_client(
        make_settings(llm_provider="self_hosted_vllm", llm_endpoint="http://vllm:8000/")
    )

    assert isinstance(openai_client, OpenAIClient)
    assert isinstance(vllm_client, VLLMClient)


def test_vllm_client_requires_endpoint():
    with pytest.raises(ValueError):
        VLLMClient(make_settings(llm_provider="self_hosted_vllm"))


def test_sse_data_extracts_payload():
    assert sse_data('data: {"a": 1}') == '{"a": 1}'
    assert sse_data("data: [DONE]") == SSE_DONE
    assert sse_data(": keep-alive comment") is None
    assert sse_data("") is None


def test_delta_content_reads_first_choice():
    assert delta_content('{"choices": [{"delta": {"content": "はい"}}]}') == "はい"
    assert delta_content('{"choices": [{"delta": {"role": "assistant"}}]}') is None
    assert delta_content('{"choices": []}') is None


def test_delta_content_rejects_invalid_json():
    with pytest.raises(TokenSourceError):
        delta_content("{broken")
