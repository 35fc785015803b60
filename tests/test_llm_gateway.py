"""Tests for the LLM gateway (LiteLLM mocked)."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from ganli.core.errors import AnalysisUnavailable
from ganli.services.llm_gateway import LLMGateway, Prompt, strict_json_schema
from ganli.services.personality import ReportDraft, TypeClassification

PROMPT = Prompt(system="你是分析顾问", user="请分析")


def _response(content: str | None) -> SimpleNamespace:
    message = SimpleNamespace(content=content)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _gateway() -> LLMGateway:
    return LLMGateway(model="openrouter/deepseek/deepseek-chat", api_key="sk-test", timeout=60)


@pytest.mark.asyncio
async def test_free_text_call_returns_stripped_content():
    mock = AsyncMock(return_value=_response("  线索一\n线索二  "))
    with patch("ganli.services.llm_gateway.acompletion", mock):
        result = await _gateway().invoke(PROMPT, temperature=0.3)

    assert result == "线索一\n线索二"
    kwargs = mock.call_args.kwargs
    assert kwargs["model"] == "openrouter/deepseek/deepseek-chat"
    assert kwargs["api_key"] == "sk-test"
    assert kwargs["timeout"] == 60
    assert kwargs["temperature"] == 0.3
    assert kwargs["messages"][0] == {"role": "system", "content": "你是分析顾问"}
    assert kwargs["messages"][1] == {"role": "user", "content": "请分析"}
    assert "response_format" not in kwargs


@pytest.mark.asyncio
async def test_schema_call_returns_typed_result():
    body = json.dumps({
        "type": "理理型", "dimension1": "理性表达", "dimension2": "结构化行为", "confidence": 72,
    }, ensure_ascii=False)
    mock = AsyncMock(return_value=_response(body))
    with patch("ganli.services.llm_gateway.acompletion", mock):
        result = await _gateway().invoke(PROMPT, schema=TypeClassification)

    assert isinstance(result, TypeClassification)
    assert result.type == "理理型"
    assert result.confidence == 72

    fmt = mock.call_args.kwargs["response_format"]
    assert fmt["type"] == "json_schema"
    assert fmt["json_schema"]["strict"] is True
    assert fmt["json_schema"]["name"] == "TypeClassification"


@pytest.mark.asyncio
async def test_fenced_json_is_accepted():
    body = '```json\n{"type": "感感型", "dimension1": "感性表达", "dimension2": "灵活化行为", "confidence": 60}\n```'
    with patch("ganli.services.llm_gateway.acompletion", AsyncMock(return_value=_response(body))):
        result = await _gateway().invoke(PROMPT, schema=TypeClassification)
    assert result.type == "感感型"


@pytest.mark.asyncio
async def test_provider_error_becomes_analysis_unavailable():
    mock = AsyncMock(side_effect=RuntimeError("upstream 503"))
    with patch("ganli.services.llm_gateway.acompletion", mock):
        with pytest.raises(AnalysisUnavailable):
            await _gateway().invoke(PROMPT)


@pytest.mark.asyncio
@pytest.mark.parametrize("content", [None, "", "   "])
async def test_empty_response_becomes_analysis_unavailable(content):
    with patch("ganli.services.llm_gateway.acompletion", AsyncMock(return_value=_response(content))):
        with pytest.raises(AnalysisUnavailable):
            await _gateway().invoke(PROMPT)


@pytest.mark.asyncio
async def test_invalid_json_becomes_analysis_unavailable():
    with patch("ganli.services.llm_gateway.acompletion", AsyncMock(return_value=_response("not json"))):
        with pytest.raises(AnalysisUnavailable):
            await _gateway().invoke(PROMPT, schema=TypeClassification)


@pytest.mark.asyncio
async def test_missing_field_becomes_analysis_unavailable():
    body = json.dumps({"type": "感理型", "dimension1": "感性表达", "confidence": 50}, ensure_ascii=False)
    with patch("ganli.services.llm_gateway.acompletion", AsyncMock(return_value=_response(body))):
        with pytest.raises(AnalysisUnavailable):
            await _gateway().invoke(PROMPT, schema=TypeClassification)


@pytest.mark.asyncio
async def test_out_of_set_enum_becomes_analysis_unavailable():
    body = json.dumps({
        "type": "混合型", "dimension1": "感性表达", "dimension2": "结构化行为", "confidence": 50,
    }, ensure_ascii=False)
    with patch("ganli.services.llm_gateway.acompletion", AsyncMock(return_value=_response(body))):
        with pytest.raises(AnalysisUnavailable):
            await _gateway().invoke(PROMPT, schema=TypeClassification)


def test_empty_prompt_rejected():
    with pytest.raises(ValueError):
        Prompt(system="", user="内容")
    with pytest.raises(ValueError):
        Prompt(system="系统", user="   ")


def test_strict_schema_requires_every_property():
    schema = strict_json_schema(ReportDraft)
    assert schema["additionalProperties"] is False
    assert set(schema["required"]) == set(ReportDraft.model_fields)

    risk = schema["$defs"]["RiskLevel"]
    assert set(risk["enum"]) == {"low", "medium", "high"}
