"""Unit tests for the classifier oracle and OracleResult."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.triage.classifier.oracle import (
    LLMOracle,
    OracleError,
    OracleFailureKind,
    OracleResult,
)


def run_async(coro):
    return asyncio.run(coro)


def _oracle_with_reply(reply=None, side_effect=None):
    oracle = LLMOracle(llm_url="https://llm.example.com/v1", model_name="test-model")
    llm = MagicMock()
    llm.ainvoke = AsyncMock(return_value=reply, side_effect=side_effect)
    oracle._llm = llm
    return oracle, llm


# ---------------------------------------------------------------------------
# OracleResult
# ---------------------------------------------------------------------------


def test_success_unwraps_to_text():
    result = OracleResult.success("SPAM")

    assert result.ok is True
    assert result.unwrap("issue_spam") == "SPAM"


def test_failure_unwrap_raises_oracle_error():
    cause = RuntimeError("boom")
    result = OracleResult.failure(OracleFailureKind.TRANSPORT, "boom", cause)

    assert result.ok is False
    with pytest.raises(OracleError) as exc_info:
        result.unwrap("issue_spam")

    error = exc_info.value
    assert error.purpose == "issue_spam"
    assert error.kind == OracleFailureKind.TRANSPORT
    assert error.cause is cause
    assert "issue_spam" in str(error)
    assert "transport" in str(error)


def test_result_without_text_is_not_ok():
    with pytest.raises(OracleError) as exc_info:
        OracleResult().unwrap("pr_quality")

    assert exc_info.value.kind == OracleFailureKind.MALFORMED_RESPONSE


# ---------------------------------------------------------------------------
# LLMOracle.classify
# ---------------------------------------------------------------------------


def test_classify_returns_stripped_text():
    oracle, llm = _oracle_with_reply(MagicMock(content="  NOT_SPAM \n"))

    result = run_async(oracle.classify("Is this spam?", "issue_spam"))

    assert result.ok
    assert result.text == "NOT_SPAM"
    messages = llm.ainvoke.call_args[0][0]
    assert len(messages) == 1
    assert messages[0].content == "Is this spam?"


def test_classify_transport_failure():
    oracle, _ = _oracle_with_reply(side_effect=ConnectionError("refused"))

    result = run_async(oracle.classify("prompt", "issue_spam"))

    assert not result.ok
    assert result.failure_kind == OracleFailureKind.TRANSPORT
    assert isinstance(result.cause, ConnectionError)
    assert "refused" in result.detail


@pytest.mark.parametrize("content", ["", "   \n\t"])
def test_classify_empty_reply(content):
    oracle, _ = _oracle_with_reply(MagicMock(content=content))

    result = run_async(oracle.classify("prompt", "issue_spam"))

    assert result.failure_kind == OracleFailureKind.EMPTY_RESPONSE


def test_classify_non_text_reply_is_malformed():
    oracle, _ = _oracle_with_reply(MagicMock(content=[{"type": "image"}]))

    result = run_async(oracle.classify("prompt", "issue_spam"))

    assert result.failure_kind == OracleFailureKind.MALFORMED_RESPONSE
    assert "list" in result.detail


def test_llm_created_lazily_with_settings():
    oracle = LLMOracle(
        llm_url="https://llm.example.com/v1",
        model_name="test-model",
        api_key="secret",
        timeout=12.0,
        temperature=0.3,
        max_tokens=200,
    )

    with patch("src.triage.classifier.oracle.ChatOpenAI") as chat_cls:
        first = oracle.llm
        second = oracle.llm

    assert first is second
    chat_cls.assert_called_once_with(
        base_url="https://llm.example.com/v1",
        model="test-model",
        temperature=0.3,
        timeout=12.0,
        max_tokens=200,
        api_key="secret",
    )


def test_health_check():
    oracle, _ = _oracle_with_reply(MagicMock(content="hi"))
    assert run_async(oracle.health_check()) is True

    oracle, _ = _oracle_with_reply(side_effect=TimeoutError())
    assert run_async(oracle.health_check()) is False
