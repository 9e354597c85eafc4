"""
Tests for the AI price suggestion and its local estimate fallback.
"""

from datetime import date
from unittest.mock import MagicMock

import pytest
import requests

from ai_quote import (
    FALLBACK_ERROR,
    build_prompt,
    mock_estimate,
    parse_dollar_amount,
    request_completion,
    suggest_quote,
)
from errors import ExternalServiceError
from job_store import ErrorKind, JobStore, QueryResult, StoreError
from pricing_engine import PricingConfig, QuoteInputs

TODAY = date(2026, 10, 19)

HISTORY = [
    {
        "part_type": "Bracket",
        "material": "steel",
        "quantity": 20,
        "complexity": "medium",
        "deadline": "2026-10-11",
        "created_at": "2026-10-01T00:00:00+00:00",
        "quote": 975,
    },
    {
        "part_type": "Bracket mount",
        "material": "aluminum",
        "quantity": 5,
        "complexity": "low",
        "deadline": None,
        "created_at": "2026-09-01T00:00:00+00:00",
        "quote_amount": "120.5",
    },
]


@pytest.fixture
def inputs():
    return QuoteInputs(
        part_type="Bracket", material="steel", quantity=10, complexity="medium",
        deadline=date(2026, 10, 29),
    )


@pytest.fixture
def store():
    s = MagicMock(spec=JobStore)
    s.fetch_similar.return_value = QueryResult(data=list(HISTORY))
    return s


def ok_response(content):
    r = MagicMock(status_code=200)
    r.json.return_value = {"choices": [{"message": {"content": content}}]}
    return r


# Prompt

def test_build_prompt_lists_history_and_new_job(inputs):
    prompt = build_prompt(inputs, HISTORY, today=TODAY)

    assert "1. Part: Bracket, Material: steel, Quantity: 20, Complexity: medium, Deadline: 10 days → Quote: $975.00" in prompt
    assert "2. Part: Bracket mount, Material: aluminum, Quantity: 5, Complexity: low, Deadline: not specified → Quote: $120.50" in prompt
    assert "Part: Bracket, Material: steel, Quantity: 10, Complexity: medium, Deadline: 10 days" in prompt
    assert prompt.endswith("Return only the estimated quote as a dollar amount (e.g. $975.00).")


def test_build_prompt_without_history(inputs):
    prompt = build_prompt(inputs, [], today=TODAY)
    assert "No historical data available for similar jobs." in prompt


def test_build_prompt_without_deadline():
    prompt = build_prompt(QuoteInputs("Gear", "titanium", 1, "high"), [], today=TODAY)
    assert "Deadline: not specified" in prompt


@pytest.mark.parametrize("text,amount", [
    ("$975.00", 975.0),
    ("$1,234.50", 1234.5),
    ("About 620 dollars", 620.0),
    ("I cannot say", None),
    ("", None),
])
def test_parse_dollar_amount(text, amount):
    assert parse_dollar_amount(text) == amount


# Remote call

def test_request_completion_posts_chat_request():
    session = MagicMock()
    session.post.return_value = ok_response("  $540.00 \n")

    text = request_completion(
        "prompt", api_key="sk-test", model="gpt-3.5-turbo",
        base_url="https://api.example.com/v1", timeout=10, session=session,
    )

    assert text == "$540.00"
    args, kwargs = session.post.call_args
    assert args[0] == "https://api.example.com/v1/chat/completions"
    assert kwargs["timeout"] == 10
    assert kwargs["headers"]["Authorization"] == "Bearer sk-test"
    assert kwargs["json"]["max_tokens"] == 50
    assert kwargs["json"]["messages"][1] == {"role": "user", "content": "prompt"}


@pytest.mark.parametrize("response", [
    MagicMock(status_code=500, text="oops"),
    ok_response("   "),
])
def test_request_completion_rejects_bad_responses(response):
    session = MagicMock()
    session.post.return_value = response
    with pytest.raises(ExternalServiceError):
        request_completion("p", api_key="k", model="m", base_url="u", timeout=1, session=session)


def test_request_completion_requires_api_key():
    session = MagicMock()
    with pytest.raises(ExternalServiceError):
        request_completion("p", api_key="", model="m", base_url="u", timeout=1, session=session)
    session.post.assert_not_called()


# suggest_quote

def test_suggest_quote_uses_ai_reply(inputs, store):
    session = MagicMock()
    session.post.return_value = ok_response("$612.40")

    result = suggest_quote(
        inputs, PricingConfig(), store, api_key="k", session=session, today=TODAY,
    )

    assert result.suggestion == "$612.40"
    assert result.amount == 612.4
    assert result.error is None
    assert result.used_fallback is False
    assert len(result.similar_jobs) == 2
    store.fetch_similar.assert_called_once_with("jobs", "steel", "Bracket", limit=5)


def test_suggest_quote_falls_back_on_transport_error(inputs, store):
    session = MagicMock()
    session.post.side_effect = requests.ConnectionError("no route")

    result = suggest_quote(
        inputs, PricingConfig(), store, api_key="k", session=session,
        noise=lambda low, high: 1.0, today=TODAY,
    )

    assert result.used_fallback is True
    assert result.error == FALLBACK_ERROR
    assert result.amount == 450.0  # 15 * 1.5 * 2 * 10
    assert result.suggestion == "$450.00"


def test_suggest_quote_treats_query_error_as_no_history(inputs):
    store = MagicMock(spec=JobStore)
    store.fetch_similar.return_value = QueryResult(
        error=StoreError(kind=ErrorKind.UNREACHABLE, message="offline")
    )
    seen = []

    def noise(low, high):
        seen.append((low, high))
        return 1.0

    result = suggest_quote(inputs, PricingConfig(), store, api_key="", noise=noise, today=TODAY)

    assert result.similar_jobs == []
    assert "No historical data available" in result.prompt
    assert result.used_fallback is True
    assert seen == [(0.9, 1.2)]


def test_mock_estimate_band_narrows_with_history(inputs):
    seen = []

    def noise(low, high):
        seen.append((low, high))
        return low

    amount = mock_estimate(inputs, PricingConfig(), has_history=True, noise=noise)

    assert seen == [(0.95, 1.15)]
    assert amount == 427.5
