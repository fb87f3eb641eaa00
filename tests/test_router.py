"""Unit tests for ProviderRouter -- ordered fallback over scripted backends."""

import logging

import pytest

from conftest import ScriptedProvider, failing
from relay.orchestration.schemas import (
    UNCLASSIFIED_TAG,
    ClassificationResult,
    ClassifyContext,
    GenerateContext,
    GenerationResult,
)
from relay.providers import ProviderError, ProviderRouter, RouterExhaustedError

CONTEXT = ClassifyContext(last_tags=[], stage="triage", trust_level=50)
GEN_CONTEXT = GenerateContext(stage="triage", trust_level=50)


def test_empty_provider_list_rejected():
    with pytest.raises(ValueError):
        ProviderRouter([])


def test_names_in_priority_order():
    router = ProviderRouter([ScriptedProvider("a"), ScriptedProvider("b")])
    assert router.names == ("a", "b")


async def test_first_success_wins_and_later_backends_untouched():
    first = ScriptedProvider("a", classification=ClassificationResult(tags=["python"], signals=[], tokens_used=12))
    second = ScriptedProvider("b")
    router = ProviderRouter([first, second])

    result = await router.classify("hello", CONTEXT)

    assert result.tags == ["python"]
    assert len(first.classify_calls) == 1
    assert second.classify_calls == []


async def test_falls_through_failures_in_order(caplog):
    """A and B fail, C answers; each failure is logged once and C is called once."""
    a, b = failing("a"), failing("b")
    c = ScriptedProvider("c", classification=ClassificationResult(tags=["go"], signals=["DEBUG_REQUEST"]))
    router = ProviderRouter([a, b, c])

    with caplog.at_level(logging.WARNING, logger="relay.providers.router"):
        result = await router.classify("help", CONTEXT)

    assert result.signals == ["DEBUG_REQUEST"]
    assert len(a.classify_calls) == 1
    assert len(b.classify_calls) == 1
    assert len(c.classify_calls) == 1
    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 2
    assert "(a)" in warnings[0].getMessage()
    assert "(b)" in warnings[1].getMessage()


async def test_exhaustion_reports_last_error():
    e1 = ProviderError("a", "first failure")
    e2 = ProviderError("b", "second failure")
    router = ProviderRouter([ScriptedProvider("a", error=e1), ScriptedProvider("b", error=e2)])

    with pytest.raises(RouterExhaustedError) as exc_info:
        await router.classify("x", CONTEXT)

    err = exc_info.value
    assert err.last_error is e2
    assert err.__cause__ is e2
    assert [name for name, _ in err.errors] == ["a", "b"]
    assert err.operation == "classify"
    assert "second failure" in str(err)


async def test_exhaustion_with_unexpected_exception_type():
    router = ProviderRouter([ScriptedProvider("a", error=KeyError("choices"))])
    with pytest.raises(RouterExhaustedError) as exc_info:
        await router.classify("x", CONTEXT)
    assert isinstance(exc_info.value.last_error, KeyError)


async def test_classify_or_degrade_returns_unclassified():
    router = ProviderRouter([failing("a", "down"), failing("b", "also down")])

    outcome = await router.classify_or_degrade("x", CONTEXT)

    assert outcome.degraded is True
    assert outcome.result.tags == [UNCLASSIFIED_TAG]
    assert outcome.result.signals == []
    assert outcome.result.tokens_used == 0
    assert "also down" in outcome.error


async def test_classify_or_degrade_passes_success_through():
    router = ProviderRouter([ScriptedProvider("a", classification=ClassificationResult(tags=["rust"], tokens_used=5))])
    outcome = await router.classify_or_degrade("x", CONTEXT)
    assert outcome.degraded is False
    assert outcome.error is None
    assert outcome.result.tags == ["rust"]


async def test_generate_falls_back_and_forwards_persona():
    a = failing("a")
    b = ScriptedProvider("b", generation=GenerationResult(text="hi there", tokens_used=7))
    router = ProviderRouter([a, b])

    result = await router.generate_response(
        "hello", [], GEN_CONTEXT, persona_id="reviewer", supplemental_context="repo: relay"
    )

    assert result.text == "hi there"
    assert b.generate_calls[0]["persona_id"] == "reviewer"
    assert b.generate_calls[0]["supplemental_context"] == "repo: relay"


async def test_generate_exhaustion_raises():
    router = ProviderRouter([failing("a"), failing("b", "quota")])
    with pytest.raises(RouterExhaustedError) as exc_info:
        await router.generate_response("hello", [], GEN_CONTEXT)
    assert exc_info.value.operation == "generate_response"
    assert exc_info.value.last_error.provider == "b"


async def test_close_closes_every_backend():
    providers = [ScriptedProvider("a"), ScriptedProvider("b")]
    router = ProviderRouter(providers)
    await router.close()
    assert all(p.closed for p in providers)
