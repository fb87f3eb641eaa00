"""Prompt text and reply parsing shared by every adapter."""

from __future__ import annotations

import json
import re
from collections.abc import Sequence

from relay.orchestration.schemas import ClassificationResult, ClassifyContext
from relay.providers.base import ProviderError

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def classification_prompt(
    message: str,
    context: ClassifyContext,
    allowed_signals: Sequence[str],
) -> str:
    last_tags = ", ".join(context.last_tags) or "none"
    signal_list = "\n".join(f"- {s}" for s in allowed_signals)
    return (
        "You classify messages from developers and technical users. Detect the "
        "technologies or patterns they mention and the behavioural signals the "
        "message carries.\n\n"
        f'MESSAGE: "{message}"\n'
        f"CURRENT STAGE: {context.stage}, TRUST LEVEL: {context.trust_level}\n"
        f"PREVIOUS TAGS: {last_tags}\n\n"
        "Reply with JSON only, in exactly this shape:\n"
        '{"tags": ["technologies or patterns detected"], "signals": ["SIGNAL_NAME"]}\n\n'
        "Allowed signals (use none if none apply):\n"
        f"{signal_list}\n"
    )


def parse_classification(provider: str, text: str, tokens_used: int) -> ClassificationResult:
    """Parse a backend's JSON reply into a ClassificationResult.

    Tolerates a markdown code fence around the JSON. Signals are
    upper-cased; non-string entries are dropped.
    """
    raw = text.strip()
    fenced = _FENCE_RE.match(raw)
    if fenced:
        raw = fenced.group(1)
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ProviderError(provider, f"classification reply is not JSON: {e}") from e
    if not isinstance(data, dict):
        raise ProviderError(provider, f"classification reply is {type(data).__name__}, expected object")

    # Ordered set: first occurrence wins
    tags = list(dict.fromkeys(_strings(data.get("tags"))))
    signals = [s.upper() for s in _strings(data.get("signals"))]
    return ClassificationResult(tags=tags, signals=signals, tokens_used=max(0, tokens_used))


def _strings(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    return [v.strip() for v in value if isinstance(v, str) and v.strip()]
