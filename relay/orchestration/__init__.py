"""Orchestration module -- the two message paths and their read side.

Public API:
    MessageTagger          - classification path, owns scoring state
    ResponseGenerator      - generation path, read-only on scoring state
    ConversationTimeline   - conversation + event log views
"""

from relay.orchestration.responder import ResponseGenerator, dialogue_history
from relay.orchestration.schemas import (
    ChatResult,
    ClassificationOutcome,
    ClassificationResult,
    ClassifyContext,
    ConversationState,
    EventRecord,
    EventType,
    GenerateContext,
    GenerationResult,
    HistoryTurn,
    TagResult,
    TimelineView,
)
from relay.orchestration.tagging import MessageTagger
from relay.orchestration.timeline import ConversationTimeline

__all__ = [
    "ConversationTimeline",
    "MessageTagger",
    "ResponseGenerator",
    "dialogue_history",
    "ChatResult",
    "ClassificationOutcome",
    "ClassificationResult",
    "ClassifyContext",
    "ConversationState",
    "EventRecord",
    "EventType",
    "GenerateContext",
    "GenerationResult",
    "HistoryTurn",
    "TagResult",
    "TimelineView",
]
