"""Message tagging -- classify one message and advance the conversation.

Classification is best-effort: if every backend fails the message is
tagged UNCLASSIFIED at zero cost and the conversation still advances.
Persistence failures are never absorbed.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from relay.orchestration.contracts import ConversationRepository, EventRepository
from relay.orchestration.schemas import ClassifyContext, EventType, TagResult
from relay.providers.router import ProviderRouter
from relay.scoring import CostTracker, ScoreEngine

logger = logging.getLogger(__name__)


class MessageTagger:
    """Owns every mutation of a conversation's scoring state."""

    def __init__(
        self,
        conversations: ConversationRepository,
        events: EventRepository,
        router: ProviderRouter,
        score_engine: ScoreEngine,
        cost_tracker: CostTracker,
    ) -> None:
        self._conversations = conversations
        self._events = events
        self._router = router
        self._scores = score_engine
        self._costs = cost_tracker

    async def tag(self, user_id: str, message: str) -> TagResult:
        """Tag one inbound message.

        Steps:
        1. Resolve or create the user's conversation
        2. Log the MESSAGE event
        3. Classify via the router (degrades to UNCLASSIFIED, never raises)
        4. Log SIGNALS_DETECTED when any signal came back
        5. Rescore, restage; log STAGE_CHANGE on a transition
        6. Price the tokens
        7. Adjust trust from trust-bearing signals, clamped to [0, 100]
        8. Persist everything in one update, deriving the budget flag there
        9. Return the new state and this message's cost
        """
        conversation = await self._conversations.find_or_create(user_id)

        await self._events.append(conversation.id, EventType.MESSAGE, {"content": message})

        outcome = await self._router.classify_or_degrade(
            message,
            ClassifyContext(
                last_tags=conversation.last_tags,
                stage=conversation.stage,
                trust_level=conversation.trust_level,
            ),
        )
        if outcome.degraded:
            logger.warning(
                "Classification degraded for conversation %s: %s",
                conversation.id.hex[:8],
                outcome.error,
            )
        classification = outcome.result

        if classification.signals:
            await self._events.append(
                conversation.id,
                EventType.SIGNALS_DETECTED,
                {"signals": classification.signals},
            )

        new_score = self._scores.update_score(conversation.current_score, classification.signals)
        new_stage = self._scores.derive_stage(new_score)
        if new_stage != conversation.stage:
            await self._events.append(
                conversation.id,
                EventType.STAGE_CHANGE,
                {"from": conversation.stage, "to": new_stage},
            )
            logger.info(
                "Conversation %s stage %s -> %s (score %d)",
                conversation.id.hex[:8],
                conversation.stage,
                new_stage,
                new_score,
            )

        message_cost = self._costs.calculate_cost(classification.tokens_used)

        new_trust = self._scores.apply_trust(conversation.trust_level, classification.signals)

        updated = await self._conversations.update(
            conversation.id,
            {
                "current_score": new_score,
                "last_tags": classification.tags,
                "trust_level": new_trust,
                "stage": new_stage,
                "last_interaction_at": datetime.now(UTC),
            },
            increments={
                # High-water mark of gains: decreases never reduce it
                "cumulative_score": max(0, new_score - conversation.current_score),
                "message_count": 1,
                "conversation_cost": message_cost,
            },
            budget_threshold=self._costs.budget_threshold,
        )
        if updated.over_budget and not conversation.over_budget:
            logger.warning(
                "Conversation %s is over budget: %.4f >= %.4f",
                updated.id.hex[:8],
                updated.conversation_cost,
                self._costs.budget_threshold,
            )

        return TagResult(
            conversation_id=updated.id,
            current_score=new_score,
            stage=new_stage,
            trust_level=new_trust,
            tags=classification.tags,
            signals=classification.signals,
            cost=message_cost,
            conversation_cost=updated.conversation_cost,
            over_budget=updated.over_budget,
            degraded=outcome.degraded,
        )
