"""
Selection Engine - which items a learner is asked about next.

Two steps:
1. Mix ratio: split the session between vocabulary and grammar, inversely
   to the learner's recent accuracy on each topic (clamped to 30-70%).
2. Ranking: inside each category, order candidates by
   due flag DESC, urgency DESC, staleness DESC, difficulty ASC.

Urgency combines the four deficits of an item:

    urgency = w1*(1 - mastery) + w2*(1 - retention)
            + w3*(1 - confidence/100) + w4*(1/(1 + exposure))

Grammar weighs confidence more heavily than vocabulary because grammar
errors are more consistency-sensitive.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from loguru import logger

from lexicore.core.models import CandidateRow, ItemType
from lexicore.core.store import ORDER_DUE_FIRST, MasteryStore


@dataclass(frozen=True)
class UrgencyWeights:
    """Weights of the mastery, retention, confidence and exposure deficits."""

    mastery: float
    retention: float
    confidence: float
    exposure: float


URGENCY_WEIGHTS: dict[ItemType, UrgencyWeights] = {
    ItemType.VOCABULARY: UrgencyWeights(mastery=0.40, retention=0.30, confidence=0.20, exposure=0.10),
    ItemType.GRAMMAR: UrgencyWeights(mastery=0.35, retention=0.25, confidence=0.25, exposure=0.15),
}


def urgency_score(candidate: CandidateRow) -> float:
    """Composite urgency of a candidate, higher = more in need of review."""
    w = URGENCY_WEIGHTS[candidate.item_type]
    return (
        w.mastery * (1 - candidate.mastery)
        + w.retention * (1 - candidate.retention)
        + w.confidence * (1 - candidate.confidence / 100)
        + w.exposure * (1 / (1 + candidate.exposure))
    )


def ranking_key(candidate: CandidateRow) -> tuple:
    """Sort key implementing the strict priority order of the ranking."""
    return (
        0 if candidate.is_due else 1,
        -round(urgency_score(candidate), 9),
        -candidate.seconds_since_review,
        candidate.difficulty_level,
        candidate.item_id,
    )


@dataclass
class SelectionConfig:
    """Configuration for item selection."""

    difficulty_min: int = 3
    difficulty_max: int = 8
    default_vocab_ratio: float = 0.6
    min_vocab_ratio: float = 0.3
    max_vocab_ratio: float = 0.7
    ratio_window_days: int = 30
    ratio_session_limit: int = 20
    candidate_pool_limit: int | None = None
    backfill_shortfall: bool = True


@dataclass(frozen=True)
class MixRatio:
    """Vocabulary/grammar split of a session."""

    vocab_ratio: float
    grammar_ratio: float
    sessions_used: int = 0
    avg_vocab_performance: float | None = None
    avg_grammar_performance: float | None = None


@dataclass
class ItemSelection:
    """Ordered pick list for one session."""

    vocabulary_ids: list[str] = field(default_factory=list)
    grammar_ids: list[str] = field(default_factory=list)
    ratio: MixRatio | None = None

    @property
    def total(self) -> int:
        return len(self.vocabulary_ids) + len(self.grammar_ids)


class SelectionEngine:
    """
    Picks vocabulary and grammar items for a new session.

    Read-only: store errors propagate to the caller unchanged.
    """

    def __init__(self, store: MasteryStore, config: SelectionConfig | None = None):
        """
        Initialize selection engine.

        Args:
            store: Analytics store accessor
            config: SelectionConfig or None for defaults
        """
        self.store = store
        self.config = config or SelectionConfig()

    def _default_ratio(self, sessions_used: int = 0) -> MixRatio:
        vocab = self.config.default_vocab_ratio
        return MixRatio(vocab_ratio=vocab, grammar_ratio=1 - vocab, sessions_used=sessions_used)

    def calculate_mix_ratio(self, learner_id: str | None = None) -> MixRatio:
        """
        Calculate the vocabulary/grammar split from recent performance.

        Weaker topics get the larger share. Without history the configured
        default (60/40) is used.

        Args:
            learner_id: Restrict history to this learner (None = all sessions)

        Returns:
            MixRatio with vocab_ratio clamped to [min_vocab_ratio, max_vocab_ratio]
        """
        sessions = self.store.get_sessions(
            learner_id,
            self.config.ratio_window_days,
            limit=self.config.ratio_session_limit,
        )
        sessions = sessions[: self.config.ratio_session_limit]
        if not sessions:
            return self._default_ratio()

        vocab_scores = [s.accuracy_rate or 0.0 for s in sessions if ItemType.VOCABULARY.value in s.topics]
        grammar_scores = [s.accuracy_rate or 0.0 for s in sessions if ItemType.GRAMMAR.value in s.topics]

        avg_vocab = sum(vocab_scores) / len(vocab_scores) if vocab_scores else 0.5
        avg_grammar = sum(grammar_scores) / len(grammar_scores) if grammar_scores else 0.5

        # No usable signal when both topics are at 0% or both at 100%
        if avg_vocab + avg_grammar == 0:
            return self._default_ratio(len(sessions))
        vocab_raw = (1 - avg_vocab) / 2
        grammar_raw = (1 - avg_grammar) / 2
        total = vocab_raw + grammar_raw
        if total <= 0:
            return self._default_ratio(len(sessions))

        vocab_ratio = max(
            self.config.min_vocab_ratio,
            min(self.config.max_vocab_ratio, vocab_raw / total),
        )
        return MixRatio(
            vocab_ratio=vocab_ratio,
            grammar_ratio=1 - vocab_ratio,
            sessions_used=len(sessions),
            avg_vocab_performance=avg_vocab,
            avg_grammar_performance=avg_grammar,
        )

    def rank_candidates(self, item_type: ItemType) -> list[CandidateRow]:
        """All candidates of a category inside the difficulty window, best first."""
        candidates = self.store.query_candidates(
            item_type,
            self.config.difficulty_min,
            self.config.difficulty_max,
            limit=self.config.candidate_pool_limit,
            order_hint=ORDER_DUE_FIRST,
        )
        return sorted(candidates, key=ranking_key)

    def select_items(self, target_count: int, learner_id: str | None = None) -> ItemSelection:
        """
        Select items for a session.

        If fewer candidates exist than requested, all available candidates
        are returned; with backfill enabled one category may take the other
        category's unused share.

        Args:
            target_count: Total number of items wanted
            learner_id: Learner whose history drives the mix ratio

        Returns:
            ItemSelection with ordered vocabulary and grammar ids
        """
        if target_count < 0:
            raise ValueError(f"target_count must be non-negative, got {target_count}")

        ratio = self.calculate_mix_ratio(learner_id)
        if target_count == 0:
            return ItemSelection(ratio=ratio)

        vocab_count = math.ceil(round(target_count * ratio.vocab_ratio, 9))
        grammar_count = target_count - vocab_count

        vocab_ranked = self.rank_candidates(ItemType.VOCABULARY)
        grammar_ranked = self.rank_candidates(ItemType.GRAMMAR)

        vocab_take = min(vocab_count, len(vocab_ranked))
        grammar_take = min(grammar_count, len(grammar_ranked))

        if self.config.backfill_shortfall:
            vocab_short = vocab_count - vocab_take
            grammar_short = grammar_count - grammar_take
            if vocab_short > 0:
                extra = min(vocab_short, len(grammar_ranked) - grammar_take)
                if extra > 0:
                    logger.info(f"Backfilling {extra} vocabulary slots with grammar items")
                    grammar_take += extra
            elif grammar_short > 0:
                extra = min(grammar_short, len(vocab_ranked) - vocab_take)
                if extra > 0:
                    logger.info(f"Backfilling {extra} grammar slots with vocabulary items")
                    vocab_take += extra

        selection = ItemSelection(
            vocabulary_ids=[c.item_id for c in vocab_ranked[:vocab_take]],
            grammar_ids=[c.item_id for c in grammar_ranked[:grammar_take]],
            ratio=ratio,
        )

        if selection.total < target_count:
            logger.info(
                f"Only {selection.total} of {target_count} requested items available "
                f"({len(vocab_ranked)} vocabulary, {len(grammar_ranked)} grammar candidates)"
            )
        logger.info(
            f"Selected {len(selection.vocabulary_ids)} vocabulary + {len(selection.grammar_ids)} grammar "
            f"items (vocab ratio {ratio.vocab_ratio:.2f} from {ratio.sessions_used} sessions)"
        )
        return selection
