"""
TextStation Backend — Rule Repository (Rule Store Adapter)
===========================================================

What:  Loads the active style rules applicable to a media type and groups
       them into a StyleRuleSet.
Why:   The analyzer must not know how rules are stored; it receives a plain,
       fully-populated rule set.
Who:   Called by AnalysisService before every analysis.

Fallback contract:
    A store failure never reaches the caller as an exception. fetch_rules()
    returns RuleFetchResult(rules=<empty set>, fetched=False, error=...) and
    logs the failure; the analysis then proceeds with no rules. Callers that
    care (health reporting, tests) can tell "no rules configured" apart from
    "rules unavailable" through `fetched`.

Query plan:
    SELECT * FROM style_rules
    WHERE is_active AND media_types @> '["<media>"]'
    ORDER BY sort_order, id
    → idx_style_rules_media_types (GIN) serves the containment test
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from textstation.config import settings
from textstation.models.style_rule import (
    RULE_TYPE_AMBIGUOUS_PHRASE,
    RULE_TYPE_MEDIA_SPECIFIC,
    RULE_TYPE_REPETITIVE_PATTERN,
    StyleRule,
)
from textstation.schemas.analysis import (
    AmbiguousPhraseRule,
    MediaSpecificRule,
    RepetitivePatternRule,
    StyleRuleSet,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuleFetchResult:
    """Outcome of one rule store read."""
    rules: StyleRuleSet
    fetched: bool
    error: Optional[str] = None


class RuleRepository:
    """Read-only adapter over the `style_rules` table. No caching."""

    def __init__(self, general_media_type: Optional[str] = None):
        # Requests tagged with this media type get every active rule
        self.general_media_type = general_media_type or settings.general_media_type

    async def fetch_rules(
        self,
        db: AsyncSession,
        media_type: Optional[str] = None,
    ) -> RuleFetchResult:
        """
        Fetch and classify the active rules for a media type.

        Args:
            db: Async database session
            media_type: Media tag such as "news". None, "" or the general
                media type means no media restriction.

        Returns:
            RuleFetchResult; `fetched` is False when the store could not be
            read, in which case `rules` is an empty StyleRuleSet.
        """
        try:
            query = select(StyleRule).where(StyleRule.is_active.is_(True))
            if media_type and media_type != self.general_media_type:
                query = query.where(StyleRule.media_types.contains([media_type]))
            query = query.order_by(StyleRule.sort_order, StyleRule.id)

            result = await db.execute(query)
            rules = self.classify(result.scalars().all())

        except Exception as e:
            logger.error(
                "Rule store read failed (media_type=%s), analyzing with no rules: %s",
                media_type,
                str(e),
            )
            await self._reset_session(db)
            return RuleFetchResult(rules=StyleRuleSet(), fetched=False, error=str(e))

        logger.debug(
            "Loaded rules for media_type=%s: %d ambiguous, %d repetitive, %d media-specific",
            media_type,
            len(rules.ambiguous_phrases),
            len(rules.repetitive_patterns),
            len(rules.media_specific_rules),
        )
        return RuleFetchResult(rules=rules, fetched=True)

    @staticmethod
    def classify(records: Iterable[StyleRule]) -> StyleRuleSet:
        """
        Group rule records by their `type` discriminator.

        Records of an unknown type are dropped silently. Records missing the
        field the analyzer matches on (`text` or `pattern`) cannot be
        applied and are dropped with a warning.
        """
        rule_set = StyleRuleSet()

        for record in records:
            if record.type == RULE_TYPE_AMBIGUOUS_PHRASE:
                if record.text is None:
                    logger.warning("Skipping ambiguous phrase rule %s without text", record.id)
                    continue
                rule_set.ambiguous_phrases.append(
                    AmbiguousPhraseRule(text=record.text, suggestion=record.suggestion)
                )

            elif record.type == RULE_TYPE_REPETITIVE_PATTERN:
                if record.pattern is None:
                    logger.warning("Skipping repetitive pattern rule %s without pattern", record.id)
                    continue
                rule_set.repetitive_patterns.append(
                    RepetitivePatternRule(pattern=record.pattern, suggestion=record.suggestion)
                )

            elif record.type == RULE_TYPE_MEDIA_SPECIFIC:
                if record.pattern is None:
                    logger.warning("Skipping media-specific rule %s without pattern", record.id)
                    continue
                rule_set.media_specific_rules.append(
                    MediaSpecificRule(
                        pattern=record.pattern,
                        description=record.description,
                        media_type=record.media_type,
                    )
                )

        return rule_set

    @staticmethod
    async def _reset_session(db: AsyncSession) -> None:
        # A failed statement leaves the transaction aborted; clear it so the
        # request's commit in get_db_session does not fail on top of it
        try:
            await db.rollback()
        except Exception:
            logger.error("Failed to roll back session after rule store error")


# ── Singleton Instance ────────────────────────────────────────────────────
rule_repository = RuleRepository()
