"""
TextStation Backend — Analysis Service
=======================================

What:  Composes the rule repository and the text analyzer into the one
       operation the /api/analyze route needs.
Who:   Called by routes/analysis.py.

Flow (POST /api/analyze):
    ┌──────────┐    ┌──────────────────┐    ┌──────────────┐
    │  Route   │───▶│  RuleRepository  │───▶│ TextAnalyzer │
    │ (text,   │    │  fetch_rules()   │    │  analyze()   │
    │  media)  │    └──────────────────┘    └──────────────┘
    └──────────┘      store failure →         AnalysisError →
                      empty rule set          HTTP 500
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from textstation.schemas.analysis import AnalysisResult
from textstation.services.rule_repository import RuleRepository, rule_repository
from textstation.services.text_analyzer import TextAnalyzer, text_analyzer

logger = logging.getLogger(__name__)


class AnalysisService:
    """
    Stateless orchestrator. Collaborators are injectable so tests can swap
    the repository for a stub without touching the database.
    """

    def __init__(
        self,
        repository: Optional[RuleRepository] = None,
        analyzer: Optional[TextAnalyzer] = None,
    ):
        self.repository = repository or rule_repository
        self.analyzer = analyzer or text_analyzer

    async def analyze_request(
        self,
        db: AsyncSession,
        text: str,
        media_type: Optional[str] = None,
        detailed: Optional[bool] = False,
    ) -> AnalysisResult:
        """
        Load the rules for `media_type` and analyze `text` with them.

        Raises:
            AnalysisError: Propagated from the analyzer.
        """
        fetch = await self.repository.fetch_rules(db, media_type)
        if not fetch.fetched:
            logger.warning("Analyzing without rules, rule store unavailable: %s", fetch.error)

        result = self.analyzer.analyze(text, fetch.rules, detailed=bool(detailed))
        logger.info(
            "Analyzed %d chars (media_type=%s, detailed=%s): score=%d",
            len(text),
            media_type,
            bool(detailed),
            result.media_score,
        )
        return result


# ── Singleton Instance ────────────────────────────────────────────────────
analysis_service = AnalysisService()
