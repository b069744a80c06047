"""
TextStation Backend — Text Analyzer (Rule-Driven Scoring Engine)
=================================================================

What:  Scores a text against a style rule set and explains the deductions.
Why:   This is the one piece of the backend with real logic of its own; the
       rest forwards data to the database, Drive, or the PDF renderer.
How:   A fixed pipeline over the input text:

    ┌────────────┐  ┌─────────────┐  ┌───────────┐  ┌──────────────┐
    │ Ambiguous  │─▶│ Sentence    │─▶│ Repeated  │─▶│ Media-       │
    │ phrases    │  │ segmentation│  │ endings   │  │ specific     │
    └────────────┘  └─────────────┘  └───────────┘  └──────┬───────┘
                                                            ▼
                          ┌─────────────┐  ┌───────────────────────┐
                          │ Score       │─▶│ Improvements          │
                          │ 100 - 5/iss │  │ (+ detailed checks)   │
                          └─────────────┘  └───────────────────────┘

Who:   Called by AnalysisService once the rule set is loaded.

Purity:
    analyze() reads nothing but its arguments and writes nothing but its
    return value. Concurrent requests can share the module-level instance
    without coordination, and repeated calls with the same arguments return
    equal results.

Pattern semantics:
    Rule patterns are regular expressions, matched case-sensitively across
    the whole text; the count is the number of non-overlapping matches.
    A pattern that does not compile aborts the analysis with AnalysisError.
    Skipping the rule instead would silently change the score depending on
    the state of the rule store, so the error is surfaced.

Length semantics:
    All lengths are counted in Unicode code points (Python str length).
"""

import logging
import math
import re
from typing import Dict, List, Sequence

from textstation.exceptions import AnalysisError
from textstation.schemas.analysis import (
    AmbiguousPhraseIssue,
    AmbiguousPhraseRule,
    AnalysisResult,
    MediaSpecificIssue,
    MediaSpecificRule,
    RepetitiveEnding,
    StyleRuleSet,
)

logger = logging.getLogger(__name__)

# ── Segmentation ──────────────────────────────────────────────────────────
# Full-width and half-width period, exclamation and question marks
SENTENCE_DELIMITERS = re.compile(r"[。．.!?！？]")
WHITESPACE_RUN = re.compile(r"\s+")

# ── Repeated endings ──────────────────────────────────────────────────────
ENDING_KEY_LENGTH = 5
REPEATED_ENDING_MIN_COUNT = 3

# ── Scoring ───────────────────────────────────────────────────────────────
MAX_SCORE = 100
ISSUE_PENALTY = 5
LOW_SCORE_THRESHOLD = 70

# ── Detailed checks ───────────────────────────────────────────────────────
LONG_SENTENCE_THRESHOLD = 50
READABILITY_THRESHOLD = 60

# ── Advisory texts (shown verbatim in the editor) ─────────────────────────
REPETITIVE_ENDING_SUGGESTION = "語尾の表現を変えてみてください。現在 {count} 回使用されています。"
LOW_SCORE_ADVICE = "曖昧な表現や重複を避け、より具体的で多様な表現を心がけましょう。"
LONG_SENTENCE_ADVICE = "文が平均{average}文字と長めです。短く区切ることを検討してください。"
COMPLEXITY_ADVICE = "文章が複雑すぎる可能性があります。短い文に分けることを検討してください。"


def split_sentences(text: str) -> List[str]:
    """
    Split text on sentence-terminating punctuation.

    The raw split is returned, empty segments included: a text ending in
    "。" yields a trailing "" and "!!" yields an empty segment between the
    marks. Callers decide whether to drop them.
    """
    return SENTENCE_DELIMITERS.split(text)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class TextAnalyzer:
    """
    Stateless scoring engine.

    Every issue kind costs the same flat penalty, regardless of how often
    the pattern matched: a rule matching ten times is one issue.
    """

    def analyze(
        self,
        text: str,
        rules: StyleRuleSet,
        detailed: bool = False,
    ) -> AnalysisResult:
        """
        Analyze a text against a rule set.

        Args:
            text: Raw input text.
            rules: Normalized rule set (all lists present, possibly empty).
            detailed: Also run the sentence-length and readability checks.

        Returns:
            A new AnalysisResult. Empty or whitespace-only text yields the
            zero result (score 0, no issues, no advice) without evaluating
            any rule.

        Raises:
            AnalysisError: A rule pattern failed to compile, or rule
                evaluation failed unexpectedly. No partial result.
        """
        if not text or not text.strip():
            return AnalysisResult()

        try:
            ambiguous_phrases = self._detect_ambiguous_phrases(text, rules.ambiguous_phrases)
            segments = split_sentences(text)
            repetitive_endings = self._detect_repetitive_endings(segments)
            media_specific_issues = self._detect_media_specific(text, rules.media_specific_rules)
        except AnalysisError:
            raise
        except Exception as e:
            logger.error("Unexpected error during text analysis: %s", str(e), exc_info=True)
            raise AnalysisError(
                message=f"Text analysis failed: {e}",
                context={"error_type": type(e).__name__},
            )

        total_issues = (
            len(ambiguous_phrases) + len(repetitive_endings) + len(media_specific_issues)
        )
        media_score = self.score(total_issues)

        improvements: List[str] = []
        if media_score < LOW_SCORE_THRESHOLD:
            improvements.append(LOW_SCORE_ADVICE)

        if detailed:
            improvements.extend(self._detailed_advice(text, segments))

        logger.debug(
            "Analysis complete: %d chars, %d issues, score=%d",
            len(text),
            total_issues,
            media_score,
        )

        return AnalysisResult(
            media_score=media_score,
            ambiguous_phrases=ambiguous_phrases,
            repetitive_endings=repetitive_endings,
            media_specific_issues=media_specific_issues,
            improvements=improvements,
        )

    @staticmethod
    def score(total_issues: int) -> int:
        """100 minus a flat penalty per issue, never below zero."""
        return max(0, MAX_SCORE - total_issues * ISSUE_PENALTY)

    # ══════════════════════════════════════════════════════════════════════
    # Detectors
    # ══════════════════════════════════════════════════════════════════════

    def _detect_ambiguous_phrases(
        self, text: str, rules: Sequence[AmbiguousPhraseRule]
    ) -> List[AmbiguousPhraseIssue]:
        # Emission follows rule order, not position in the text
        issues = []
        for rule in rules:
            count = self._count_matches(rule.text, text, "ambiguous phrase")
            if count > 0:
                issues.append(
                    AmbiguousPhraseIssue(text=rule.text, count=count, suggestion=rule.suggestion)
                )
        return issues

    def _detect_repetitive_endings(self, segments: Sequence[str]) -> List[RepetitiveEnding]:
        # dict preserves insertion order → first-occurrence order of each key
        tally: Dict[str, int] = {}
        for segment in segments:
            sentence = segment.strip()
            if not sentence:
                continue
            ending = sentence[-ENDING_KEY_LENGTH:]
            tally[ending] = tally.get(ending, 0) + 1

        return [
            RepetitiveEnding(
                pattern=ending,
                count=count,
                suggestion=REPETITIVE_ENDING_SUGGESTION.format(count=count),
            )
            for ending, count in tally.items()
            if count >= REPEATED_ENDING_MIN_COUNT
        ]

    def _detect_media_specific(
        self, text: str, rules: Sequence[MediaSpecificRule]
    ) -> List[MediaSpecificIssue]:
        issues = []
        for rule in rules:
            count = self._count_matches(rule.pattern, text, "media-specific")
            if count > 0:
                issues.append(
                    MediaSpecificIssue(pattern=rule.pattern, count=count, description=rule.description)
                )
        return issues

    def _detailed_advice(self, text: str, segments: Sequence[str]) -> List[str]:
        """
        Structural checks, run only for detailed analysis.

        Both divide by the raw segment count, empty segments included, so
        punctuation-heavy text averages shorter. The client's thresholds were
        tuned against this arithmetic; keep it.
        """
        advice = []
        sentence_count = len(segments)

        average_length = len(text) / sentence_count
        if average_length > LONG_SENTENCE_THRESHOLD:
            advice.append(LONG_SENTENCE_ADVICE.format(average=_round_half_up(average_length)))

        character_count = len(WHITESPACE_RUN.sub("", text))
        readability = 100 - (character_count / sentence_count / 10)
        if readability < READABILITY_THRESHOLD:
            advice.append(COMPLEXITY_ADVICE)

        return advice

    @staticmethod
    def _count_matches(pattern: str, text: str, rule_kind: str) -> int:
        try:
            regex = re.compile(pattern)
        except re.error as e:
            logger.error("Invalid %s pattern %r: %s", rule_kind, pattern, str(e))
            raise AnalysisError(
                message=f"Text analysis failed: invalid {rule_kind} pattern '{pattern}': {e}",
                context={"pattern": pattern, "rule_kind": rule_kind},
            )
        return sum(1 for _ in regex.finditer(text))


# ── Singleton Instance ────────────────────────────────────────────────────
# Stateless; one instance serves all requests
text_analyzer = TextAnalyzer()
