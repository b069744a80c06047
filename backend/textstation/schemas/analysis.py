"""
TextStation Backend — Text Analysis Schemas
============================================

What:  The rule set consumed by the text analyzer and the result it returns.
Why:   The result's JSON field names are a contract with the editor UI:
       {mediaScore, ambiguousPhrases, repetitiveEndings, mediaSpecificIssues,
       improvements}. CamelModel produces exactly these names.

StyleRuleSet invariant:
    All three rule lists are always present. A rule store with no matching
    records (or an unreachable one) yields three empty lists, never a
    missing field.

AnalysisResult lifecycle:
    Built fresh for every request and frozen once constructed. The analyzer
    never hands out a result it might still modify.
"""

from typing import List, Optional

from pydantic import ConfigDict, Field

from textstation.schemas.common import CamelModel


# ══════════════════════════════════════════════════════════════════════════
# Rule Set: what the analyzer applies
# ══════════════════════════════════════════════════════════════════════════


class AmbiguousPhraseRule(CamelModel):
    """A vague phrase (regular expression) and its recommended replacement."""
    text: str = Field(description="Pattern matched against the input text")
    suggestion: Optional[str] = Field(default=None)


class RepetitivePatternRule(CamelModel):
    """
    A configured repetition pattern.

    Loaded from the rule store and carried in the rule set, but not applied
    by the scoring algorithm: repeated endings are detected from the text
    itself (see TextAnalyzer).
    """
    pattern: str
    suggestion: Optional[str] = Field(default=None)


class MediaSpecificRule(CamelModel):
    """A pattern flagged only for particular media."""
    pattern: str
    description: Optional[str] = Field(default=None)
    media_type: Optional[str] = Field(default=None)


class StyleRuleSet(CamelModel):
    """Every rule applicable to one analysis request, grouped by kind."""
    ambiguous_phrases: List[AmbiguousPhraseRule] = Field(default_factory=list)
    repetitive_patterns: List[RepetitivePatternRule] = Field(default_factory=list)
    media_specific_rules: List[MediaSpecificRule] = Field(default_factory=list)


# ══════════════════════════════════════════════════════════════════════════
# Result: what the analyzer returns
# ══════════════════════════════════════════════════════════════════════════


class FrozenCamelModel(CamelModel):
    model_config = ConfigDict(frozen=True)


class AmbiguousPhraseIssue(FrozenCamelModel):
    text: str
    count: int = Field(ge=1)
    suggestion: Optional[str] = None


class RepetitiveEnding(FrozenCamelModel):
    pattern: str = Field(description="Ending key: trailing characters of the sentence")
    count: int = Field(ge=1)
    suggestion: str


class MediaSpecificIssue(FrozenCamelModel):
    pattern: str
    count: int = Field(ge=1)
    description: Optional[str] = None


class AnalysisResult(FrozenCamelModel):
    """
    Output of one analysis.

    Example (JSON):
        {
            "mediaScore": 85,
            "ambiguousPhrases": [{"text": "とても", "count": 2, "suggestion": "具体的な表現に"}],
            "repetitiveEndings": [],
            "mediaSpecificIssues": [],
            "improvements": []
        }
    """
    media_score: int = Field(default=0, ge=0, le=100)
    ambiguous_phrases: List[AmbiguousPhraseIssue] = Field(default_factory=list)
    repetitive_endings: List[RepetitiveEnding] = Field(default_factory=list)
    media_specific_issues: List[MediaSpecificIssue] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)


# ══════════════════════════════════════════════════════════════════════════
# Request
# ══════════════════════════════════════════════════════════════════════════


class AnalyzeRequest(CamelModel):
    """
    Body of POST /api/analyze.

    `text` is optional at the schema level so that a missing text produces
    the API's own 400 response instead of FastAPI's 422.
    """
    text: Optional[str] = Field(default=None, description="Text to analyze")
    media_type: Optional[str] = Field(
        default=None,
        description="Media tag narrowing the rule set, e.g. 'news'. '一般' or omitted means all rules.",
    )
    detailed_analysis: Optional[bool] = Field(
        default=False,
        description="Also run sentence-length and readability checks",
    )
