"""
Scope and period classification for free tier text.
Never fails: missing signals fall back to account scope and a monthly period.
"""
from typing import List
import re

from cloudcost.domain.freetier_models import FreeTierScope, FreeTierPeriod


ACCOUNT_SCOPE_CUES = ("per billing account", "per account", "across all projects")
PROJECT_SCOPE_CUES = ("per project",)

ALWAYS_FREE_CUE = "always free"
DAY_CUES = re.compile(r"per\s*day|daily|/day", re.IGNORECASE)
MONTH_CUES = re.compile(r"per\s*month|monthly|/month", re.IGNORECASE)

# Sentences that restrict where or how an allowance applies
CONDITION_CUES = (
    "only applies",
    "only available",
    "does not apply",
    "not available",
    "limited to",
    "not cumulative",
    "do not roll over",
    "does not roll over",
    "only in",
)
MAX_CONDITIONS = 5
_SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")


def classify_scope(content: str) -> FreeTierScope:
    """
    Decide whether an allowance is shared per billing account or per project.
    
    Account cues win over project cues; no cue means account scope.
    """
    lowered = (content or "").lower()
    
    if any(cue in lowered for cue in ACCOUNT_SCOPE_CUES):
        return FreeTierScope.ACCOUNT
    if any(cue in lowered for cue in PROJECT_SCOPE_CUES):
        return FreeTierScope.PROJECT
    return FreeTierScope.ACCOUNT


def classify_period(content: str) -> FreeTierPeriod:
    """
    Decide how often an allowance resets.
    
    "always free" wins outright. Otherwise day cues must strictly outnumber
    month cues to yield DAY; ties and silence yield MONTH.
    """
    content = content or ""
    if ALWAYS_FREE_CUE in content.lower():
        return FreeTierPeriod.ALWAYS
    
    day_mentions = len(DAY_CUES.findall(content))
    month_mentions = len(MONTH_CUES.findall(content))
    if day_mentions > month_mentions:
        return FreeTierPeriod.DAY
    return FreeTierPeriod.MONTH


def extract_conditions(content: str, limit: int = MAX_CONDITIONS) -> List[str]:
    """Collect sentences mentioning the free tier together with a restriction."""
    conditions: List[str] = []
    for sentence in _SENTENCE_SPLIT.split(content or ""):
        lowered = sentence.lower()
        if "free" not in lowered:
            continue
        if not any(cue in lowered for cue in CONDITION_CUES):
            continue
        sentence = sentence.strip()
        if sentence and sentence not in conditions:
            conditions.append(sentence)
        if len(conditions) >= limit:
            break
    return conditions
