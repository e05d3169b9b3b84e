"""
Free tier extraction rules.

Pricing pages describe allowances in a handful of recurring phrasings
("240,000 vCPU-seconds per month free", "First 5 GB of storage is free",
"First 2 million invocations per month are free"). Each rule below pairs a
regular expression (first group = amount) with the resource label and unit
it produces. Rules run in table order; when two rules claim the same
(resource, amount) the first one wins.
"""
from typing import List, NamedTuple, Pattern, Set, Tuple
import logging
import re

from cloudcost.domain.freetier_models import FreeTierItem


logger = logging.getLogger(__name__)

MILLION = 1_000_000

# Shared regex fragments
_MONTHLY = r"(?:per\s*month|/month|monthly)?"
_DAILY = r"(?:per\s*day|/day|daily)?"
_VERB = r"(?:are\s*|is\s*)?"


class ExtractionRule(NamedTuple):
    """A tagged extraction rule: pattern, resource label, unit, scale factor."""
    pattern: Pattern
    resource: str
    unit: str
    scale: float = 1.0


def _rule(regex: str, resource: str, unit: str, scale: float = 1.0) -> ExtractionRule:
    return ExtractionRule(re.compile(regex, re.IGNORECASE), resource, unit, scale)


FREE_TIER_RULES: Tuple[ExtractionRule, ...] = (
    # Compute time (Cloud Run, Cloud Functions)
    _rule(rf"([0-9,]+)\s*vCPU[- ]?seconds?\s*{_MONTHLY}\s*{_VERB}(?:free|at no charge)",
          "vCPU-seconds", "seconds"),
    _rule(rf"([0-9,]+)\s*GiB[- ]?seconds?\s*{_MONTHLY}\s*{_VERB}(?:free|at no charge)",
          "GiB-seconds", "seconds"),
    _rule(r"free\s*tier[:\s]*([0-9,]+)\s*vCPU[- ]?seconds?", "vCPU-seconds", "seconds"),
    _rule(r"free\s*tier[:\s]*([0-9,]+)\s*GiB[- ]?seconds?", "GiB-seconds", "seconds"),
    
    # Storage (Cloud Storage, Firestore, Artifact Registry)
    _rule(rf"first\s*([0-9.]+)\s*(?:GB|GiB)\s*(?:of\s*storage\s*)?{_MONTHLY}\s*{_VERB}free",
          "storage", "GiB"),
    _rule(rf"([0-9.]+)\s*(?:GB|GiB)\s*(?:of\s*)?(?:storage|data)\s*{_MONTHLY}\s*{_VERB}free",
          "storage", "GiB"),
    
    # Requests and invocations
    _rule(rf"first\s*([0-9.]+)\s*million\s*(?:invocations?|requests?)\s*{_MONTHLY}\s*{_VERB}free",
          "requests", "million", MILLION),
    _rule(rf"([0-9,]+)\s*(?:invocations?|requests?)\s*{_MONTHLY}\s*{_VERB}free",
          "requests", "count"),
    
    # Per-operation allowances (Firestore)
    _rule(rf"first\s*([0-9,]+)\s*(?:document\s*)?(?:reads?|read\s*operations?)\s*{_DAILY}\s*{_VERB}free",
          "document-reads", "count"),
    _rule(rf"first\s*([0-9,]+)\s*(?:document\s*)?(?:writes?|write\s*operations?)\s*{_DAILY}\s*{_VERB}free",
          "document-writes", "count"),
    _rule(rf"first\s*([0-9,]+)\s*(?:document\s*)?(?:deletes?|delete\s*operations?)\s*{_DAILY}\s*{_VERB}free",
          "document-deletes", "count"),
    
    # Secret Manager
    _rule(rf"first\s*(\d+)\s*active\s*(?:secret\s*)?versions?\s*{_VERB}free",
          "secret-versions", "count"),
    _rule(rf"first\s*([0-9,]+)\s*access\s*operations?\s*{_MONTHLY}\s*{_VERB}free",
          "access-operations", "count"),
    
    # BigQuery
    _rule(rf"first\s*([0-9.]+)\s*(?:TB|TiB)\s*(?:of\s*)?(?:query\s*)?(?:queries|query|processing|data\s*processed)\s*{_MONTHLY}\s*{_VERB}free",
          "query-processing", "TiB"),
    
    # Network egress
    _rule(rf"first\s*([0-9.]+)\s*(?:GB|GiB)\s*(?:of\s*)?(?:network\s*|internet\s*)?"
          rf"(?:egress|outbound(?:\s*data\s*transfer)?|data\s*transfer)\s*{_MONTHLY}\s*{_VERB}free",
          "egress", "GiB"),
    
    # Currency credit (GKE cluster management fee)
    _rule(r"\$([0-9.]+)\s*(?:/|per\s*)month\s*(?:credit|free)", "cluster-credit", "USD"),
    
    # Pub/Sub
    _rule(rf"first\s*([0-9.]+)\s*(?:GB|GiB)\s*(?:of\s*)?(?:message|messaging)\s*{_MONTHLY}\s*{_VERB}free",
          "message-delivery", "GiB"),
)


def parse_amount(raw: str) -> float:
    """
    Parse a matched amount, ignoring thousands separators.
    
    Raises:
        ValueError: If nothing numeric remains (e.g. the match was just ",")
    """
    return float(raw.replace(",", ""))


def extract_free_tier_items(
    content: str,
    rules: Tuple[ExtractionRule, ...] = FREE_TIER_RULES
) -> List[FreeTierItem]:
    """
    Extract free tier allowances from page text.
    
    Repeats of the same literal amount for the same resource are dropped;
    different amounts for one resource are all kept.
    
    Args:
        content: Plain text (already stripped of markup)
        rules: Extraction rules, evaluated in order
    
    Returns:
        Allowances in discovery order (empty if nothing matched)
    """
    items: List[FreeTierItem] = []
    seen: Set[Tuple[str, str]] = set()
    
    if not content:
        return items
    
    for rule in rules:
        for match in rule.pattern.finditer(content):
            amount_str = match.group(1).replace(",", "")
            try:
                amount = parse_amount(amount_str)
            except ValueError:
                continue
            
            key = (rule.resource, amount_str)
            if key in seen:
                continue
            seen.add(key)
            
            unit = "count" if rule.unit == "million" else rule.unit
            items.append(FreeTierItem(
                resource=rule.resource,
                amount=amount * rule.scale,
                unit=unit,
            ))
    
    if items:
        logger.debug(f"Extracted {len(items)} free tier item(s)")
    return items


class FreeTierExtractor:
    """Injectable wrapper around the rule table."""
    
    def __init__(self, rules: Tuple[ExtractionRule, ...] = FREE_TIER_RULES):
        self.rules = rules
    
    def extract(self, content: str) -> List[FreeTierItem]:
        return extract_free_tier_items(content, self.rules)
