"""
Rule-based threat classification and quarantine policy.

The classifier is a prioritized list of keyword rules evaluated top to bottom;
the first rule with a hit decides the category. Matching is plain substring
search over lower-cased subject and content, with no tokenization or word
boundaries, so "password" also matches inside "passwords" or "mypassword1".
Everything here is pure and runs offline.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class ThreatCategory(str, Enum):
    CLEAN = "clean"
    SPAM = "spam"
    PHISHING = "phishing"
    MALWARE = "malware"
    SUSPICIOUS = "suspicious"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# ============================================================================
# Rule Inputs
# ============================================================================

PHISHING_KEYWORDS = ("login", "password", "update payment", "confirm identity")

SPAM_KEYWORDS = ("free", "limited time", "act now", "congratulations")

SUSPICIOUS_KEYWORDS = (
    "urgent",
    "click here",
    "verify account",
    "suspended",
    "prize",
    "winner",
)


@dataclass(frozen=True)
class Rule:
    category: ThreatCategory
    risk: RiskLevel
    keywords: Tuple[str, ...]
    indicators: Tuple[str, ...]


# Order matters: highest-priority category first.
RULES: Tuple[Rule, ...] = (
    Rule(
        ThreatCategory.PHISHING,
        RiskLevel.CRITICAL,
        PHISHING_KEYWORDS,
        ("suspicious_links", "credential_harvesting"),
    ),
    Rule(ThreatCategory.SPAM, RiskLevel.MEDIUM, SPAM_KEYWORDS, ("promotional_content",)),
    Rule(
        ThreatCategory.SUSPICIOUS,
        RiskLevel.MEDIUM,
        SUSPICIOUS_KEYWORDS,
        ("suspicious_content",),
    ),
)


@dataclass
class Verdict:
    scan_result: ThreatCategory
    risk_level: RiskLevel
    threat_details: Optional[Dict[str, Any]]


def _matches(rule: Rule, subject: str, content: str) -> bool:
    return any(k in content or k in subject for k in rule.keywords)


def classify(subject: str | None, content: str | None) -> Verdict:
    """
    Classify an email by its subject and content.

    Total over any input: None and empty strings are treated as clean text.
    Subject and content are searched separately, so a keyword split across
    the two fields does not match.
    """
    low_subject = (subject or "").lower()
    low_content = (content or "").lower()

    for rule in RULES:
        if _matches(rule, low_subject, low_content):
            return Verdict(
                scan_result=rule.category,
                risk_level=rule.risk,
                threat_details={
                    "type": rule.category.value,
                    "indicators": list(rule.indicators),
                },
            )

    return Verdict(scan_result=ThreatCategory.CLEAN, risk_level=RiskLevel.LOW, threat_details=None)


def should_quarantine(scan_result: ThreatCategory, risk_level: RiskLevel) -> bool:
    """
    Auto-quarantine only non-clean results at critical risk.

    Under the current rules this means phishing only; spam and suspicious
    results are flagged but stay in the inbox to keep false-positive
    quarantines low.
    """
    return scan_result != ThreatCategory.CLEAN and risk_level == RiskLevel.CRITICAL
