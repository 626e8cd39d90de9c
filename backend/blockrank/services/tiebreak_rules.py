"""
Tie-break rule chains per sport.

A chain is an ordered list of {type, order} criteria applied in sequence to
separate teams with equal standing. Validation returns its failures instead of
raising so callers can surface them to the operator.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

MAX_RULES = 5
LOTTERY = "lottery"
HEAD_TO_HEAD = "head_to_head"
DEFAULT_SPORT = "pk_championship"


@dataclass(frozen=True)
class TieBreakRule:
    type: str
    order: int

    def to_dict(self) -> Dict[str, object]:
        return {"type": self.type, "order": self.order}


@dataclass
class RuleValidation:
    is_valid: bool
    errors: List[str] = field(default_factory=list)


_SOCCER_CRITERIA = ["points", "goal_difference", "goals_for", HEAD_TO_HEAD, LOTTERY]

SPORT_CRITERIA: Dict[str, List[str]] = {
    "pk_championship": list(_SOCCER_CRITERIA),
    "soccer": list(_SOCCER_CRITERIA),
    "baseball": ["win_rate", "win_count", "run_difference", "runs_scored", HEAD_TO_HEAD, LOTTERY],
    "basketball": ["win_rate", "point_difference", "points_scored", HEAD_TO_HEAD, LOTTERY],
}

CRITERION_LABELS: Dict[str, str] = {
    "points": "Points",
    "goal_difference": "Goal difference",
    "goals_for": "Goals scored",
    "head_to_head": "Head-to-head result",
    "lottery": "Drawing of lots (manual)",
    "win_rate": "Winning percentage",
    "win_count": "Wins",
    "run_difference": "Run difference",
    "runs_scored": "Runs scored",
    "point_difference": "Point difference",
    "points_scored": "Points scored",
}

DEFAULT_RULES: Dict[str, List[TieBreakRule]] = {
    "pk_championship": [TieBreakRule(t, i + 1) for i, t in enumerate(_SOCCER_CRITERIA)],
    "soccer": [TieBreakRule(t, i + 1) for i, t in enumerate(_SOCCER_CRITERIA)],
    "baseball": [
        TieBreakRule("win_rate", 1),
        TieBreakRule("run_difference", 2),
        TieBreakRule("runs_scored", 3),
        TieBreakRule(HEAD_TO_HEAD, 4),
        TieBreakRule(LOTTERY, 5),
    ],
    "basketball": [
        TieBreakRule("win_rate", 1),
        TieBreakRule("point_difference", 2),
        TieBreakRule("points_scored", 3),
        TieBreakRule(HEAD_TO_HEAD, 4),
        TieBreakRule(LOTTERY, 5),
    ],
}


def available_criteria(sport_code: Optional[str]) -> List[str]:
    """Criterion types the sport allows; unknown sports use the PK championship set."""
    return list(SPORT_CRITERIA.get(sport_code or "", SPORT_CRITERIA[DEFAULT_SPORT]))


def default_tie_break_rules(sport_code: Optional[str]) -> List[TieBreakRule]:
    return list(DEFAULT_RULES.get(sport_code or "", DEFAULT_RULES[DEFAULT_SPORT]))


def validate_tie_break_rules(rules: Iterable[TieBreakRule], sport_code: Optional[str]) -> RuleValidation:
    """
    Check a chain: 1..5 entries, unique types, orders forming 1..N, and
    every type allowed for the sport.
    """
    rules = list(rules)
    errors: List[str] = []

    if not rules:
        return RuleValidation(is_valid=False, errors=["No tie-break rules configured"])

    if len(rules) > MAX_RULES:
        errors.append(f"At most {MAX_RULES} tie-break rules are allowed, got {len(rules)}")

    types = [r.type for r in rules]
    duplicates = sorted({t for t in types if types.count(t) > 1})
    if duplicates:
        errors.append(f"Duplicate tie-break rule types: {', '.join(duplicates)}")

    allowed = set(available_criteria(sport_code))
    for rule in rules:
        if rule.type not in allowed:
            errors.append(f"'{rule.type}' is not an allowed tie-break rule for {sport_code or DEFAULT_SPORT}")

    orders = sorted(r.order for r in rules)
    if orders != list(range(1, len(rules) + 1)):
        errors.append("Tie-break rule orders must form a contiguous sequence starting at 1")

    return RuleValidation(is_valid=not errors, errors=errors)


def parse_tie_break_rules(rules_json: Optional[str]) -> List[TieBreakRule]:
    """Parse stored JSON into rules sorted by order. Unreadable JSON yields []."""
    if not rules_json:
        return []
    try:
        parsed = json.loads(rules_json)
    except ValueError:
        logger.warning("Unreadable tie-break rules JSON: %r", rules_json)
        return []
    if not isinstance(parsed, list):
        return []

    rules: List[TieBreakRule] = []
    for item in parsed:
        if not isinstance(item, dict):
            continue
        try:
            rules.append(TieBreakRule(type=str(item.get("type")), order=int(item.get("order"))))
        except (TypeError, ValueError):
            logger.warning("Skipping unreadable tie-break rule entry: %r", item)
    return sorted(rules, key=lambda r: r.order)


def stringify_tie_break_rules(rules: Iterable[TieBreakRule]) -> str:
    return json.dumps([r.to_dict() for r in sorted(rules, key=lambda r: r.order)])


def requires_lottery(rules: Iterable[TieBreakRule]) -> bool:
    """True when the terminal criterion is the manual lottery marker."""
    ordered = sorted(rules, key=lambda r: r.order)
    return bool(ordered) and ordered[-1].type == LOTTERY


def criterion_label(criterion: str) -> str:
    return CRITERION_LABELS.get(criterion, criterion)
