"""
Promotion validation: compare what each elimination slot currently holds
with what its (possibly overridden) source resolves to.

Mismatches on unconfirmed matches are warnings and get fixed in place.
Mismatches on confirmed matches are errors: reported, never modified.

Idempotent: once every warning is fixed, running again finds nothing new.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from blockrank.models.match import Match
from blockrank.models.match_block import PHASE_FINAL, MatchBlock
from blockrank.models.match_override import MatchOverride
from blockrank.models.match_template import MatchTemplate
from blockrank.models.team import Team
from blockrank.services.bracket_resolver import (
    BracketResult,
    ResolvedTeam,
    SlotKey,
    resolve_expected_teams,
    unresolved_slots,
)
from blockrank.services.notifications import NotificationSink, PromotionIssueEvent
from blockrank.services.records import TeamStanding

logger = logging.getLogger(__name__)

SEVERITY_WARNING = "warning"
SEVERITY_ERROR = "error"


@dataclass
class PromotionIssue:
    match_id: int
    match_code: str
    side: str
    expected_team_id: Optional[int]
    expected_team_name: Optional[str]
    current_team_id: Optional[int]
    current_display_name: str
    source: str
    is_placeholder: bool
    severity: str
    message: str
    # Slot holds a team but its source no longer names a single team
    source_unresolved: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class MatchFixCount:
    fixed: int = 0
    failed: int = 0


@dataclass
class FixReport:
    per_match: Dict[str, MatchFixCount] = field(default_factory=dict)
    failures: List[str] = field(default_factory=list)

    @property
    def fixed(self) -> int:
        return sum(c.fixed for c in self.per_match.values())

    @property
    def failed(self) -> int:
        return sum(c.failed for c in self.per_match.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fixed": self.fixed,
            "failed": self.failed,
            "per_match": {code: asdict(c) for code, c in sorted(self.per_match.items())},
            "failures": list(self.failures),
        }


@dataclass
class PromotionPassResult:
    issues: List[PromotionIssue]
    fix_report: FixReport

    @property
    def errors(self) -> List[PromotionIssue]:
        return [i for i in self.issues if i.severity == SEVERITY_ERROR]

    @property
    def warnings(self) -> List[PromotionIssue]:
        return [i for i in self.issues if i.severity == SEVERITY_WARNING]


@dataclass
class BracketState:
    """Everything resolution needs for one tournament, read in one go."""

    templates: Dict[str, MatchTemplate]
    overrides: Dict[str, MatchOverride]
    block_rankings: Dict[str, List[TeamStanding]]
    results: Dict[str, BracketResult]
    team_names: Dict[int, str]
    matches: Dict[str, Match]


def _side_values(match: Any, side: str):
    if side == "a":
        return match.team_a_id, match.team_a_display_name or ""
    return match.team_b_id, match.team_b_display_name or ""


def _describe(team_id: Optional[int], display_name: str, team_names: Mapping[int, str]) -> str:
    if team_id is None:
        return f"'{display_name}'" if display_name else "an empty slot"
    return f"{team_names.get(team_id, display_name or team_id)} (#{team_id})"


def find_promotion_issues(
    matches: Mapping[str, Any],
    expected: Mapping[SlotKey, ResolvedTeam],
    team_names: Mapping[int, str],
    match_codes: Optional[Iterable[str]] = None,
    unresolved: Optional[Mapping[SlotKey, str]] = None,
) -> List[PromotionIssue]:
    """
    One issue per slot whose current team differs from the expected one.

    A slot in unresolved (source not determinable right now) is reported only
    when it still holds a team; that issue carries no expected team and is
    never fixed automatically. Empty unresolved slots are not reported.
    """
    scope = set(match_codes) if match_codes is not None else None
    issues: List[PromotionIssue] = []

    for (code, side), raw_source in sorted((unresolved or {}).items()):
        if scope is not None and code not in scope:
            continue
        match = matches.get(code)
        if match is None:
            continue
        current_id, display_name = _side_values(match, side)
        if current_id is None:
            continue

        severity = SEVERITY_ERROR if match.is_confirmed else SEVERITY_WARNING
        issues.append(
            PromotionIssue(
                match_id=match.id,
                match_code=code,
                side=side,
                expected_team_id=None,
                expected_team_name=None,
                current_team_id=current_id,
                current_display_name=display_name,
                source=raw_source,
                is_placeholder=False,
                severity=severity,
                message=(
                    f"{code} side {side.upper()}: holds {_describe(current_id, display_name, team_names)} "
                    f"but {raw_source} no longer determines a single team; check it manually"
                ),
                source_unresolved=True,
            )
        )

    for (code, side), resolved in sorted(expected.items(), key=lambda item: item[0]):
        if scope is not None and code not in scope:
            continue
        match = matches.get(code)
        if match is None:
            continue

        current_id, display_name = _side_values(match, side)
        if current_id == resolved.team_id:
            continue

        severity = SEVERITY_ERROR if match.is_confirmed else SEVERITY_WARNING
        is_placeholder = current_id is None
        label = f"{code} side {side.upper()}"
        if is_placeholder:
            message = f"{label}: still shows {_describe(None, display_name, team_names)}, {resolved.source} is now {resolved.team_name}"
        else:
            message = (
                f"{label}: holds {_describe(current_id, display_name, team_names)} "
                f"but {resolved.source} resolves to {resolved.team_name} (#{resolved.team_id})"
            )
        if severity == SEVERITY_ERROR:
            message += "; match already confirmed, correct it manually"

        issues.append(
            PromotionIssue(
                match_id=match.id,
                match_code=code,
                side=side,
                expected_team_id=resolved.team_id,
                expected_team_name=resolved.team_name,
                current_team_id=current_id,
                current_display_name=display_name,
                source=resolved.source,
                is_placeholder=is_placeholder,
                severity=severity,
                message=message,
            )
        )

    issues.sort(key=lambda i: (i.match_code, i.side))
    return issues


def load_slot_sources(session: Session, tournament_id: int) -> Tuple[Dict[str, MatchTemplate], Dict[str, MatchOverride]]:
    """Templates and overrides keyed by match code."""
    templates = {
        t.match_code: t
        for t in session.exec(select(MatchTemplate).where(MatchTemplate.tournament_id == tournament_id)).all()
    }
    overrides = {
        o.match_code: o
        for o in session.exec(select(MatchOverride).where(MatchOverride.tournament_id == tournament_id)).all()
    }
    return templates, overrides


def load_bracket_state(session: Session, tournament_id: int) -> BracketState:
    templates, overrides = load_slot_sources(session, tournament_id)
    # Snapshots are replaced with bulk UPDATEs, so reload rows already in the session
    blocks = session.exec(
        select(MatchBlock)
        .where(MatchBlock.tournament_id == tournament_id)
        .execution_options(populate_existing=True)
    ).all()
    block_rankings = {
        b.block_name: [TeamStanding.from_dict(row) for row in (b.team_rankings or [])]
        for b in blocks
        if b.phase != PHASE_FINAL
    }
    final_block_ids = {b.id for b in blocks if b.phase == PHASE_FINAL}

    matches = {
        m.match_code: m
        for m in session.exec(select(Match).where(Match.tournament_id == tournament_id)).all()
    }
    results = {
        code: BracketResult(code, m.winner_team_id, m.loser_team_id())
        for code, m in matches.items()
        if m.block_id in final_block_ids and m.is_confirmed and m.winner_team_id is not None
    }
    team_names = {
        t.id: t.name for t in session.exec(select(Team).where(Team.tournament_id == tournament_id)).all()
    }

    return BracketState(
        templates=templates,
        overrides=overrides,
        block_rankings=block_rankings,
        results=results,
        team_names=team_names,
        matches=matches,
    )


def validate_promotions(
    session: Session,
    tournament_id: int,
    match_codes: Optional[Iterable[str]] = None,
) -> List[PromotionIssue]:
    """Read-only pass; match_codes limits the report to those matches."""
    state = load_bracket_state(session, tournament_id)
    expected = resolve_expected_teams(
        state.templates, state.overrides, state.block_rankings, state.results, state.team_names
    )
    unresolved = unresolved_slots(state.templates, state.overrides, expected)
    return find_promotion_issues(state.matches, expected, state.team_names, match_codes, unresolved)


def fix_promotion_issues(session: Session, issues: Sequence[PromotionIssue]) -> FixReport:
    """
    Write the expected team into every warning slot that has one.

    Each match is committed on its own so one failing row does not block the
    rest. Failures are collected in the report, not raised.
    """
    report = FixReport()
    by_match: Dict[str, List[PromotionIssue]] = {}
    for issue in issues:
        if issue.severity != SEVERITY_WARNING or issue.expected_team_id is None:
            continue
        by_match.setdefault(issue.match_code, []).append(issue)

    for code, match_issues in sorted(by_match.items()):
        count = report.per_match.setdefault(code, MatchFixCount())
        try:
            match = session.get(Match, match_issues[0].match_id)
            if match is None:
                raise LookupError(f"match {code} no longer exists")
            if match.is_confirmed:
                raise ValueError(f"match {code} was confirmed after validation; left untouched")
            for issue in match_issues:
                if issue.side == "a":
                    match.team_a_id = issue.expected_team_id
                    match.team_a_display_name = issue.expected_team_name
                else:
                    match.team_b_id = issue.expected_team_id
                    match.team_b_display_name = issue.expected_team_name
            session.add(match)
            session.commit()
            count.fixed += len(match_issues)
            logger.info(
                "Fixed %d slot(s) on %s: %s",
                len(match_issues),
                code,
                ", ".join(f"{i.side.upper()}={i.expected_team_name}" for i in match_issues),
            )
        except (SQLAlchemyError, LookupError, ValueError) as exc:
            session.rollback()
            count.failed += len(match_issues)
            report.failures.append(f"{code}: {exc}")
            logger.exception("Failed to fix promotion slots on %s", code)

    return report


def validate_and_fix(
    session: Session,
    tournament_id: int,
    match_codes: Optional[Iterable[str]] = None,
    sink: Optional[NotificationSink] = None,
    apply_fixes: bool = True,
) -> PromotionPassResult:
    """Validate (optionally scoped), notify about every issue, then fix the warnings."""
    if match_codes is not None:
        match_codes = list(match_codes)
        if not match_codes:
            return PromotionPassResult(issues=[], fix_report=FixReport())

    issues = validate_promotions(session, tournament_id, match_codes)
    if issues:
        logger.info(
            "Tournament %s: %d promotion issue(s) (%d error)",
            tournament_id,
            len(issues),
            sum(1 for i in issues if i.severity == SEVERITY_ERROR),
        )

    if sink is not None:
        for issue in issues:
            sink.emit(
                PromotionIssueEvent(
                    match_code=issue.match_code,
                    side=issue.side,
                    severity=issue.severity,
                    expected_team_id=issue.expected_team_id,
                    current_team_id=issue.current_team_id,
                    message=issue.message,
                )
            )

    report = fix_promotion_issues(session, issues) if apply_fixes else FixReport()
    return PromotionPassResult(issues=issues, fix_report=report)
