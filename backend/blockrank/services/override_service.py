"""
Manual bracket overrides.

An override replaces the template source of one or both sides of an
elimination match. Every create, update and delete is followed at once by a
promotion pass over the match codes the override can affect: the match
itself and everything fed by its winner or loser.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from blockrank.models.match_block import MatchBlock
from blockrank.models.match_override import MatchOverride
from blockrank.models.match_template import MatchTemplate
from blockrank.services.bracket_resolver import KIND_BLOCK_POSITION, affected_match_codes, parse_slot_source
from blockrank.services.errors import InvalidMatchState, InvalidOverride, OverrideNotFound, TemplateNotFound
from blockrank.services.notifications import LoggingNotificationSink, NotificationSink
from blockrank.services.promotion_validator import PromotionPassResult, load_slot_sources, validate_and_fix
from blockrank.services.rule_config import get_tournament
from blockrank.utils.clock import utc_now

logger = logging.getLogger(__name__)


@dataclass
class OverrideChange:
    override: Optional[MatchOverride]
    affected_match_codes: List[str]
    promotion: PromotionPassResult


def _find_template(session: Session, tournament_id: int, match_code: str) -> Optional[MatchTemplate]:
    return session.exec(
        select(MatchTemplate).where(
            MatchTemplate.tournament_id == tournament_id,
            MatchTemplate.match_code == match_code,
        )
    ).first()


def _require_template(session: Session, tournament_id: int, match_code: str) -> MatchTemplate:
    template = _find_template(session, tournament_id, match_code)
    if template is None:
        raise TemplateNotFound(match_code)
    return template


def _check_sources(
    session: Session,
    tournament_id: int,
    team_a_source: Optional[str],
    team_b_source: Optional[str],
) -> None:
    if not team_a_source and not team_b_source:
        raise InvalidOverride("At least one side must be overridden")

    block_names = None
    for raw in (team_a_source, team_b_source):
        if not raw:
            continue
        source = parse_slot_source(raw)
        if source is None:
            raise InvalidOverride(f"'{raw}' is not a block position (A_1) or match result (M3_winner)")
        if source.kind == KIND_BLOCK_POSITION:
            if block_names is None:
                block_names = set(
                    session.exec(select(MatchBlock.block_name).where(MatchBlock.tournament_id == tournament_id)).all()
                )
            if source.block_name not in block_names:
                raise InvalidOverride(f"'{raw}' names block {source.block_name}, which this tournament does not have")
        elif _find_template(session, tournament_id, source.match_code) is None:
            raise InvalidOverride(f"'{raw}' refers to match {source.match_code}, which has no template")


def _revalidate(
    session: Session,
    tournament_id: int,
    match_code: str,
    sink: Optional[NotificationSink],
) -> OverrideChange:
    templates, overrides = load_slot_sources(session, tournament_id)
    codes = affected_match_codes(templates, overrides, match_code)
    promotion = validate_and_fix(session, tournament_id, codes, sink or LoggingNotificationSink())
    return OverrideChange(override=overrides.get(match_code), affected_match_codes=codes, promotion=promotion)


def list_overrides(session: Session, tournament_id: int) -> List[MatchOverride]:
    get_tournament(session, tournament_id)
    return list(
        session.exec(
            select(MatchOverride)
            .where(MatchOverride.tournament_id == tournament_id)
            .order_by(MatchOverride.match_code)
        ).all()
    )


def get_override(session: Session, tournament_id: int, override_id: int) -> MatchOverride:
    override = session.get(MatchOverride, override_id)
    if override is None or override.tournament_id != tournament_id:
        raise OverrideNotFound(override_id)
    return override


def create_override(
    session: Session,
    tournament_id: int,
    match_code: str,
    team_a_source: Optional[str] = None,
    team_b_source: Optional[str] = None,
    reason: Optional[str] = None,
    overridden_by: Optional[str] = None,
    sink: Optional[NotificationSink] = None,
) -> OverrideChange:
    get_tournament(session, tournament_id)
    _require_template(session, tournament_id, match_code)
    _check_sources(session, tournament_id, team_a_source, team_b_source)

    override = MatchOverride(
        tournament_id=tournament_id,
        match_code=match_code,
        team_a_source_override=team_a_source or None,
        team_b_source_override=team_b_source or None,
        override_reason=reason,
        overridden_by=overridden_by,
    )
    session.add(override)
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise InvalidMatchState(f"Match {match_code} already has an override") from exc
    session.refresh(override)
    logger.info(
        "Override created for %s: A=%s B=%s (%s)",
        match_code,
        override.team_a_source_override,
        override.team_b_source_override,
        reason or "no reason given",
    )
    return _revalidate(session, tournament_id, match_code, sink)


def update_override(
    session: Session,
    tournament_id: int,
    override_id: int,
    team_a_source: Optional[str] = None,
    team_b_source: Optional[str] = None,
    reason: Optional[str] = None,
    overridden_by: Optional[str] = None,
    sink: Optional[NotificationSink] = None,
) -> OverrideChange:
    override = get_override(session, tournament_id, override_id)
    _check_sources(session, tournament_id, team_a_source, team_b_source)

    override.team_a_source_override = team_a_source or None
    override.team_b_source_override = team_b_source or None
    override.override_reason = reason
    override.overridden_by = overridden_by
    override.overridden_at = utc_now()
    session.add(override)
    session.commit()
    session.refresh(override)
    logger.info("Override %s updated for %s", override.id, override.match_code)

    return _revalidate(session, tournament_id, override.match_code, sink)


def delete_override(
    session: Session,
    tournament_id: int,
    override_id: int,
    sink: Optional[NotificationSink] = None,
) -> OverrideChange:
    override = get_override(session, tournament_id, override_id)
    match_code = override.match_code
    session.delete(override)
    session.commit()
    logger.info("Override %s deleted; %s falls back to its template sources", override_id, match_code)

    change = _revalidate(session, tournament_id, match_code, sink)
    change.override = None
    return change
