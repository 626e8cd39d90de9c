"""
Bracket template resolution.

Elimination match templates declare each side either as a fixed team or as
a symbolic source:
  "A_1"        → the team ranked 1st in block A
  "M3_winner"  → the winner of match M3
  "M3_loser"   → the loser of match M3

An override for a match side replaces the template source. Resolution is a
pure function of (templates, overrides, rankings, results); nothing is
cached, so re-running it after any change always gives the current answer.
"""
from __future__ import annotations

import logging
import re
from collections import deque
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from blockrank.services.records import TeamStanding

logger = logging.getLogger(__name__)

SIDES: Tuple[str, str] = ("a", "b")

KIND_BLOCK_POSITION = "block_position"
KIND_MATCH_RESULT = "match_result"

_BLOCK_SOURCE = re.compile(r"^([A-Za-z]+)_(\d+)$")
_MATCH_SOURCE = re.compile(r"^([A-Za-z0-9]+)_(winner|loser)$", re.IGNORECASE)


@dataclass(frozen=True)
class BracketSlotSource:
    raw: str
    kind: str
    block_name: Optional[str] = None
    position: Optional[int] = None
    match_code: Optional[str] = None
    role: Optional[str] = None  # "winner" | "loser"


@dataclass(frozen=True)
class BracketResult:
    """Outcome of a confirmed elimination match."""

    match_code: str
    winner_team_id: Optional[int]
    loser_team_id: Optional[int]


@dataclass(frozen=True)
class ResolvedTeam:
    team_id: int
    team_name: str
    source: str
    via_override: bool = False


SlotKey = Tuple[str, str]  # (match_code, side)


def parse_slot_source(text: Optional[str]) -> Optional[BracketSlotSource]:
    """Parse a symbolic source; None for empty or unrecognized text."""
    if not text:
        return None
    text = text.strip()

    match = _MATCH_SOURCE.match(text)
    if match:
        return BracketSlotSource(
            raw=text,
            kind=KIND_MATCH_RESULT,
            match_code=match.group(1),
            role=match.group(2).lower(),
        )

    match = _BLOCK_SOURCE.match(text)
    if match:
        return BracketSlotSource(
            raw=text,
            kind=KIND_BLOCK_POSITION,
            block_name=match.group(1),
            position=int(match.group(2)),
        )

    return None


def effective_source(template: Any, override: Any, side: str) -> Tuple[Optional[str], bool]:
    """The source in force for a side and whether an override supplied it."""
    if override is not None:
        replaced = override.source_for(side)
        if replaced:
            return replaced, True
    return (template.source_for(side) if template is not None else None), False


def team_at_position(standings: Sequence[TeamStanding], position: int) -> Optional[TeamStanding]:
    """The single team at a position; None when nobody or several teams hold it."""
    holders = [s for s in standings if s.position == position]
    if len(holders) == 1:
        return holders[0]
    if len(holders) > 1:
        logger.debug(
            "Position %d shared by %s; slot stays unresolved",
            position,
            [s.team_id for s in holders],
        )
    return None


def resolve_source(
    source: BracketSlotSource,
    block_rankings: Mapping[str, Sequence[TeamStanding]],
    results: Mapping[str, BracketResult],
    team_names: Mapping[int, str],
    via_override: bool = False,
) -> Optional[ResolvedTeam]:
    if source.kind == KIND_BLOCK_POSITION:
        standings = block_rankings.get(source.block_name)
        if not standings:
            return None
        holder = team_at_position(standings, source.position)
        if holder is None:
            return None
        return ResolvedTeam(holder.team_id, holder.team_name, source.raw, via_override)

    result = results.get(source.match_code)
    if result is None:
        return None
    team_id = result.winner_team_id if source.role == "winner" else result.loser_team_id
    if team_id is None:
        return None
    return ResolvedTeam(team_id, team_names.get(team_id, str(team_id)), source.raw, via_override)


def resolve_expected_teams(
    templates: Mapping[str, Any],
    overrides: Mapping[str, Any],
    block_rankings: Mapping[str, Sequence[TeamStanding]],
    results: Mapping[str, BracketResult],
    team_names: Mapping[int, str],
) -> Dict[SlotKey, ResolvedTeam]:
    """
    Expected team for every symbolic slot that can be resolved right now.

    Slots whose source is not determinable yet (block incomplete, tied
    position, upstream match unconfirmed) are absent from the result.
    """
    expected: Dict[SlotKey, ResolvedTeam] = {}
    for code in sorted(templates):
        template = templates[code]
        override = overrides.get(code)
        for side in SIDES:
            raw, via_override = effective_source(template, override, side)
            source = parse_slot_source(raw)
            if source is None:
                continue
            resolved = resolve_source(source, block_rankings, results, team_names, via_override)
            if resolved is not None:
                expected[(code, side)] = resolved
    return expected


def unresolved_slots(
    templates: Mapping[str, Any],
    overrides: Mapping[str, Any],
    expected: Mapping[SlotKey, ResolvedTeam],
) -> Dict[SlotKey, str]:
    """Symbolic slots missing from expected, with the source in force for each."""
    unresolved: Dict[SlotKey, str] = {}
    for code in sorted(templates):
        for side in SIDES:
            if (code, side) in expected:
                continue
            raw, _ = effective_source(templates[code], overrides.get(code), side)
            source = parse_slot_source(raw)
            if source is not None:
                unresolved[(code, side)] = source.raw
    return unresolved


def _parsed_sources(templates: Mapping[str, Any], overrides: Mapping[str, Any]) -> Iterable[Tuple[str, BracketSlotSource]]:
    for code, template in templates.items():
        override = overrides.get(code)
        for side in SIDES:
            raw, _ = effective_source(template, override, side)
            source = parse_slot_source(raw)
            if source is not None:
                yield code, source


def match_codes_referencing_block(
    templates: Mapping[str, Any],
    overrides: Mapping[str, Any],
    block_name: str,
) -> Set[str]:
    return {
        code
        for code, source in _parsed_sources(templates, overrides)
        if source.kind == KIND_BLOCK_POSITION and source.block_name == block_name
    }


def match_codes_referencing_match(
    templates: Mapping[str, Any],
    overrides: Mapping[str, Any],
    match_code: str,
) -> Set[str]:
    return {
        code
        for code, source in _parsed_sources(templates, overrides)
        if source.kind == KIND_MATCH_RESULT and source.match_code == match_code
    }


def affected_match_codes(
    templates: Mapping[str, Any],
    overrides: Mapping[str, Any],
    match_code: str,
) -> List[str]:
    """The match itself plus every match fed by it through winner/loser sources, transitively."""
    seen: Set[str] = {match_code}
    queue = deque([match_code])
    while queue:
        current = queue.popleft()
        for dependent in match_codes_referencing_match(templates, overrides, current):
            if dependent not in seen:
                seen.add(dependent)
                queue.append(dependent)
    return sorted(seen)
