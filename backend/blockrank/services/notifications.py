"""
Operator-facing events.

The engine only emits events; delivering them (dashboard, email) belongs to
whatever sink the caller plugs in.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

TIE_REQUIRES_MANUAL_RESOLUTION = "tie_requires_manual_resolution"
PROMOTION_ISSUE = "promotion_issue"


@dataclass(frozen=True)
class TieRequiresManualResolution:
    block_id: int
    block_name: str
    team_ids: Tuple[int, ...]
    position: int
    chain_exhausted: bool = False
    lottery_required: bool = False
    event_type: str = TIE_REQUIRES_MANUAL_RESOLUTION

    @property
    def message(self) -> str:
        return (
            f"Block {self.block_name}: teams {list(self.team_ids)} are tied at position "
            f"{self.position}; set their ranking manually"
        )


@dataclass(frozen=True)
class PromotionIssueEvent:
    match_code: str
    side: str
    severity: str
    expected_team_id: Optional[int]
    current_team_id: Optional[int]
    message: str
    event_type: str = PROMOTION_ISSUE


def event_to_dict(event: Any) -> Dict[str, Any]:
    data = asdict(event)
    if isinstance(event, TieRequiresManualResolution):
        data["team_ids"] = list(event.team_ids)
        data["message"] = event.message
    return data


class NotificationSink:
    """Receives engine events. Subclasses decide where they go."""

    def emit(self, event: Any) -> None:
        raise NotImplementedError


class LoggingNotificationSink(NotificationSink):
    def emit(self, event: Any) -> None:
        if isinstance(event, PromotionIssueEvent) and event.severity == "error":
            logger.error("[%s] %s", event.event_type, event.message)
        else:
            logger.warning("[%s] %s", event.event_type, getattr(event, "message", event))


@dataclass
class CollectingNotificationSink(NotificationSink):
    """Keeps events in memory, optionally forwarding them to another sink."""

    forward_to: Optional[NotificationSink] = None
    events: List[Any] = field(default_factory=list)

    def emit(self, event: Any) -> None:
        self.events.append(event)
        if self.forward_to is not None:
            self.forward_to.emit(event)

    def of_type(self, event_type: str) -> List[Any]:
        return [e for e in self.events if e.event_type == event_type]
