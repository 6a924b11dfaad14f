"""
External participant registry.

People without an account are identified by their name within a group. The
same (group, name) pair always maps to the same record, which is reused and
has its ``last_used_at`` refreshed on every use.

Concurrent first uses of a name race on the insert. The table carries a
unique constraint on (group_id, name); the insert runs inside a SAVEPOINT so
the loser of the race can roll back just that statement and reuse the
winner's row.
"""
import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tripledger.core.exceptions import ConflictError
from tripledger.models.group import ExternalParticipant
from tripledger.schemas.split import ExternalTarget

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def find_external_participant(db: Session, group_id: int, name: str) -> Optional[ExternalParticipant]:
    """Exact, case-sensitive lookup by (group_id, name)."""
    return db.query(ExternalParticipant).filter(
        ExternalParticipant.group_id == group_id,
        ExternalParticipant.name == name
    ).first()


def resolve_external_participant(db: Session, group_id: int, name: str) -> ExternalParticipant:
    """
    Return the external participant for ``name`` in ``group_id``, creating it if needed.

    Does not commit; the caller's transaction decides whether the new row
    sticks.
    """
    existing = find_external_participant(db, group_id, name)
    if existing:
        existing.last_used_at = _utcnow()
        logger.debug("Reusing external participant %s (%r) in group %s", existing.id, name, group_id)
        return existing

    participant = ExternalParticipant(group_id=group_id, name=name, last_used_at=_utcnow())
    try:
        with db.begin_nested():
            db.add(participant)
            db.flush()
    except IntegrityError:
        logger.warning("External participant %r in group %s was created concurrently, reusing it", name, group_id)
        existing = find_external_participant(db, group_id, name)
        if existing is None:
            raise ConflictError(f"Could not register external participant '{name}'")
        existing.last_used_at = _utcnow()
        return existing

    logger.info("Registered external participant %s (%r) in group %s", participant.id, name, group_id)
    return participant


def resolve_split_targets(db: Session, group_id: int, targets: Iterable) -> Dict[str, ExternalParticipant]:
    """Resolve every distinct external name among ``targets`` once."""
    resolved: Dict[str, ExternalParticipant] = {}
    for target in targets:
        if isinstance(target, ExternalTarget) and target.name not in resolved:
            resolved[target.name] = resolve_external_participant(db, group_id, target.name)
    return resolved


def list_external_participants(db: Session, group_id: int) -> List[ExternalParticipant]:
    """External participants of a group, most recently used first."""
    return db.query(ExternalParticipant).filter(
        ExternalParticipant.group_id == group_id
    ).order_by(
        ExternalParticipant.last_used_at.desc(),
        ExternalParticipant.name.asc()
    ).all()
