"""
Tests for the external participant registry.
"""
from datetime import datetime, timezone

from tripledger.models.group import ExternalParticipant
from tripledger.schemas.split import ExternalTarget, MemberTarget
from tripledger.services import external_participant_service
from tripledger.services.external_participant_service import (
    list_external_participants,
    resolve_external_participant,
    resolve_split_targets,
)


def test_same_name_resolves_to_same_record(db, group, monkeypatch):
    first_use = datetime(2026, 5, 1, 9, 0, tzinfo=timezone.utc)
    second_use = datetime(2026, 5, 2, 18, 30, tzinfo=timezone.utc)
    clock = iter([first_use, second_use])
    monkeypatch.setattr(external_participant_service, "_utcnow", lambda: next(clock))

    created = resolve_external_participant(db, group.id, "Dana")
    assert created.last_used_at == first_use

    reused = resolve_external_participant(db, group.id, "Dana")
    assert reused.id == created.id
    assert reused.last_used_at == second_use
    assert db.query(ExternalParticipant).count() == 1


def test_names_are_scoped_to_the_group(db, group, other_group_member):
    ours = resolve_external_participant(db, group.id, "Dana")
    theirs = resolve_external_participant(db, other_group_member.group_id, "Dana")
    assert ours.id != theirs.id


def test_matching_is_case_sensitive(db, group):
    lower = resolve_external_participant(db, group.id, "dana")
    upper = resolve_external_participant(db, group.id, "Dana")
    assert lower.id != upper.id


def test_concurrent_insert_reuses_winning_row(db, group, monkeypatch):
    winner = ExternalParticipant(
        group_id=group.id,
        name="Dana",
        last_used_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
    )
    db.add(winner)
    db.commit()

    real_find = external_participant_service.find_external_participant
    calls = []

    def stale_find(session, group_id, name):
        # The first lookup runs before the other writer committed
        calls.append(name)
        if len(calls) == 1:
            return None
        return real_find(session, group_id, name)

    monkeypatch.setattr(external_participant_service, "find_external_participant", stale_find)

    resolved = resolve_external_participant(db, group.id, "Dana")
    db.commit()

    assert resolved.id == winner.id
    assert len(calls) == 2
    assert db.query(ExternalParticipant).filter_by(group_id=group.id).count() == 1


def test_resolve_split_targets_resolves_each_name_once(db, group):
    targets = [
        ExternalTarget(name="Dana"),
        MemberTarget(member_id=1),
        ExternalTarget(name="Dana"),
        ExternalTarget(name="Eli"),
    ]
    resolved = resolve_split_targets(db, group.id, targets)

    assert sorted(resolved) == ["Dana", "Eli"]
    assert db.query(ExternalParticipant).count() == 2


def test_list_orders_by_most_recent_use(db, group, monkeypatch):
    times = iter([
        datetime(2026, 5, 1, tzinfo=timezone.utc),
        datetime(2026, 5, 2, tzinfo=timezone.utc),
        datetime(2026, 5, 3, tzinfo=timezone.utc),
    ])
    monkeypatch.setattr(external_participant_service, "_utcnow", lambda: next(times))

    resolve_external_participant(db, group.id, "Dana")
    resolve_external_participant(db, group.id, "Eli")
    resolve_external_participant(db, group.id, "Dana")
    db.commit()

    assert [p.name for p in list_external_participants(db, group.id)] == ["Dana", "Eli"]
