"""
Tests for split validation.
"""
from decimal import Decimal

import pytest

from tripledger.core.exceptions import ValidationError
from tripledger.schemas.split import SplitSpec, SplitType
from tripledger.services.split_validator import ensure_valid_split, referenced_member_ids, validate_split

MEMBERS = {1, 2, 3}


def codes(violations):
    return [violation.code for violation in violations]


def manual(*percentages):
    return SplitSpec(
        split_type=SplitType.MANUAL,
        participants=[
            {"participant_id": index + 1, "split_percentage": percentage}
            for index, percentage in enumerate(percentages)
        ],
    )


@pytest.mark.parametrize("percentages", [("50", "50"), ("50", "50.01"), ("49.99", "50")])
def test_percentages_within_tolerance_are_accepted(percentages):
    assert validate_split(manual(*percentages), "100", MEMBERS) == []


@pytest.mark.parametrize("percentages", [("50", "50.02"), ("49.98", "50"), ("30", "30")])
def test_percentages_outside_tolerance_are_rejected(percentages):
    violations = validate_split(manual(*percentages), "100", MEMBERS)
    assert codes(violations) == ["percentage_sum"]
    assert "must sum to 100%" in violations[0].message


def test_rows_without_percentages_split_evenly():
    spec = SplitSpec(participants=[{"participant_id": 1}, {"participant_id": 2}, {"participant_id": 3}])
    assert validate_split(spec, "100", MEMBERS) == []


def test_mixing_rows_with_and_without_percentage_is_rejected():
    spec = SplitSpec(
        split_type=SplitType.MANUAL,
        participants=[{"participant_id": 1, "split_percentage": "60"}, {"participant_id": 2}],
    )
    assert codes(validate_split(spec, "100", MEMBERS)) == ["missing_percentage"]


def test_line_item_percentages_are_checked_per_item():
    spec = SplitSpec(
        split_type=SplitType.MANUAL,
        line_items=[
            {
                "description": "Pizza",
                "amount": "30",
                "participants": [
                    {"participant_id": 1, "split_percentage": "50"},
                    {"participant_id": 2, "split_percentage": "50"},
                ],
            },
            {
                "description": "Wine",
                "amount": "20",
                "participants": [
                    {"participant_id": 1, "split_percentage": "70"},
                    {"participant_id": 3, "split_percentage": "20"},
                ],
            },
        ],
    )
    violations = validate_split(spec, "50", MEMBERS)
    assert codes(violations) == ["percentage_sum"]
    assert violations[0].line_item == "Wine"
    assert violations[0].message.startswith('Line item "Wine"')


def test_itemized_total_must_match_amount():
    spec = SplitSpec(
        split_type=SplitType.ITEMIZED,
        itemized_lists=[
            {"participant_id": 1, "items": [{"description": "Soup", "amount": "12.50"}]},
            {"participant_id": 2, "items": [{"description": "Steak", "amount": "20", "quantity": 2}]},
        ],
    )
    assert validate_split(spec, "52.50", MEMBERS) == []

    violations = validate_split(spec, "60", MEMBERS)
    assert codes(violations) == ["itemized_total"]
    assert "52.50" in violations[0].message


def test_participant_may_own_only_one_itemized_list():
    spec = SplitSpec(
        split_type=SplitType.ITEMIZED,
        itemized_lists=[
            {"external_name": "Dana", "items": [{"description": "Tea", "amount": "3"}]},
            {"external_name": " Dana ", "items": [{"description": "Cake", "amount": "4"}]},
        ],
    )
    assert codes(validate_split(spec, "7", MEMBERS)) == ["duplicate_participant"]


def test_members_outside_the_group_are_reported():
    spec = SplitSpec(participants=[{"participant_id": 1}, {"participant_id": 42}])
    violations = validate_split(spec, "10", MEMBERS)
    assert codes(violations) == ["participant_not_in_group"]
    assert "42" in violations[0].message


def test_row_must_name_exactly_one_identity():
    spec = SplitSpec(participants=[
        {"participant_id": 1, "external_name": "Dana"},
        {"participant_id": 2},
    ])
    assert codes(validate_split(spec, "10", MEMBERS)) == ["participant_identity"]

    spec = SplitSpec(participants=[{"external_name": "   "}])
    assert "participant_identity" in codes(validate_split(spec, "10", MEMBERS))


def test_exactly_one_section_is_required():
    spec = SplitSpec(
        participants=[{"participant_id": 1}],
        itemized_lists=[{"participant_id": 2, "items": [{"description": "Tea", "amount": "3"}]}],
    )
    assert "split_shape" in codes(validate_split(spec, "3", MEMBERS))
    assert "split_shape" in codes(validate_split(SplitSpec(), "3", MEMBERS))


def test_section_must_match_split_type():
    spec = SplitSpec(
        split_type=SplitType.ITEMIZED,
        participants=[{"participant_id": 1}],
    )
    assert codes(validate_split(spec, "3", MEMBERS)) == ["split_type_mismatch"]


def test_tolerance_can_be_overridden():
    assert validate_split(manual("50", "50.5"), "100", MEMBERS, tolerance=Decimal("1")) == []


def test_referenced_member_ids_covers_every_section():
    spec = SplitSpec(
        split_type=SplitType.MANUAL,
        line_items=[{
            "description": "Taxi",
            "amount": "9",
            "participants": [{"participant_id": 2}, {"participant_id": 3}, {"external_name": "Dana"}],
        }],
    )
    assert referenced_member_ids(spec) == {2, 3}


def test_ensure_valid_split_raises_with_all_violations():
    spec = SplitSpec(participants=[
        {"participant_id": 9, "split_percentage": "10"},
        {"participant_id": 1, "split_percentage": "10"},
    ])
    with pytest.raises(ValidationError) as exc_info:
        ensure_valid_split(spec, "100", MEMBERS)

    assert exc_info.value.status_code == 422
    assert codes(exc_info.value.details) == ["percentage_sum", "participant_not_in_group"]


def test_same_member_twice_in_a_flat_split_is_rejected():
    spec = SplitSpec(participants=[{"participant_id": 1}, {"participant_id": 2}, {"participant_id": 1}])
    violations = validate_split(spec, "30", MEMBERS)
    assert codes(violations) == ["duplicate_participant"]
    assert violations[0].line_item is None


def test_same_external_twice_in_a_line_item_is_rejected():
    spec = SplitSpec(
        split_type=SplitType.MANUAL,
        line_items=[
            {
                "description": "Wine",
                "amount": "20",
                "participants": [{"external_name": "Dana"}, {"external_name": "Dana "}],
            },
            {
                "description": "Bread",
                "amount": "4",
                "participants": [{"participant_id": 1}, {"external_name": "Dana"}],
            },
        ],
    )
    violations = validate_split(spec, "24", MEMBERS)
    assert codes(violations) == ["duplicate_participant"]
    assert violations[0].line_item == "Wine"


@pytest.mark.parametrize("percentages", [("40", "60"), ("40", "40")])
def test_validating_twice_gives_the_same_verdict(percentages):
    spec = manual(*percentages)
    first = validate_split(spec, "100", MEMBERS)
    second = validate_split(spec, "100", MEMBERS)
    assert first == second
    assert spec == manual(*percentages)
