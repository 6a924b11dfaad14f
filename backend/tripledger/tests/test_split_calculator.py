"""
Tests for split calculation.
"""
from decimal import Decimal

from tripledger.schemas.split import ExternalTarget, MemberTarget, SplitSpec, SplitType
from tripledger.services.split_calculator import calculate_itemized_shares, calculate_split


def test_amount_owed_follows_percentage():
    spec = SplitSpec(
        split_type=SplitType.MANUAL,
        participants=[
            {"participant_id": 1, "split_percentage": "33.33"},
            {"participant_id": 2, "split_percentage": "33.33"},
            {"participant_id": 3, "split_percentage": "33.34"},
        ],
    )
    result = calculate_split(spec, Decimal("100.00"))

    assert [share.amount_owed for share in result.participants] == [
        Decimal("33.3300"), Decimal("33.3300"), Decimal("33.3400")
    ]
    assert sum(share.amount_owed for share in result.participants) == Decimal("100")


def test_equal_split_is_not_rounded():
    spec = SplitSpec(participants=[{"participant_id": 1}, {"participant_id": 2}, {"participant_id": 3}])
    result = calculate_split(spec, Decimal("10"))

    owed = [share.amount_owed for share in result.participants]
    assert owed[0] == owed[1] == owed[2]
    assert owed[0] != Decimal("3.33")
    assert abs(sum(owed) - Decimal("10")) < Decimal("0.0000001")


def test_external_rows_keep_their_name():
    spec = SplitSpec(participants=[{"participant_id": 1}, {"external_name": "Dana"}])
    result = calculate_split(spec, Decimal("50"))

    assert result.targets() == [MemberTarget(member_id=1), ExternalTarget(name="Dana")]
    assert result.participants[1].amount_owed == Decimal("25")


def test_line_item_base_is_amount_times_quantity():
    spec = SplitSpec(
        split_type=SplitType.MANUAL,
        line_items=[{
            "description": "Beer",
            "amount": "4.50",
            "quantity": 4,
            "participants": [
                {"participant_id": 1, "split_percentage": "75"},
                {"participant_id": 2, "split_percentage": "25"},
            ],
        }],
    )
    result = calculate_split(spec, Decimal("18"))

    shares = result.line_items[0].shares
    assert [share.amount_owed for share in shares] == [Decimal("13.5"), Decimal("4.5")]
    assert result.participants == []


def test_itemized_percentages_derive_from_item_totals():
    spec = SplitSpec(
        split_type=SplitType.ITEMIZED,
        itemized_lists=[
            {"participant_id": 1, "items": [{"description": "Fish", "amount": "30"}]},
            {"external_name": "Dana", "items": [
                {"description": "Salad", "amount": "5", "quantity": 2},
                {"description": "Juice", "amount": "60"},
            ]},
        ],
    )
    result = calculate_split(spec, Decimal("100"))

    first, second = result.itemized_lists
    assert first.total_amount == Decimal("30")
    assert second.total_amount == Decimal("70")
    assert first.split_percentage == Decimal("30")
    assert second.split_percentage == Decimal("70")


def test_itemized_with_zero_grand_total_yields_zero_percentages():
    class EmptyList:
        items = []

        def target(self):
            return MemberTarget(member_id=1)

    shares = calculate_itemized_shares([EmptyList(), EmptyList()])

    assert [share.split_percentage for share in shares] == [Decimal(0), Decimal(0)]
    assert [share.total_amount for share in shares] == [Decimal(0), Decimal(0)]
