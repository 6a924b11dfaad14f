"""
Split calculation: turn a validated split into per-participant amounts.

Amounts stay ``Decimal`` and are never rounded here; rounding to currency
precision happens when values are displayed.
"""
from decimal import Decimal
from typing import List, Sequence

from tripledger.schemas.split import (
    CalculatedSplit,
    ItemizedListIn,
    ItemizedShare,
    LineItemIn,
    LineItemShares,
    OwedShare,
    SplitRowIn,
    SplitSpec,
    SplitType,
)
from tripledger.services.split_validator import HUNDRED, to_decimal


def flat_percentages(rows: Sequence[SplitRowIn]) -> List[Decimal]:
    """Percentages for ``rows``; rows that all omit one are split evenly."""
    if rows and all(row.split_percentage is None for row in rows):
        even = HUNDRED / len(rows)
        return [even] * len(rows)
    return [to_decimal(row.split_percentage or 0) for row in rows]


def calculate_flat_shares(amount, rows: Sequence[SplitRowIn]) -> List[OwedShare]:
    """Each row owes ``amount * percentage / 100``."""
    base = to_decimal(amount)
    return [
        OwedShare(
            target=row.target(),
            split_percentage=percentage,
            amount_owed=base * percentage / HUNDRED,
        )
        for row, percentage in zip(rows, flat_percentages(rows))
    ]


def calculate_line_item_shares(line_item: LineItemIn) -> LineItemShares:
    """Shares of one line item, based on its amount times quantity."""
    return LineItemShares(
        line_item=line_item,
        shares=calculate_flat_shares(line_item.total, line_item.participants),
    )


def calculate_itemized_shares(lists: Sequence[ItemizedListIn]) -> List[ItemizedShare]:
    """
    Derive each participant's percentage from their item total.

    The grand total is the sum of every list, not the declared expense
    amount; when it is zero every percentage is zero.
    """
    totals = [
        sum((item.total for item in entry.items), Decimal(0))
        for entry in lists
    ]
    grand_total = sum(totals, Decimal(0))

    shares = []
    for entry, total in zip(lists, totals):
        if grand_total == 0:
            percentage = Decimal(0)
        else:
            percentage = total / grand_total * HUNDRED
        shares.append(ItemizedShare(
            target=entry.target(),
            total_amount=total,
            split_percentage=percentage,
            items=entry.items,
        ))
    return shares


def calculate_split(spec: SplitSpec, amount) -> CalculatedSplit:
    """Compute owed amounts for whichever section ``spec`` carries."""
    if spec.split_type == SplitType.ITEMIZED:
        return CalculatedSplit(
            split_type=spec.split_type,
            itemized_lists=calculate_itemized_shares(spec.itemized_lists or []),
        )
    if spec.line_items:
        return CalculatedSplit(
            split_type=spec.split_type,
            line_items=[calculate_line_item_shares(li) for li in spec.line_items],
        )
    return CalculatedSplit(
        split_type=spec.split_type,
        participants=calculate_flat_shares(amount, spec.participants or []),
    )
