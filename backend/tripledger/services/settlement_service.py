"""
Settlement suggestions: who should pay whom to clear a group's debts.

Only suggestions are produced; nothing here moves money.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Tuple

from tripledger.schemas.balance import Counterparty, ExpenseRecord, ShareRecord, Transfer

CENT = Decimal("0.01")


def share_counterparty(share: ShareRecord) -> Counterparty:
    """The party behind a split row."""
    if share.member_id is not None:
        return Counterparty(kind="member", id=share.member_id, name=share.name or "Unknown")
    return Counterparty(kind="external", id=share.external_participant_id, name=share.name or "Unknown")


def payer_counterparty(record: ExpenseRecord) -> Counterparty:
    return Counterparty(kind="member", id=record.payer_id, name=record.payer_name or "Unknown")


def net_positions(records: Iterable[ExpenseRecord]) -> Dict[Tuple, Tuple[Counterparty, Decimal]]:
    """
    Net balance per party across well-formed ``records``.

    Positive = the party should receive, negative = the party should pay.
    A payer is credited with every other participant's row; the payer's own
    row cancels out. The balances always sum to zero.
    """
    parties: Dict[Tuple, Counterparty] = {}
    amounts: Dict[Tuple, Decimal] = {}

    for record in records:
        payer = payer_counterparty(record)
        for share in record.shares:
            if share.member_id == record.payer_id:
                continue
            ower = share_counterparty(share)
            for party, delta in ((payer, share.amount_owed), (ower, -share.amount_owed)):
                parties.setdefault(party.key, party)
                amounts[party.key] = amounts.get(party.key, Decimal(0)) + delta

    return {key: (parties[key], amounts[key]) for key in amounts}


def suggest_transfers(balances: Dict[Tuple, Tuple[Counterparty, Decimal]]) -> List[Transfer]:
    """
    Minimize the number of transfers needed to settle debts.
    Uses a greedy algorithm on balances rounded to cents.
    """
    rounded = [
        (party, amount.quantize(CENT, rounding=ROUND_HALF_UP))
        for party, amount in balances.values()
    ]

    # Separate creditors (positive balance) and debtors (negative balance)
    creditors = [(party, bal) for party, bal in rounded if bal > 0]
    debtors = [(party, -bal) for party, bal in rounded if bal < 0]  # Store as positive for easier calculation

    # Sort in descending order
    creditors.sort(key=lambda x: x[1], reverse=True)
    debtors.sort(key=lambda x: x[1], reverse=True)

    transfers = []
    cred_idx = 0
    debt_idx = 0

    while cred_idx < len(creditors) and debt_idx < len(debtors):
        creditor, cred_amount = creditors[cred_idx]
        debtor, debt_amount = debtors[debt_idx]

        # Transfer the minimum of what's owed and what's needed
        transfer_amount = min(cred_amount, debt_amount)
        transfers.append(Transfer(from_party=debtor, to_party=creditor, amount=transfer_amount))

        creditors[cred_idx] = (creditor, cred_amount - transfer_amount)
        debtors[debt_idx] = (debtor, debt_amount - transfer_amount)

        if creditors[cred_idx][1] == 0:
            cred_idx += 1
        if debtors[debt_idx][1] == 0:
            debt_idx += 1

    return transfers
