"""
Split validation run before an expense is written.

``validate_split`` is a pure function: it only looks at the split, the
declared amount and the set of member ids known to belong to the group, and
returns every violation it finds. Looking up the member ids is the caller's
job and should be done with one query for ``referenced_member_ids(spec)``.
"""
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence, Set

from tripledger.core.config import settings
from tripledger.core.exceptions import ValidationError
from tripledger.schemas.split import ParticipantRef, SplitRowIn, SplitSpec, SplitType, SplitViolation

HUNDRED = Decimal(100)

ALLOWED_SECTIONS = {
    SplitType.EQUAL: ("participants",),
    SplitType.MANUAL: ("participants", "line_items"),
    SplitType.ITEMIZED: ("itemized_lists",),
}


def to_decimal(value) -> Decimal:
    """Convert numbers to Decimal without picking up float noise."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def within_tolerance(actual: Decimal, expected: Decimal, tolerance: Optional[Decimal] = None) -> bool:
    """True when ``actual`` is no further than the tolerance from ``expected``."""
    if tolerance is None:
        tolerance = settings.SPLIT_TOLERANCE
    return abs(to_decimal(actual) - to_decimal(expected)) <= tolerance


def referenced_member_ids(spec: SplitSpec) -> Set[int]:
    """Every group member id mentioned anywhere in the split."""
    refs = list(spec.participants or [])
    for line_item in spec.line_items or []:
        refs.extend(line_item.participants)
    refs.extend(spec.itemized_lists or [])
    return {ref.participant_id for ref in refs if ref.participant_id is not None}


def _check_percentages(
    rows: Sequence[SplitRowIn],
    tolerance: Decimal,
    line_item: Optional[str] = None,
) -> List[SplitViolation]:
    """Rows must all carry a percentage (or all omit it for an even split) and sum to 100."""
    missing = [row for row in rows if row.split_percentage is None]
    if len(missing) == len(rows):
        return []
    if missing:
        label = f'Line item "{line_item}"' if line_item else "Split"
        return [SplitViolation(
            code="missing_percentage",
            message=f"{label} rows must either all specify a percentage or all omit it",
            line_item=line_item,
        )]

    total = sum((row.split_percentage for row in rows), Decimal(0))
    if within_tolerance(total, HUNDRED, tolerance):
        return []
    if line_item:
        message = f'Line item "{line_item}" split percentages must sum to 100% (got {total}%)'
    else:
        message = f"Split percentages must sum to 100% (got {total}%)"
    return [SplitViolation(code="percentage_sum", message=message, line_item=line_item)]


def _check_duplicates(
    refs: Sequence[ParticipantRef],
    message: str,
    line_item: Optional[str] = None,
) -> List[SplitViolation]:
    """A member or external name may be named by at most one of ``refs``."""
    seen = set()
    for ref in refs:
        if not ref.names_exactly_one():
            continue
        target = ref.target()
        if target in seen:
            return [SplitViolation(code="duplicate_participant", message=message, line_item=line_item)]
        seen.add(target)
    return []


def validate_split(
    spec: SplitSpec,
    amount,
    group_member_ids: Iterable[int],
    tolerance: Optional[Decimal] = None,
) -> List[SplitViolation]:
    """Return every violation found in ``spec``; an empty list means the split is valid."""
    if tolerance is None:
        tolerance = settings.SPLIT_TOLERANCE
    amount = to_decimal(amount)
    violations: List[SplitViolation] = []

    sections = spec.populated_sections()
    allowed = ALLOWED_SECTIONS[spec.split_type]
    if len(sections) != 1:
        violations.append(SplitViolation(
            code="split_shape",
            message=(
                "Exactly one of participants, line_items or itemized_lists must be provided "
                f"(got {', '.join(sections) or 'none'})"
            ),
        ))
    elif sections[0] not in allowed:
        violations.append(SplitViolation(
            code="split_type_mismatch",
            message=f"Split type '{spec.split_type.value}' cannot be used with {sections[0]}",
        ))

    if spec.participants:
        violations.extend(_check_percentages(spec.participants, tolerance))
        violations.extend(_check_duplicates(
            spec.participants, "Each participant may appear only once in a split"
        ))

    for line_item in spec.line_items or []:
        violations.extend(_check_percentages(line_item.participants, tolerance, line_item.description))
        violations.extend(_check_duplicates(
            line_item.participants,
            f'Each participant may appear only once in line item "{line_item.description}"',
            line_item.description,
        ))

    if spec.itemized_lists:
        computed = sum(
            (item.total for entry in spec.itemized_lists for item in entry.items),
            Decimal(0),
        )
        if not within_tolerance(computed, amount, tolerance):
            violations.append(SplitViolation(
                code="itemized_total",
                message=f"Itemized total {computed} does not match expense amount {amount}",
            ))

        violations.extend(_check_duplicates(
            spec.itemized_lists, "Each participant may own only one itemized list"
        ))

    unknown = referenced_member_ids(spec) - set(group_member_ids)
    if unknown:
        violations.append(SplitViolation(
            code="participant_not_in_group",
            message=f"Participant not in group: {', '.join(str(i) for i in sorted(unknown))}",
        ))

    refs = list(spec.participants or [])
    for line_item in spec.line_items or []:
        refs.extend(line_item.participants)
    refs.extend(spec.itemized_lists or [])
    if any(not ref.names_exactly_one() for ref in refs):
        violations.append(SplitViolation(
            code="participant_identity",
            message="Each split row must name exactly one of participant_id or external_name",
        ))

    return violations


def ensure_valid_split(spec: SplitSpec, amount, group_member_ids: Iterable[int]) -> None:
    """Raise ``ValidationError`` listing every violation, if there are any."""
    violations = validate_split(spec, amount, group_member_ids)
    if violations:
        raise ValidationError(violations[0].message, details=violations)
