"""
Balance engine for shared expenses.

Splits expense amounts into per-participant shares and reconciles who owes
whom across a group. The functions here are pure computations over rows that
were already loaded and validated (ORM objects, or anything exposing the same
attributes); nothing touches the database.
"""
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple
from planner.core.errors import ValidationError
from planner.core.utils import quantize_money, to_decimal

HUNDRED = Decimal(100)
ZERO = Decimal(0)
PERCENT_TOLERANCE = Decimal("0.01")
BALANCE_TOLERANCE = Decimal("0.01")

# ower_id -> owner_id -> amount
Ledger = Dict[int, Dict[int, Decimal]]


@dataclass
class MemberBalance:
    member_id: int
    member_name: str
    amount: Decimal  # positive = they owe you, negative = you owe them


@dataclass
class BalanceSummary:
    member_id: int
    member_name: str
    total_owed: Decimal
    total_owing: Decimal
    net_balance: Decimal
    balances_with: List[MemberBalance] = field(default_factory=list)


@dataclass
class Debt:
    from_member_id: int
    from_member_name: str
    to_member_id: int
    to_member_name: str
    amount: Decimal


@dataclass
class TripAmount:
    trip_id: int
    trip_name: str
    amount: Decimal


@dataclass
class Counterparty:
    member_id: int
    member_name: str
    amount: Decimal
    trips: List[TripAmount] = field(default_factory=list)


@dataclass
class TripBreakdown:
    trip_id: int
    trip_name: str
    trip_destination: Optional[str]
    total_expenses: Decimal
    you_paid: Decimal
    your_share: Decimal
    you_owe: Decimal
    owed_to_you: Decimal


@dataclass
class PersonalSummary:
    current_member_id: int
    current_member_name: str
    total_expenses_across_all_trips: Decimal
    total_you_owe: Decimal
    total_owed_to_you: Decimal
    net_balance: Decimal
    trip_breakdowns: List[TripBreakdown] = field(default_factory=list)
    people_you_owe: List[Counterparty] = field(default_factory=list)
    people_who_owe_you: List[Counterparty] = field(default_factory=list)


def validate_split_percentages(percentages: Iterable, label: str = "expense") -> Decimal:
    """
    Check that split percentages sum to 100 within the tolerance.

    Raises ValidationError otherwise; returns the total.
    """
    total = sum((to_decimal(p) for p in percentages), ZERO)
    if abs(total - HUNDRED) > PERCENT_TOLERANCE:
        raise ValidationError(
            f"Split percentages for {label} must sum to 100% (got {total}%)",
            field="split_percentage"
        )
    return total


def split_amount(total, percentages: Sequence) -> List[Decimal]:
    """
    Distribute ``total`` by percentage, rounded to cents.

    The rounding residual goes to the share with the largest percentage
    (first one on ties) so the shares add up to the rounded total exactly.
    """
    total = quantize_money(total)
    pcts = [to_decimal(p) for p in percentages]
    shares = [quantize_money(total * p / HUNDRED) for p in pcts]
    if not shares:
        return shares

    residual = total - sum(shares, ZERO)
    if residual:
        largest = max(range(len(pcts)), key=lambda i: (pcts[i], -i))
        shares[largest] += residual
    return shares


def iter_shares(expense) -> Iterator:
    """
    Yield the share rows that determine who owes what for one expense.

    Line-item participants supersede expense-level participants.
    """
    line_items = getattr(expense, "line_items", None) or []
    if line_items:
        for line_item in line_items:
            for share in line_item.participants or []:
                yield share
    else:
        for share in expense.participants or []:
            yield share


def build_ledger(expenses: Iterable, member_ids: Optional[Iterable[int]] = None) -> Ledger:
    """
    Accumulate ``ower -> owner -> amount`` over all expenses.

    External shares (no participant_id) and the owner's own share are skipped.
    When ``member_ids`` is given, owers outside it are ignored.
    """
    members = set(member_ids) if member_ids is not None else None
    ledger: Ledger = defaultdict(lambda: defaultdict(Decimal))

    for expense in expenses:
        owner_id = expense.owner_id
        for share in iter_shares(expense):
            ower_id = share.participant_id
            if ower_id is None or ower_id == owner_id:
                continue
            if members is not None and ower_id not in members:
                continue
            ledger[ower_id][owner_id] += to_decimal(share.amount_owed)

    return ledger


def total_expenses(expenses: Iterable) -> Decimal:
    """Sum of expense amounts, including expenses nobody shares."""
    return sum((to_decimal(e.amount) for e in expenses), ZERO)


def compute_balances(expenses: Sequence, members: Sequence) -> List[BalanceSummary]:
    """Compute owed/owing totals and per-counterparty net balances for every member."""
    names = {m.id: m.traveler_name for m in members}
    ledger = build_ledger(expenses, names.keys())

    summaries = []
    for member in members:
        owings = ledger.get(member.id, {})
        total_owing = sum(owings.values(), ZERO)
        total_owed = sum(
            (debts.get(member.id, ZERO) for ower_id, debts in ledger.items() if ower_id != member.id),
            ZERO
        )

        balances_with = []
        for other in members:
            if other.id == member.id:
                continue
            they_owe_me = ledger.get(other.id, {}).get(member.id, ZERO)
            i_owe_them = owings.get(other.id, ZERO)
            net = they_owe_me - i_owe_them
            if abs(net) > BALANCE_TOLERANCE:
                balances_with.append(MemberBalance(other.id, names[other.id], net))
        balances_with.sort(key=lambda b: abs(b.amount), reverse=True)

        summaries.append(BalanceSummary(
            member_id=member.id,
            member_name=member.traveler_name,
            total_owed=total_owed,
            total_owing=total_owing,
            net_balance=total_owed - total_owing,
            balances_with=balances_with
        ))

    return summaries


def pairwise_debts(summaries: Sequence[BalanceSummary]) -> List[Debt]:
    """Net debt for every pair of members that is out of balance, largest first."""
    debts = []
    for summary in summaries:
        for balance in summary.balances_with:
            # Each pair shows up twice; keep the side that owes
            if balance.amount < 0:
                debts.append(Debt(
                    from_member_id=summary.member_id,
                    from_member_name=summary.member_name,
                    to_member_id=balance.member_id,
                    to_member_name=balance.member_name,
                    amount=-balance.amount
                ))
    debts.sort(key=lambda d: d.amount, reverse=True)
    return debts


def suggest_transfers(summaries: Sequence[BalanceSummary]) -> List[Debt]:
    """
    Minimize the number of transfers needed to settle all net balances.
    Uses a greedy algorithm: the largest debtor pays the largest creditor.
    """
    names = {s.member_id: s.member_name for s in summaries}
    creditors = [[s.member_id, s.net_balance] for s in summaries if s.net_balance > BALANCE_TOLERANCE]
    debtors = [[s.member_id, -s.net_balance] for s in summaries if s.net_balance < -BALANCE_TOLERANCE]
    creditors.sort(key=lambda x: x[1], reverse=True)
    debtors.sort(key=lambda x: x[1], reverse=True)

    transfers = []
    cred_idx = 0
    debt_idx = 0
    while cred_idx < len(creditors) and debt_idx < len(debtors):
        creditor_id, cred_amount = creditors[cred_idx]
        debtor_id, debt_amount = debtors[debt_idx]

        amount = min(cred_amount, debt_amount)
        transfers.append(Debt(debtor_id, names[debtor_id], creditor_id, names[creditor_id], amount))
        creditors[cred_idx][1] -= amount
        debtors[debt_idx][1] -= amount

        if creditors[cred_idx][1] <= BALANCE_TOLERANCE:
            cred_idx += 1
        if debtors[debt_idx][1] <= BALANCE_TOLERANCE:
            debt_idx += 1

    return transfers


def _add_counterparty(
    registry: Dict[int, Tuple[str, Dict[int, Decimal]]],
    member_id: int,
    member_name: str,
    trip_id: int,
    amount: Decimal
) -> None:
    if member_id not in registry:
        registry[member_id] = (member_name, defaultdict(Decimal))
    registry[member_id][1][trip_id] += amount


def _counterparty_list(registry, trip_names: Dict[int, str]) -> List[Counterparty]:
    result = []
    for member_id, (member_name, per_trip) in registry.items():
        trips = [TripAmount(trip_id, trip_names.get(trip_id, "Unknown trip"), amount)
                 for trip_id, amount in per_trip.items()]
        result.append(Counterparty(member_id, member_name, sum(per_trip.values(), ZERO), trips))
    result.sort(key=lambda c: c.amount, reverse=True)
    return result


def compute_personal_summary(member, members: Sequence, trips: Sequence, expenses: Sequence) -> PersonalSummary:
    """
    Partition the ledger from one member's point of view.

    Produces per-trip owe/owed breakdowns (trips without expenses are left
    out) and the people the member owes / who owe the member, each with a
    per-trip breakdown. Amounts are gross, not netted between two people.
    """
    names = {m.id: m.traveler_name for m in members}
    trip_names = {t.id: t.name for t in trips}
    me = member.id

    by_trip: Dict[int, List] = defaultdict(list)
    for expense in expenses:
        by_trip[expense.trip_id].append(expense)

    you_owe_registry: Dict[int, Tuple[str, Dict[int, Decimal]]] = {}
    owe_you_registry: Dict[int, Tuple[str, Dict[int, Decimal]]] = {}
    breakdowns = []

    for trip in trips:
        trip_expenses = by_trip.get(trip.id, [])
        you_paid = you_owe = owed_to_you = your_share = ZERO

        for expense in trip_expenses:
            owner_id = expense.owner_id
            if owner_id == me:
                you_paid += to_decimal(expense.amount)

            for share in iter_shares(expense):
                owed = to_decimal(share.amount_owed)
                ower_id = share.participant_id
                if ower_id == me:
                    your_share += owed
                if ower_id is None or ower_id == owner_id:
                    continue
                if owner_id == me:
                    owed_to_you += owed
                    _add_counterparty(owe_you_registry, ower_id, names.get(ower_id, "Unknown"), trip.id, owed)
                elif ower_id == me:
                    you_owe += owed
                    _add_counterparty(you_owe_registry, owner_id, names.get(owner_id, "Unknown"), trip.id, owed)

        trip_total = total_expenses(trip_expenses)
        if trip_total > 0:
            breakdowns.append(TripBreakdown(
                trip_id=trip.id,
                trip_name=trip.name,
                trip_destination=getattr(trip, "destination", None),
                total_expenses=trip_total,
                you_paid=you_paid,
                your_share=your_share,
                you_owe=you_owe,
                owed_to_you=owed_to_you
            ))

    people_you_owe = _counterparty_list(you_owe_registry, trip_names)
    people_who_owe_you = _counterparty_list(owe_you_registry, trip_names)
    total_you_owe = sum((p.amount for p in people_you_owe), ZERO)
    total_owed_to_you = sum((p.amount for p in people_who_owe_you), ZERO)

    return PersonalSummary(
        current_member_id=me,
        current_member_name=member.traveler_name,
        total_expenses_across_all_trips=total_expenses(expenses),
        total_you_owe=total_you_owe,
        total_owed_to_you=total_owed_to_you,
        net_balance=total_owed_to_you - total_you_owe,
        trip_breakdowns=breakdowns,
        people_you_owe=people_you_owe,
        people_who_owe_you=people_who_owe_you
    )
