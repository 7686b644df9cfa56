from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Dict, Optional, Union

from library_lending.catalog import Book
from library_lending.kinds import LoanKind, coerce_kind

MONEY_Q = Decimal("0.01")
ZERO = Decimal("0.00")
SECONDS_PER_DAY = 24 * 60 * 60
DIGITAL_TERM_YEARS = 100


def money(x: Decimal) -> Decimal:
    return x.quantize(MONEY_Q, rounding=ROUND_HALF_UP)


# Due date rules
def _due_after_days(created_at: datetime, days: int) -> datetime:
    return created_at + timedelta(days=days)


def _due_same_day(created_at: datetime, days: int) -> datetime:
    # Consultation inside the library only
    return created_at


def _due_after_century(created_at: datetime, days: int) -> datetime:
    try:
        return created_at.replace(year=created_at.year + DIGITAL_TERM_YEARS)
    except ValueError:
        # Feb 29 with no leap day a century later
        return created_at.replace(year=created_at.year + DIGITAL_TERM_YEARS, day=28)


@dataclass(frozen=True)
class LoanRules:
    """
    Behaviour shared by every loan of one kind.

    Attributes:
        base_days (int): Default duration before policy adjustment.
        fine_per_day (Decimal): Fine charged per (partial) overdue day.
        withdrawable (bool): Whether the item may leave the building.
        adjustable (bool): Whether a lending policy may change the duration.
        due_date (Callable): Maps (created_at, duration_days) to the due date.
    """
    base_days: int
    fine_per_day: Decimal
    withdrawable: bool
    adjustable: bool
    due_date: Callable[[datetime, int], datetime]


LOAN_RULES: Dict[LoanKind, LoanRules] = {
    LoanKind.REGULAR: LoanRules(14, Decimal("50.00"), True, True, _due_after_days),
    LoanKind.SHORT: LoanRules(7, Decimal("100.00"), True, True, _due_after_days),
    LoanKind.REFERENCE: LoanRules(0, ZERO, False, False, _due_same_day),
    LoanKind.DIGITAL: LoanRules(0, ZERO, True, False, _due_after_century),
}


@dataclass(eq=False)
class Loan:
    """
    One active borrowing of a book by a member.

    The due date is computed once at construction and never changes.
    Two loans are only equal if they are the same object, so a member may
    hold loans that look alike without them being confused on removal.

    Attributes:
        kind (LoanKind): Loan variant.
        book (Book): Borrowed book (shared with the catalog).
        member_id (int): Borrowing member's id.
        created_at (datetime): When the loan was created.
        duration_days (Optional[int]): Policy-adjusted duration; ignored by
            kinds whose duration is not adjustable.
        due_date (datetime): Computed due date.
    """
    kind: LoanKind
    book: Book
    member_id: int
    created_at: datetime = field(default_factory=datetime.now)
    duration_days: Optional[int] = None
    due_date: datetime = field(init=False)

    def __post_init__(self) -> None:
        rules = self.rules
        days = rules.base_days
        if rules.adjustable and self.duration_days is not None:
            days = self.duration_days
        self.duration_days = days
        self.due_date = rules.due_date(self.created_at, days)

    @property
    def rules(self) -> LoanRules:
        return LOAN_RULES[self.kind]

    @property
    def fine_per_day(self) -> Decimal:
        return self.rules.fine_per_day

    def can_withdraw(self) -> bool:
        """
        Returns False for items that may only be consulted on site.
        """
        return self.rules.withdrawable

    def is_overdue(self, now: Optional[datetime] = None) -> bool:
        if now is None:
            now = datetime.now()
        return now > self.due_date

    def days_overdue(self, now: Optional[datetime] = None) -> int:
        """
        Whole days past the due date, counting any started day as a full one.

        A loan one hour late is one day overdue; 25 hours late is two.
        """
        if now is None:
            now = datetime.now()
        if not self.is_overdue(now):
            return 0
        elapsed = (now - self.due_date).total_seconds()
        return math.ceil(elapsed / SECONDS_PER_DAY)

    def compute_fine(self, now: Optional[datetime] = None) -> Decimal:
        if self.fine_per_day == ZERO:
            return ZERO
        return money(self.days_overdue(now) * self.fine_per_day)


def create_loan(
    kind: Union[LoanKind, str],
    book: Book,
    member_id: int,
    created_at: Optional[datetime] = None,
    duration_days: Optional[int] = None,
) -> Loan:
    """
    Builds a loan of the requested kind.

    Raises:
        InvalidVariantError: If kind is not a known loan kind.
    """
    loan_kind = coerce_kind(LoanKind, kind)
    if created_at is None:
        created_at = datetime.now()
    return Loan(
        kind=loan_kind,
        book=book,
        member_id=member_id,
        created_at=created_at,
        duration_days=duration_days,
    )
