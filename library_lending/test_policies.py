import pytest
from datetime import datetime, timedelta

from library_lending.catalog import Book
from library_lending.exceptions import InvalidVariantError
from library_lending.kinds import LoanKind, MemberKind, PolicyKind
from library_lending.loans import create_loan
from library_lending.members import create_member
from library_lending.policies import (
    EXTENDED_DURATION_DAYS,
    LendingPolicy,
    create_policy,
)

T0 = datetime(2025, 3, 1, 10, 0)  # March: no exams
ON_TIME = T0 + timedelta(days=1)
FIVE_LATE = T0 + timedelta(days=19)
TEN_LATE = T0 + timedelta(days=24)


@pytest.fixture
def book():
    return Book("111", "The Hobbit", "J.R.R. Tolkien")


@pytest.fixture
def member():
    return create_member(MemberKind.REGULAR, 1, "Ana", "Lopez")


@pytest.fixture
def loan(member, book):
    """Regular loan created at T0, due T0 + 14 days."""
    l = create_loan(LoanKind.REGULAR, book, member.member_id, created_at=T0)
    member.add_loan(l)
    return l


# -----------------------------
# Factory
# -----------------------------
@pytest.mark.parametrize("kind", list(PolicyKind))
def test_factory_builds_each_kind(kind):
    policy = create_policy(kind)
    assert isinstance(policy, LendingPolicy)
    assert policy.kind is kind


def test_factory_accepts_string():
    assert create_policy("Faculty").kind is PolicyKind.FACULTY


def test_factory_rejects_unknown():
    with pytest.raises(InvalidVariantError):
        create_policy("lenient")


# -----------------------------
# Strict
# -----------------------------
def test_strict_blocks_borrow_with_overdue_loan(member, book, loan):
    strict = create_policy(PolicyKind.STRICT)
    assert strict.can_borrow(member, book, ON_TIME) is True
    assert strict.can_borrow(member, book, FIVE_LATE) is False


def test_strict_duration_unchanged(member, loan):
    assert create_policy(PolicyKind.STRICT).compute_duration(member, 14, FIVE_LATE) == 14


def test_strict_renewal(member, loan):
    strict = create_policy(PolicyKind.STRICT)
    assert strict.allows_renewal(member, loan, ON_TIME) is True
    assert strict.allows_renewal(member, loan, FIVE_LATE) is False


def test_strict_renewal_denied_when_another_loan_overdue(member, book):
    strict = create_policy(PolicyKind.STRICT)
    late = create_loan(LoanKind.SHORT, Book("222", "Dune", "Frank Herbert"), 1, created_at=T0)
    fresh = create_loan(LoanKind.REGULAR, book, 1, created_at=T0 + timedelta(days=8))
    member.add_loan(late)
    member.add_loan(fresh)
    now = T0 + timedelta(days=9)
    assert fresh.is_overdue(now) is False
    assert strict.allows_renewal(member, fresh, now) is False


# -----------------------------
# Flexible
# -----------------------------
def test_flexible_always_lends(member, book, loan):
    assert create_policy(PolicyKind.FLEXIBLE).can_borrow(member, book, TEN_LATE) is True


def test_flexible_halves_duration_when_overdue(member, loan):
    flexible = create_policy(PolicyKind.FLEXIBLE)
    assert flexible.compute_duration(member, 14, ON_TIME) == 14
    assert flexible.compute_duration(member, 14, FIVE_LATE) == 7
    assert flexible.compute_duration(member, 21, FIVE_LATE) == 10


@pytest.mark.parametrize(
    "days_late, allowed",
    [(0, True), (7, True), (8, False), (30, False)],
)
def test_flexible_renewal_grace(member, loan, days_late, allowed):
    now = loan.due_date + timedelta(days=days_late)
    assert create_policy(PolicyKind.FLEXIBLE).allows_renewal(member, loan, now) is allowed


# -----------------------------
# Student
# -----------------------------
@pytest.mark.parametrize("month", [6, 7, 12])
def test_student_doubles_duration_in_exam_months(member, month):
    now = datetime(2025, month, 10)
    assert create_policy(PolicyKind.STUDENT).compute_duration(member, 14, now) == 28


@pytest.mark.parametrize("month", [1, 2, 3, 4, 5, 8, 9, 10, 11])
def test_student_base_duration_outside_exams(member, month):
    now = datetime(2025, month, 10)
    assert create_policy(PolicyKind.STUDENT).compute_duration(member, 14, now) == 14


def test_student_renewal_outside_exams_requires_on_time(member, loan):
    student = create_policy(PolicyKind.STUDENT)
    assert student.allows_renewal(member, loan, ON_TIME) is True
    assert student.allows_renewal(member, loan, FIVE_LATE) is False


def test_student_renewal_always_allowed_in_exams(member, book):
    student = create_policy(PolicyKind.STUDENT)
    l = create_loan(LoanKind.REGULAR, book, 1, created_at=datetime(2025, 5, 20))
    member.add_loan(l)
    now = datetime(2025, 6, 30)
    assert l.is_overdue(now) is True
    assert student.allows_renewal(member, l, now) is True
    assert student.can_borrow(member, book, now) is True


# -----------------------------
# Faculty
# -----------------------------
@pytest.mark.parametrize("base", [0, 7, 14, 30, 365])
def test_faculty_fixed_duration(member, base):
    assert create_policy(PolicyKind.FACULTY).compute_duration(member, base, ON_TIME) == 60
    assert EXTENDED_DURATION_DAYS == 60


def test_faculty_renewal_allowed_even_when_overdue(member, loan):
    faculty = create_policy(PolicyKind.FACULTY)
    assert faculty.allows_renewal(member, loan, TEN_LATE) is True
    assert faculty.can_borrow(member, loan.book, TEN_LATE) is True
