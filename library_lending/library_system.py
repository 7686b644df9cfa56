from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Callable, List, Optional, Sequence, Union

from library_lending.catalog import Book, Catalog
from library_lending.exceptions import (
    LibraryError,
    BookNotFoundError,
    MemberNotFoundError,
    BookNotBorrowedError,
    BookUnavailableError,
    PolicyDeniedError,
    NotWithdrawableError,
)
from library_lending.kinds import LoanKind, MemberKind, PolicyKind, coerce_kind
from library_lending.loans import LOAN_RULES, Loan, create_loan
from library_lending.members import Member, MemberRegistry, create_member
from library_lending.policies import LendingPolicy, create_policy
from library_lending.search import (
    AcademicArticle,
    DigitalLibrary,
    DigitalResource,
    HistoricalArchive,
    HistoricalDocument,
    KnowledgeBase,
    SearchResult,
    UniversalSearch,
)


# Logging configuration
logger = logging.getLogger("library_lending")
logger.setLevel(logging.INFO)

if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


DEFAULT_POLICY = PolicyKind.FLEXIBLE

CATALOG_SYSTEM = "Library Catalog"
DIGITAL_SYSTEM = "Digital Library"
ARCHIVE_SYSTEM = "Historical Archive"
KNOWLEDGE_SYSTEM = "Knowledge Base"


# Report rows
@dataclass(frozen=True)
class FineReportEntry:
    member_id: int
    full_name: str
    fine: Decimal


@dataclass(frozen=True)
class PopularBookEntry:
    book: Book
    active_loans: int


# Library Core
class Library:
    """
    Lending service that owns the catalog, members, active loans and the
    current lending policy.

    Rules enforced when lending:
        (1) A book can be on at most one active loan
        (2) Members cannot exceed their kind's concurrent loan limit
        (3) The active policy must allow the borrow (and any renewal)
        (4) Reference items are consulted on site, never withdrawn

    Every active loan lives in exactly two places: the member's own loan
    list and self._active_loans. They are always changed together.
    """

    def __init__(self, policy: Union[PolicyKind, str] = DEFAULT_POLICY) -> None:
        """
        Initializes an empty library with the given policy and the four
        standard search systems registered.
        """
        self.catalog = Catalog()
        self.members = MemberRegistry()
        self._active_loans: List[Loan] = []
        self._policy: LendingPolicy = create_policy(policy)

        self.digital_library = DigitalLibrary()
        self.historical_archive = HistoricalArchive()
        self.knowledge_base = KnowledgeBase()

        self.search = UniversalSearch()
        self.search.register(CATALOG_SYSTEM, self.catalog)
        self.search.register(DIGITAL_SYSTEM, self.digital_library)
        self.search.register(ARCHIVE_SYSTEM, self.historical_archive)
        self.search.register(KNOWLEDGE_SYSTEM, self.knowledge_base)

    # Policy

    @property
    def policy(self) -> LendingPolicy:
        return self._policy

    def set_policy(self, kind: Union[PolicyKind, str]) -> None:
        """
        Replaces the active policy. Existing loans keep their due dates.

        Raises:
            InvalidVariantError: If kind is not a known policy kind.
        """
        self._policy = create_policy(kind)
        logger.info("Policy changed | policy=%s", self._policy.kind.value)

    # Catalog and members

    def add_book(self, title: str, author: str, isbn: str) -> Book:
        """
        Adds a new book to the catalog.

        Raises:
            DuplicateBookError: If a book with the same ISBN already exists.
            ValueError: If ISBN is empty.
        """
        logger.info("add_book called | isbn=%s title=%s", isbn, title)
        book = Book(isbn=isbn, title=title, author=author)
        self.catalog.add(book)
        return book

    def find_book(self, isbn: str) -> Optional[Book]:
        return self.catalog.find_by_isbn(isbn)

    def register_member(
        self,
        kind: Union[MemberKind, str],
        member_id: int,
        first_name: str,
        last_name: str,
    ) -> Member:
        """
        Registers a new member of the given kind.

        Raises:
            InvalidVariantError: If kind is not a known member kind.
            DuplicateMemberError: If member_id already exists.
        """
        logger.info("register_member called | memberId=%s", member_id)
        member = create_member(kind, member_id, first_name, last_name)
        self.members.add(member)
        return member

    def find_member(self, member_id: int) -> Optional[Member]:
        return self.members.find_by_id(member_id)

    # Lending workflows

    def create_loan(
        self,
        member_id: int,
        isbn: str,
        loan_kind: Union[LoanKind, str],
        now: Optional[datetime] = None,
    ) -> Loan:
        """
        Lends a book to a member.

        Enforces:
            - book availability
            - member's concurrent loan limit
            - active policy's borrow rule
            - reference items stay in the library

        Raises:
            MemberNotFoundError
            BookNotFoundError
            BookUnavailableError
            PolicyDeniedError
            NotWithdrawableError
            InvalidVariantError
        """
        logger.info(
            "create_loan called | memberId=%s isbn=%s kind=%s",
            member_id, isbn, getattr(loan_kind, "value", loan_kind),
        )

        member = self._get_member(member_id)
        book = self._get_book(isbn)

        if now is None:
            now = datetime.now()

        if self._is_on_loan(book):
            raise BookUnavailableError(f"Book {isbn} is not available.")

        if not member.can_borrow(book):
            raise PolicyDeniedError(
                f"Member {member_id} ({member.kind.value}) cannot borrow more books "
                f"(active={member.active_loan_count}, max={member.max_loans})."
            )

        if not self._policy.can_borrow(member, book, now):
            raise PolicyDeniedError(
                f"Policy {self._policy.kind.value} denies borrowing for member {member_id}."
            )

        kind = coerce_kind(LoanKind, loan_kind)
        loan = create_loan(
            kind,
            book,
            member_id,
            created_at=now,
            duration_days=self._policy_duration(member, kind, now),
        )

        if not loan.can_withdraw():
            raise NotWithdrawableError(
                f"Book {isbn} is reference-only and can only be consulted on site."
            )

        self._active_loans.append(loan)
        member.add_loan(loan)

        logger.info(
            "Loan created | memberId=%s isbn=%s due=%s",
            member_id, isbn, loan.due_date.isoformat(),
        )
        return loan

    def return_loan(
        self,
        member_id: int,
        isbn: str,
        now: Optional[datetime] = None,
    ) -> Decimal:
        """
        Returns a borrowed book and ends its loan.

        The fine is computed and reported but not billed anywhere.

        Returns:
            Decimal: Fine accrued by the loan at return time.

        Raises:
            MemberNotFoundError
            BookNotFoundError
            BookNotBorrowedError
        """
        logger.info("return_loan called | memberId=%s isbn=%s", member_id, isbn)

        member = self._get_member(member_id)
        book = self._get_book(isbn)
        loan = self._get_member_loan(member, book)

        if now is None:
            now = datetime.now()

        fine = loan.compute_fine(now)
        if fine > 0:
            logger.info("Fine generated | memberId=%s isbn=%s fine=%s", member_id, isbn, fine)

        member.remove_loan(loan)
        self._active_loans.remove(loan)

        logger.info("Return successful | memberId=%s isbn=%s", member_id, isbn)
        return fine

    def renew_loan(
        self,
        member_id: int,
        isbn: str,
        now: Optional[datetime] = None,
    ) -> datetime:
        """
        Checks a renewal against the active policy and reports the new due date.

        The loan itself is left untouched: its due_date keeps the value set
        at creation.

        Returns:
            datetime: Due date the renewal would grant.

        Raises:
            MemberNotFoundError
            BookNotFoundError
            BookNotBorrowedError
            PolicyDeniedError
        """
        logger.info("renew_loan called | memberId=%s isbn=%s", member_id, isbn)

        member = self._get_member(member_id)
        book = self._get_book(isbn)
        loan = self._get_member_loan(member, book)

        if now is None:
            now = datetime.now()

        if not self._policy.allows_renewal(member, loan, now):
            raise PolicyDeniedError(
                f"Policy {self._policy.kind.value} denies renewal of {isbn} "
                f"for member {member_id}."
            )

        days = self._policy.compute_duration(member, member.loan_days, now)
        renewed_until = now + timedelta(days=days)

        logger.info(
            "Loan renewed | memberId=%s isbn=%s until=%s",
            member_id, isbn, renewed_until.date().isoformat(),
        )
        return renewed_until

    # Loan queries

    def active_loans(self) -> List[Loan]:
        return list(self._active_loans)

    def overdue_loans(self, now: Optional[datetime] = None) -> List[Loan]:
        if now is None:
            now = datetime.now()
        return [loan for loan in self._active_loans if loan.is_overdue(now)]

    def loans_for_member(self, member_id: int) -> List[Loan]:
        return [loan for loan in self._active_loans if loan.member_id == member_id]

    # Search

    def available_search_systems(self) -> List[str]:
        return self.search.available_systems()

    def search_all(self, term: str) -> List[SearchResult]:
        return self.search.search_all(term)

    def search_in(self, system_name: str, term: str) -> List[Any]:
        """
        Raises:
            SearchSystemNotFoundError: If no system is registered under that name.
        """
        return self.search.search_in(system_name, term)

    def filter_all(self, predicate: Callable[[Any], bool]) -> List[SearchResult]:
        return self.search.filter_all(predicate)

    def add_digital_resource(
        self,
        title: str,
        url: str,
        media_type: str,
        published_at: Optional[datetime] = None,
    ) -> DigitalResource:
        if published_at is None:
            published_at = datetime.now()
        resource = DigitalResource(title, url, media_type, published_at)
        self.digital_library.add(resource)
        return resource

    def add_historical_document(
        self,
        title: str,
        created_on: date,
        author: str,
        category: str,
        condition: str,
    ) -> HistoricalDocument:
        document = HistoricalDocument(title, created_on, author, category, condition)
        self.historical_archive.add(document)
        return document

    def add_academic_article(
        self,
        title: str,
        authors: Sequence[str],
        journal: str,
        year: int,
        keywords: Sequence[str],
        abstract: str,
    ) -> AcademicArticle:
        article = AcademicArticle(
            title, tuple(authors), journal, year, tuple(keywords), abstract
        )
        self.knowledge_base.add(article)
        return article

    # Reports and statistics

    def fine_report(self, now: Optional[datetime] = None) -> List[FineReportEntry]:
        """
        Members owing a fine, largest fine first.
        """
        if now is None:
            now = datetime.now()
        rows = [
            FineReportEntry(m.member_id, m.full_name, m.total_fine_owed(now))
            for m in self.members
        ]
        rows = [r for r in rows if r.fine > 0]
        return sorted(rows, key=lambda r: r.fine, reverse=True)

    def popular_books_report(self) -> List[PopularBookEntry]:
        """
        Books among active loans with their loan counts, most loaned first.
        """
        counts = Counter(loan.book.isbn for loan in self._active_loans)
        rows = [
            PopularBookEntry(self.catalog.find_by_isbn(isbn), n)
            for isbn, n in counts.items()
        ]
        return sorted(rows, key=lambda r: r.active_loans, reverse=True)

    @property
    def total_books(self) -> int:
        return len(self.catalog)

    @property
    def total_members(self) -> int:
        return len(self.members)

    @property
    def active_loan_count(self) -> int:
        return len(self._active_loans)

    def overdue_loan_count(self, now: Optional[datetime] = None) -> int:
        return len(self.overdue_loans(now))

    # Internal Helpers
    def _get_book(self, isbn: str) -> Book:
        """
        Retrieves a book by ISBN or raises BookNotFoundError.
        """
        book = self.catalog.find_by_isbn(isbn)
        if book is None:
            raise BookNotFoundError(f"Book not found: isbn={isbn}")
        return book

    def _get_member(self, member_id: int) -> Member:
        """
        Retrieves a member by ID or raises MemberNotFoundError.
        """
        member = self.members.find_by_id(member_id)
        if member is None:
            raise MemberNotFoundError(f"Member not found: memberId={member_id}")
        return member

    @staticmethod
    def _get_member_loan(member: Member, book: Book) -> Loan:
        """
        Finds the member's active loan for a book or raises BookNotBorrowedError.
        """
        loan = member.has_loan_for(book)
        if loan is None:
            raise BookNotBorrowedError(
                f"Member {member.member_id} does not have book {book.isbn} on loan."
            )
        return loan

    def _is_on_loan(self, book: Book) -> bool:
        return any(loan.book == book for loan in self._active_loans)

    def _policy_duration(
        self, member: Member, kind: LoanKind, now: datetime
    ) -> Optional[int]:
        """
        Policy-adjusted duration for kinds with a day-based term, else None.
        """
        rules = LOAN_RULES[kind]
        if not rules.adjustable:
            return None
        return self._policy.compute_duration(member, rules.base_days, now)



# Main Program
def main() -> None:
    """
    Main driver program that demonstrates the lending workflows.

    Demonstrated scenarios:
        - adding books and registering members of each kind
        - successful loans
        - rule violations
            * book unavailable
            * visitor cannot borrow
            * reference items cannot be withdrawn
            * strict policy with an overdue loan
        - switching policy
        - renewing and returning loans (with fines)
        - fine and popular book reports
        - universal search
    """
    print("\n=== Library Lending Demo ===\n")

    library = Library(policy=PolicyKind.STRICT)

    # 1. Add Books
    print("Adding books...")
    library.add_book("The Hobbit", "J.R.R. Tolkien", "111")
    library.add_book("The Silmarillion", "J.R.R. Tolkien", "222")
    library.add_book("Dune", "Frank Herbert", "333")
    library.add_book("Encyclopaedia Britannica", "Various", "444")

    # 2. Register Members
    print("Registering members...")
    library.register_member(MemberKind.REGULAR, 1, "Ana", "Lopez")
    library.register_member(MemberKind.VIP, 2, "Bruno", "Diaz")
    library.register_member(MemberKind.VISITOR, 3, "Carla", "Sosa")

    past = datetime.now() - timedelta(days=30)

    # 3. Successful Loans
    print("\nLending 111 to member 1 a month ago (now overdue)...")
    library.create_loan(1, "111", LoanKind.REGULAR, now=past)
    print("Lending 333 to member 2 today...")
    library.create_loan(2, "333", LoanKind.SHORT)

    # 4. Rule violations
    print("\nAttempting to borrow a book already on loan...")
    try:
        library.create_loan(2, "111", LoanKind.REGULAR)
    except BookUnavailableError as e:
        print("Expected violation:", e)

    print("\nAttempting a loan for a visitor...")
    try:
        library.create_loan(3, "222", LoanKind.REGULAR)
    except PolicyDeniedError as e:
        print("Expected violation:", e)

    print("\nAttempting to withdraw a reference book...")
    try:
        library.create_loan(2, "444", LoanKind.REFERENCE)
    except NotWithdrawableError as e:
        print("Expected violation:", e)

    print("\nStrict policy, member 1 has an overdue loan...")
    try:
        library.create_loan(1, "222", LoanKind.REGULAR)
    except PolicyDeniedError as e:
        print("Expected violation:", e)

    # 5. Switch Policy
    print("\nSwitching to flexible policy...")
    library.set_policy(PolicyKind.FLEXIBLE)
    loan = library.create_loan(1, "222", LoanKind.REGULAR)
    print(f"Loan granted for {loan.duration_days} days, due {loan.due_date:%Y-%m-%d}")

    # 6. Renewal
    print("\nRenewing 222 for member 1...")
    print("Would be due:", f"{library.renew_loan(1, '222'):%Y-%m-%d}")

    # 7. Reports
    print("\nFine report:")
    for row in library.fine_report():
        print(f"  {row.member_id} | {row.full_name} | {row.fine}")

    print("\nPopular books:")
    for row in library.popular_books_report():
        print(f"  {row.book.isbn} | {row.book.title} | {row.active_loans}")

    # 8. Returns
    print("\nReturning 111 late...")
    print("Fine:", library.return_loan(1, "111"))
    print("Returning 333 on time...")
    print("Fine:", library.return_loan(2, "333"))

    # 9. Search
    library.add_digital_resource("Tolkien lecture", "https://example.org/tolkien", "video")
    library.add_academic_article(
        "Myth in Middle-earth",
        ["R. Scholar"],
        "Journal of Inklings Studies",
        2011,
        ["tolkien", "mythology"],
        "On the mythic sources of the legendarium.",
    )
    print("\nSearching every system for 'Tolkien':")
    for result in library.search_all("Tolkien"):
        print(f"  [{result.source}] {result.kind}: {result.item.title}")

    print("\nSystems:", ", ".join(library.available_search_systems()))
    print(
        f"Books={library.total_books} Members={library.total_members} "
        f"ActiveLoans={library.active_loan_count} Overdue={library.overdue_loan_count()}"
    )

    print("\n=== Demo Completed ===\n")


if __name__ == "__main__":
    try:
        main()
    except LibraryError as e:
        logger.error("LibraryError bubbled to top-level | %s", e)
        raise
    except Exception as e:
        logger.exception("Unhandled fatal error | %s", e)
        raise
