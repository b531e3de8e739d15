"""
library_models.py

Users, catalog items and the per-category tables that drive them.

Categories are closed, single-letter codes taken straight from the input
files. Everything a category changes (borrow limit, overdue grace and the
lines of its detail block) is looked up in a table keyed by that code, so a
User or Item is a plain record plus an attribute bundle.
"""

from __future__ import annotations
import datetime
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

# Configuration
DATE_FORMAT = "%d/%m/%Y"
DATE_PATTERN = re.compile(r"\d{2}/\d{2}/\d{4}")

STUDENT = "S"
ACADEMIC_STAFF = "A"
GUEST = "G"

BOOK = "B"
MAGAZINE = "M"
DVD = "D"


@dataclass(frozen=True)
class CategoryPolicy:
    """Borrowing rules for one user category."""
    label: str
    max_borrows: int
    overdue_days: int


USER_POLICIES: Dict[str, CategoryPolicy] = {
    STUDENT: CategoryPolicy("Student", max_borrows=5, overdue_days=30),
    ACADEMIC_STAFF: CategoryPolicy("Academic staff", max_borrows=3, overdue_days=15),
    GUEST: CategoryPolicy("Guest", max_borrows=1, overdue_days=7),
}

ITEM_LABELS: Dict[str, str] = {
    BOOK: "Book",
    MAGAZINE: "Magazine",
    DVD: "DVD",
}


def format_date(value: datetime.date) -> str:
    return value.strftime(DATE_FORMAT)


def parse_date(value: str) -> datetime.date:
    """
    Parse a dd/mm/yyyy date string.

    Day and month must be two digits and no surrounding whitespace is allowed.
    Raises ValueError when the string does not match the format.
    """
    if not DATE_PATTERN.fullmatch(value):
        raise ValueError(f"date {value!r} does not match dd/mm/yyyy")
    return datetime.datetime.strptime(value, DATE_FORMAT).date()


@dataclass
class User:
    """
    A library user.

    Attributes:
        user_id: unique identifier from the users file.
        name: display name used in every report line.
        phone: contact number.
        category: one of STUDENT, ACADEMIC_STAFF or GUEST.
        attributes: category-specific fields (department, faculty, grade, title, occupation).
        penalty: accumulated unpaid penalty in dollars.
        has_paid_penalty: set once the user has paid; never cleared.
    """

    user_id: str
    name: str
    phone: str
    category: str
    attributes: Dict[str, object] = field(default_factory=dict)
    penalty: int = 0
    has_paid_penalty: bool = False

    @property
    def policy(self) -> CategoryPolicy:
        return USER_POLICIES[self.category]

    def can_borrow(self, current_count: int) -> bool:
        """True while the user holds fewer items than the category limit."""
        return current_count < self.policy.max_borrows

    def detail_lines(self) -> List[str]:
        header = f"------ User Information for {self.user_id} ------"
        body = USER_RENDERERS[self.category](self)
        return [header] + body + [f"Penalty: ${self.penalty}"]


@dataclass
class Item:
    """
    A catalog item (book, magazine or DVD).

    `borrowed_by` holds the borrowing user's id rather than the User itself;
    the registry that owns both resolves it.
    """

    item_id: str
    title: str
    category: str
    item_type: str
    attributes: Dict[str, object] = field(default_factory=dict)
    borrowed: bool = False
    borrowed_date: Optional[datetime.date] = None
    borrowed_by: Optional[str] = None

    def mark_borrowed(self, user_id: str, on_date: datetime.date) -> None:
        self.borrowed = True
        self.borrowed_by = user_id
        self.borrowed_date = on_date

    def mark_returned(self) -> None:
        self.borrowed = False
        self.borrowed_by = None
        self.borrowed_date = None

    def detail_lines(self, borrower_name: Optional[str] = None) -> List[str]:
        header = f"------ Item Information for {self.item_id} ------"
        status = f"ID: {self.item_id} Name: {self.title} "
        if self.borrowed and self.borrowed_date is not None:
            status += (f"Status: Borrowed Borrowed Date: {format_date(self.borrowed_date)}"
                       f" Borrowed by: {borrower_name or ''}")
        else:
            status += "Status: Available"
        return [header, status, ITEM_RENDERERS[self.category](self)]


# ---------------- Detail renderers ----------------
def _student_lines(user: User) -> List[str]:
    a = user.attributes
    return [f"Name: {user.name} Phone: {user.phone}",
            f"Faculty: {a['faculty']} Department: {a['department']} Grade: {a['grade']}th"]


def _staff_lines(user: User) -> List[str]:
    a = user.attributes
    return [f"Name: {a['title']} {user.name} Phone: {user.phone}",
            f"Faculty: {a['faculty']} Department: {a['department']}"]


def _guest_lines(user: User) -> List[str]:
    return [f"Name: {user.name} Phone: {user.phone}",
            f"Occupation: {user.attributes['occupation']}"]


USER_RENDERERS: Dict[str, Callable[[User], List[str]]] = {
    STUDENT: _student_lines,
    ACADEMIC_STAFF: _staff_lines,
    GUEST: _guest_lines,
}


def _book_line(item: Item) -> str:
    a = item.attributes
    return f"Author: {a['author']} Genre: {a['genre']}"


def _magazine_line(item: Item) -> str:
    a = item.attributes
    return f"Publisher: {a['publisher']} Category: {a['category']}"


def _dvd_line(item: Item) -> str:
    a = item.attributes
    return f"Director: {a['director']} Category: {a['category']} Runtime: {a['runtime']} min"


ITEM_RENDERERS: Dict[str, Callable[[Item], str]] = {
    BOOK: _book_line,
    MAGAZINE: _magazine_line,
    DVD: _dvd_line,
}
