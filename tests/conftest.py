import sys
import pathlib
# Add project root to sys.path so imports from repo root work when running the tests
sys.path.insert(0, str(pathlib.Path(__file__).resolve().parent.parent))

import pytest

from library_models import ACADEMIC_STAFF, BOOK, DVD, GUEST, MAGAZINE, STUDENT, Item, User
from library_system import LibrarySystem

USERS_TXT = """\
S,Alice Smith,S1,5551111,Computer Science,Engineering,3
A,Bob Jones,A1,5552222,Physics,Science,Prof.
G,Carol White,G1,5553333,Engineer
"""

ITEMS_TXT = """\
B,B1,Dune,Frank Herbert,SciFi,normal
B,B2,Emma,Jane Austen,Classic,normal
M,M1,Wired,Conde Nast,Tech,normal
D,D1,Alien,Ridley Scott,Horror,117 min,limited
"""


@pytest.fixture
def users_file(tmp_path):
    path = tmp_path / "users.txt"
    path.write_text(USERS_TXT, encoding="utf-8")
    return path


@pytest.fixture
def items_file(tmp_path):
    path = tmp_path / "items.txt"
    path.write_text(ITEMS_TXT, encoding="utf-8")
    return path


def make_student(user_id="S1", name="Alice Smith"):
    return User(user_id, name, "5551111", STUDENT,
                {"department": "Computer Science", "faculty": "Engineering", "grade": 3})


def make_staff(user_id="A1", name="Bob Jones"):
    return User(user_id, name, "5552222", ACADEMIC_STAFF,
                {"department": "Physics", "faculty": "Science", "title": "Prof."})


def make_guest(user_id="G1", name="Carol White"):
    return User(user_id, name, "5553333", GUEST, {"occupation": "Engineer"})


def make_book(item_id, title="Dune"):
    return Item(item_id, title, BOOK, "normal", {"author": "Frank Herbert", "genre": "SciFi"})


@pytest.fixture
def lib():
    """A system with one user of each category, six books, a magazine and a DVD."""
    system = LibrarySystem()
    for user in (make_student(), make_staff(), make_guest()):
        system.add_user(user)
    titles = ["Dune", "Emma", "Ulysses", "Beloved", "Hamlet", "Walden"]
    for n, title in enumerate(titles, start=1):
        system.add_item(make_book(f"B{n}", title))
    system.add_item(Item("M1", "Wired", MAGAZINE, "normal", {"publisher": "Conde Nast", "category": "Tech"}))
    system.add_item(Item("D1", "Alien", DVD, "limited",
                         {"director": "Ridley Scott", "category": "Horror", "runtime": 117}))
    return system


def assert_borrow_consistent(system):
    """Every borrowed item sits in exactly its borrower's set, and nothing else does."""
    holders = {}
    for user_id, held in system.borrowed.items():
        for item_id in held:
            assert item_id not in holders, f"{item_id} held by {holders[item_id]} and {user_id}"
            holders[item_id] = user_id
    for item_id, item in system.items.items():
        if item.borrowed:
            assert holders.get(item_id) == item.borrowed_by
        else:
            assert item_id not in holders
            assert item.borrowed_by is None and item.borrowed_date is None
