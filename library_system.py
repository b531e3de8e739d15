#!/usr/bin/env python3
"""
library_system.py
"""

from __future__ import annotations
import datetime
import logging
import pathlib
from typing import Dict, Iterable, List, Optional, Set, TextIO, Tuple

import pandas as pd

from library_loader import LoadError, load_items, load_users
from library_models import (ITEM_LABELS, USER_POLICIES, Item, User, format_date,
                            parse_date)

# Configuration
OVERDUE_PENALTY = 2
PENALTY_BLOCK_THRESHOLD = 6

# command name -> number of arguments it needs after the name
COMMAND_ARITY = {
    "borrow": 3,
    "return": 2,
    "pay": 1,
    "displayUsers": 0,
    "displayItems": 0,
}

logger = logging.getLogger("LibrarySystem")


def write_line(report: TextIO, line: str) -> None:
    report.write(line + "\n")


class LibrarySystem:
    """
    LibrarySystem holds the user roster and item catalog and replays commands against them.

    Users and items are kept in registries keyed by id. An item points at its
    borrower by user id and each user's borrowed-set is a list of item ids, so
    the two sides are only ever changed together by borrow_item/return_item.
    Every outcome, success or refusal, is a report line; nothing here raises
    for a rule violation.
    """

    def __init__(self,
                 overdue_penalty: int = OVERDUE_PENALTY,
                 penalty_threshold: int = PENALTY_BLOCK_THRESHOLD):
        """
        Initialize an empty LibrarySystem.

        Args:
            overdue_penalty: amount added per overdue held item at each borrow attempt.
            penalty_threshold: total penalty at which an unpaid user is refused.
        """
        self.overdue_penalty = int(overdue_penalty)
        self.penalty_threshold = int(penalty_threshold)

        self.users: Dict[str, User] = {}
        self.items: Dict[str, Item] = {}
        self.borrowed: Dict[str, List[str]] = {}
        self.penalty_blocked: Set[str] = set()

    # ---------------- Loading ----------------
    def add_user(self, user: User) -> bool:
        """
        Register a user and give them an empty borrowed-set.

        Returns False (and keeps the existing record) if the id is already taken.
        """
        if user.user_id in self.users:
            logger.warning("Duplicate user id %s ignored", user.user_id)
            return False
        self.users[user.user_id] = user
        self.borrowed[user.user_id] = []
        return True

    def add_item(self, item: Item) -> bool:
        """Add an item to the catalog. Returns False if the id is already taken."""
        if item.item_id in self.items:
            logger.warning("Duplicate item id %s ignored", item.item_id)
            return False
        self.items[item.item_id] = item
        return True

    def load_users_from_file(self, path, report: TextIO) -> None:
        """
        Load users from `path`.

        A file that cannot be read produces a report line and leaves the roster as it was.
        """
        try:
            users = load_users(path)
        except LoadError as exc:
            logger.error("Could not read users file: %s", exc)
            write_line(report, f"Error reading users file: {path}")
            return
        for user in users:
            self.add_user(user)

    def load_items_from_file(self, path, report: TextIO) -> None:
        """Load items from `path`, reporting (not raising) if the file cannot be read."""
        try:
            items = load_items(path)
        except LoadError as exc:
            logger.error("Could not read items file: %s", exc)
            write_line(report, f"Error reading items file: {path}")
            return
        for item in items:
            self.add_item(item)

    # ---------------- Command dispatch ----------------
    def process_command(self, line: str, report: TextIO) -> None:
        """
        Apply one command line and write its report line(s) to `report`.

        Unknown commands, and known commands missing arguments, are reported as
        `Unknown command: <line>` and otherwise ignored.
        """
        parts = line.split(",")
        name = parts[0]
        arity = COMMAND_ARITY.get(name)
        if arity is None or len(parts) - 1 < arity:
            write_line(report, f"Unknown command: {line}")
            return

        if name == "borrow":
            _, msg = self.borrow_item(parts[1], parts[2], parts[3])
            write_line(report, msg)
        elif name == "return":
            _, msg = self.return_item(parts[1], parts[2])
            write_line(report, msg)
        elif name == "pay":
            ok, msg = self.pay_penalty(parts[1])
            if ok:
                write_line(report, msg)
        elif name == "displayUsers":
            for out in self.display_users():
                write_line(report, out)
        elif name == "displayItems":
            for out in self.display_items():
                write_line(report, out)

    def process_commands(self, lines: Iterable[str], report: TextIO) -> int:
        """Apply every line in order. Returns the number of lines processed."""
        count = 0
        for line in lines:
            self.process_command(line.rstrip("\r\n"), report)
            count += 1
        logger.info("Processed %d commands", count)
        return count

    # ---------------- Core operations ----------------
    def compute_overdue_penalty(self, user_id: str, on_date: datetime.date) -> int:
        """
        Penalty owed for the user's currently held items as of `on_date`.

        Each held item kept longer than the user's category grace period adds
        one overdue increment. Nothing is stored; the caller decides.
        """
        user = self.users[user_id]
        grace = user.policy.overdue_days
        penalty = 0
        for item_id in self.borrowed[user_id]:
            item = self.items[item_id]
            if item.borrowed_date is None:
                continue
            days = (on_date - item.borrowed_date).days
            if days > grace:
                penalty += self.overdue_penalty
        logger.debug("Overdue penalty for %s on %s: %d", user_id, on_date, penalty)
        return penalty

    def borrow_item(self, user_id: str, item_id: str, date_str: str) -> Tuple[bool, str]:
        """
        Borrow an item for a user on the given dd/mm/yyyy date.

        Overdue penalties on the user's held items are assessed first; a total
        at or above the threshold refuses the borrow (and is kept on the user)
        unless the user has paid before. Then availability and the category
        borrow limit are checked. Returns (success, report line).
        """
        user = self.users.get(user_id)
        item = self.items.get(item_id)
        if user is None or item is None:
            return False, "Error: user or item not found!"

        try:
            on_date = parse_date(date_str)
        except ValueError:
            return False, f"Error: invalid date: {date_str}"

        held = self.borrowed[user_id]
        new_penalty = self.compute_overdue_penalty(user_id, on_date)
        total = user.penalty + new_penalty

        if total >= self.penalty_threshold and not user.has_paid_penalty:
            user.penalty = total
            self.penalty_blocked.add(user_id)
            logger.warning("%s blocked with penalty %d", user_id, total)
            return False, (f"{user.name} cannot borrow {item.title}, "
                           f"you must first pay the penalty amount! {total}$")

        user.penalty += new_penalty

        if item.borrowed:
            return False, f"{user.name} cannot borrow {item.title}, it is not available!"

        if not user.can_borrow(len(held)):
            return False, f"{user.name} cannot borrow {item.title}, since the borrow limit has been reached!"

        item.mark_borrowed(user_id, on_date)
        held.append(item_id)

        logger.info("Borrowed %s to %s on %s", item_id, user_id, format_date(on_date))
        return True, f"{user.name} successfully borrowed! {item.title}"

    def return_item(self, user_id: str, item_id: str) -> Tuple[bool, str]:
        """
        Process a return.

        The item must be in this user's borrowed-set. No penalty is assessed here.
        Returns (success, report line).
        """
        user = self.users.get(user_id)
        item = self.items.get(item_id)
        if user is None or item is None:
            return False, "Error: user or item not found!"

        held = self.borrowed[user_id]
        if item_id not in held:
            return False, "Error: item was not borrowed."

        item.mark_returned()
        held.remove(item_id)

        logger.info("Item %s returned by %s", item_id, user_id)
        return True, f"{user.name} successfully returned {item.title}"

    def pay_penalty(self, user_id: str) -> Tuple[bool, str]:
        """
        Clear a user's penalty in full and unblock them.

        Returns (False, "") for an unknown user; that case has no report line.
        """
        user = self.users.get(user_id)
        if user is None:
            logger.warning("Pay for unknown user %s ignored", user_id)
            return False, ""
        user.has_paid_penalty = True
        user.penalty = 0
        self.penalty_blocked.discard(user_id)
        logger.info("%s paid penalty", user_id)
        return True, f"{user.name} has paid penalty"

    # ---------------- Reports / Queries ----------------
    def display_users(self) -> List[str]:
        """
        Detail blocks for every user, sorted by id.

        The penalty line is dropped for users with no penalty. Blocks are
        separated by a blank line and the listing ends with one.
        """
        lines: List[str] = []
        for i, user_id in enumerate(sorted(self.users)):
            if i > 0:
                lines.append("")
            user = self.users[user_id]
            for line in user.detail_lines():
                if not line.startswith("Penalty:") or user.penalty > 0:
                    lines.append(line)
        lines.append("")
        return lines

    def display_items(self) -> List[str]:
        """Detail blocks for every item, sorted by id, blank-line separated with none trailing."""
        lines: List[str] = []
        for i, item_id in enumerate(sorted(self.items)):
            if i > 0:
                lines.append("")
            lines.extend(self.items[item_id].detail_lines(self.borrower_name(item_id)))
        return lines

    # ---------------- Utilities ----------------
    def borrower_name(self, item_id: str) -> Optional[str]:
        item = self.items.get(item_id)
        if item is None or item.borrowed_by is None:
            return None
        user = self.users.get(item.borrowed_by)
        return user.name if user is not None else None

    def is_blocked(self, user_id: str) -> bool:
        return user_id in self.penalty_blocked

    def export_report_users(self) -> pd.DataFrame:
        """
        Build a DataFrame summarizing users, their penalty state and current borrowed items.

        Returns columns: User ID, Name, Category, Penalty, Has Paid, Blocked,
        BorrowedCount, BorrowedItems (comma separated).
        """
        rows = []
        for user_id in sorted(self.users):
            user = self.users[user_id]
            held = self.borrowed.get(user_id, [])
            rows.append({
                "User ID": user_id,
                "Name": user.name,
                "Category": USER_POLICIES[user.category].label,
                "Penalty": user.penalty,
                "Has Paid": user.has_paid_penalty,
                "Blocked": self.is_blocked(user_id),
                "BorrowedCount": len(held),
                "BorrowedItems": ",".join(held),
            })
        cols = ["User ID", "Name", "Category", "Penalty", "Has Paid", "Blocked", "BorrowedCount", "BorrowedItems"]
        return pd.DataFrame(rows, columns=cols)

    def export_report_items(self) -> pd.DataFrame:
        """
        Produce a DataFrame suitable for reporting the catalog.

        Status is "Borrowed" or "Available"; borrower and date are blank for available items.
        """
        rows = []
        for item_id in sorted(self.items):
            item = self.items[item_id]
            rows.append({
                "Item ID": item_id,
                "Title": item.title,
                "Category": ITEM_LABELS[item.category],
                "Type": item.item_type,
                "Status": "Borrowed" if item.borrowed else "Available",
                "Borrowed By": item.borrowed_by or "",
                "Borrowed Date": format_date(item.borrowed_date) if item.borrowed_date else "",
            })
        cols = ["Item ID", "Title", "Category", "Type", "Status", "Borrowed By", "Borrowed Date"]
        return pd.DataFrame(rows, columns=cols)

    def save_snapshot(self, directory) -> None:
        """
        Write users.csv and items.csv snapshots of the current state into `directory`.

        The directory is created if needed.
        """
        out_dir = pathlib.Path(directory)
        out_dir.mkdir(parents=True, exist_ok=True)
        users_df = self.export_report_users()
        users_df.to_csv(out_dir / "users.csv", index=False)
        logger.info("Saved %d users to %s", len(users_df), out_dir / "users.csv")
        items_df = self.export_report_items()
        items_df.to_csv(out_dir / "items.csv", index=False)
        logger.info("Saved %d items to %s", len(items_df), out_dir / "items.csv")
