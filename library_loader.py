"""
library_loader.py

Read the users and items flat files into User / Item records.

Both files are headerless, comma separated and unquoted; the first field is a
one-letter type code that decides how the remaining fields are laid out.
Rows are read with pandas (every column as a string) and then mapped through
the per-type layouts below.
"""

from __future__ import annotations
import csv
import logging
from typing import Dict, List, Optional, Tuple

import pandas as pd

from library_models import (ACADEMIC_STAFF, BOOK, DVD, GUEST, MAGAZINE, STUDENT,
                            Item, User)

# Widest row layout (students, staff and DVDs) plus the type code
MAX_FIELDS = 7

USER_LAYOUTS: Dict[str, Tuple[str, ...]] = {
    STUDENT: ("name", "user_id", "phone", "department", "faculty", "grade"),
    ACADEMIC_STAFF: ("name", "user_id", "phone", "department", "faculty", "title"),
    GUEST: ("name", "user_id", "phone", "occupation"),
}

ITEM_LAYOUTS: Dict[str, Tuple[str, ...]] = {
    BOOK: ("item_id", "title", "author", "genre", "item_type"),
    MAGAZINE: ("item_id", "title", "publisher", "category", "item_type"),
    DVD: ("item_id", "title", "director", "category", "runtime", "item_type"),
}

logger = logging.getLogger("LibrarySystem")


class LoadError(Exception):
    """Raised when an input file cannot be opened or parsed at all."""


def read_records(path) -> pd.DataFrame:
    """
    Load a headerless comma-separated file into a DataFrame of strings.

    Columns are numbered 0..MAX_FIELDS-1 and short rows are padded with empty
    strings. Bytes that are not valid UTF-8 are replaced rather than failing
    the whole file. Blank lines are dropped.

    Raises:
        LoadError: if the file is missing, unreadable or not parseable.
    """
    try:
        return pd.read_csv(path, header=None, names=list(range(MAX_FIELDS)), dtype=str,
                           sep=",", quoting=csv.QUOTE_NONE, keep_default_na=False,
                           skip_blank_lines=True, index_col=False, on_bad_lines="warn",
                           encoding="utf-8", encoding_errors="replace").fillna("")
    except pd.errors.EmptyDataError:
        return pd.DataFrame(columns=list(range(MAX_FIELDS)))
    except (OSError, UnicodeDecodeError, pd.errors.ParserError) as exc:
        raise LoadError(f"{path}: {exc}") from exc


def _split_row(row: pd.Series, layouts: Dict[str, Tuple[str, ...]], kind: str) -> Optional[Tuple[str, Dict[str, str]]]:
    """
    Return (type code, named fields) for a row, or None if it must be skipped.

    Padding and trailing empty fields look the same once loaded, so a row is
    short when nothing at or after its last layout position is filled in.
    Empty fields before that position are kept as empty strings.
    """
    code = row[0]
    layout = layouts.get(code)
    if layout is None:
        logger.warning("Skipping %s row with unknown type %r", kind, code)
        return None
    values = row.tolist()
    if not any(values[len(layout):]):
        logger.warning("Skipping %s row with missing fields: %s", kind, ",".join(v for v in values if v))
        return None
    return code, dict(zip(layout, values[1:len(layout) + 1]))


def build_user(code: str, fields: Dict[str, str]) -> User:
    attributes: Dict[str, object] = {k: v for k, v in fields.items() if k not in ("name", "user_id", "phone")}
    if code == STUDENT:
        attributes["grade"] = int(attributes["grade"])
    return User(user_id=fields["user_id"], name=fields["name"], phone=fields["phone"],
                category=code, attributes=attributes)


def build_item(code: str, fields: Dict[str, str]) -> Item:
    attributes: Dict[str, object] = {k: v for k, v in fields.items() if k not in ("item_id", "title", "item_type")}
    if code == DVD:
        # runtime is written as e.g. "120 min"
        attributes["runtime"] = int(str(attributes["runtime"]).replace(" min", ""))
    return Item(item_id=fields["item_id"], title=fields["title"], category=code,
                item_type=fields["item_type"], attributes=attributes)


def load_users(path) -> List[User]:
    """
    Parse the users file.

    Rows with an unknown type code, missing fields, an empty id or a
    non-numeric grade are logged and skipped.
    """
    df = read_records(path)
    users: List[User] = []
    for _, row in df.iterrows():
        parsed = _split_row(row, USER_LAYOUTS, "user")
        if parsed is None:
            continue
        code, fields = parsed
        if not fields["user_id"]:
            logger.warning("Skipping user row without an id: %s", fields)
            continue
        try:
            users.append(build_user(code, fields))
        except ValueError:
            logger.warning("Skipping user %s: invalid grade %r", fields["user_id"], fields.get("grade"))
    logger.info("Loaded %d users from %s", len(users), path)
    return users


def load_items(path) -> List[Item]:
    """
    Parse the items file.

    Same skipping rules as load_users; a DVD runtime that is not a number
    of minutes also skips the row.
    """
    df = read_records(path)
    items: List[Item] = []
    for _, row in df.iterrows():
        parsed = _split_row(row, ITEM_LAYOUTS, "item")
        if parsed is None:
            continue
        code, fields = parsed
        if not fields["item_id"]:
            logger.warning("Skipping item row without an id: %s", fields)
            continue
        try:
            items.append(build_item(code, fields))
        except ValueError:
            logger.warning("Skipping item %s: invalid runtime %r", fields["item_id"], fields.get("runtime"))
    logger.info("Loaded %d items from %s", len(items), path)
    return items
