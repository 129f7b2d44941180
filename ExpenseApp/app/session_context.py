# ExpenseApp/app/session_context.py
"""
Per-login state: who is signed in, whether they administer users and which
year the listings default to. Created at login, dropped at logout, carried
in the signed Flask session under a single key.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import List, Optional

from flask import session

import ExpenseApp.app.common as common

SESSION_KEY = "expense_session"


def available_years(today: Optional[date] = None) -> List[int]:
    """Current year down to FIRST_YEAR, newest first."""
    today = today or date.today()
    first = int(common.get_setting("FIRST_YEAR", 2024))
    return list(range(today.year, min(first, today.year) - 1, -1))


@dataclass
class SessionContext:
    username: str
    is_admin: bool
    selected_year: int
    started_at: str

    @classmethod
    def begin(cls, username: str, is_admin: bool, selected_year: Optional[int] = None) -> "SessionContext":
        years = available_years()
        if selected_year not in years:
            selected_year = years[0]
        ctx = cls(
            username=username,
            is_admin=is_admin,
            selected_year=selected_year,
            started_at=datetime.utcnow().isoformat(timespec="seconds"),
        )
        ctx.save()
        common.logger.info(f"Session started for {username} (year {selected_year})")
        return ctx

    @classmethod
    def current(cls) -> Optional["SessionContext"]:
        data = session.get(SESSION_KEY)
        if not data:
            return None
        return cls(**data)

    @classmethod
    def end(cls) -> None:
        data = session.pop(SESSION_KEY, None)
        if data:
            common.logger.info(f"Session ended for {data.get('username')}")

    def save(self) -> None:
        session[SESSION_KEY] = asdict(self)

    def select_year(self, year: int) -> None:
        if year not in available_years():
            raise ValueError(f"Year {year} not available")
        self.selected_year = year
        self.save()
