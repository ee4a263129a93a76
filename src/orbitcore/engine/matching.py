"""Exact-title matching between calendar events and accounts."""

from typing import Iterable, Optional

from orbitcore.models import Account, CalendarMatch

AUDIT_TITLE_PREFIX = "Audit - "


def _dedupe(values: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    result = []
    for value in values:
        if value and value not in seen:
            seen.add(value)
            result.append(value)
    return result


def default_calendar_aliases(account: Account) -> list[str]:
    """Titles every account answers to: its name and the audit title."""
    name = account.name.strip()
    if not name:
        return []
    return [name, f"{AUDIT_TITLE_PREFIX}{name}"]


def resolve_account_calendar_aliases(account: Account) -> list[str]:
    """
    Return every calendar title that identifies the account.

    Defaults come first, then registered aliases in order, trimmed and
    without duplicates.
    """
    extras = account.calendar_match.aliases if account.calendar_match else []
    return _dedupe(default_calendar_aliases(account) + [alias.strip() for alias in extras])


def find_accounts_matching_calendar_title(accounts: Iterable[Account], title: str) -> list[Account]:
    """Return accounts with an alias exactly equal to the trimmed title."""
    normalized = title.strip()
    if not normalized:
        return []
    return [account for account in accounts if normalized in resolve_account_calendar_aliases(account)]


def build_account_calendar_match_update(account: Account, alias: str) -> Optional[CalendarMatch]:
    """
    Build the calendarMatch value after registering alias on the account.

    Returns None when the alias is blank or the account already answers to it.
    """
    normalized = alias.strip()
    if not normalized or normalized in resolve_account_calendar_aliases(account):
        return None
    existing = list(account.calendar_match.aliases) if account.calendar_match else []
    return CalendarMatch(mode="exact", aliases=existing + [normalized])
