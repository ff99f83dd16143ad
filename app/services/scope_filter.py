from __future__ import annotations

import enum
from dataclasses import dataclass, field

from app.services.org_scope_service import OrgScopeIds
from app.services.scope_mode import ScopeMode


class ScopeFilterKind(str, enum.Enum):
    EXCLUDE_ALL = "exclude_all"
    OWN = "own"
    OWN_OR_LDD = "own_or_ldd"
    UNRESTRICTED = "unrestricted"


@dataclass(frozen=True)
class ScopeFilter:
    """
    Declarative row filter for employee listings.

    The record store renders it into its own query language and ANDs it with
    search, manager and paging clauses. `scope_ids` only carries the
    categories that contribute a sub-condition.
    """

    kind: ScopeFilterKind
    caller_key: str | None = None
    scope_ids: OrgScopeIds = field(default_factory=OrgScopeIds)

    @property
    def is_unrestricted(self) -> bool:
        return self.kind is ScopeFilterKind.UNRESTRICTED

    @property
    def excludes_all(self) -> bool:
        return self.kind is ScopeFilterKind.EXCLUDE_ALL


EXCLUDE_ALL = ScopeFilter(kind=ScopeFilterKind.EXCLUDE_ALL)
UNRESTRICTED = ScopeFilter(kind=ScopeFilterKind.UNRESTRICTED)


def _normalize_key(value: str | None) -> str | None:
    text = (value or "").strip().lower()
    return text or None


def own_filter(caller_key: str | None) -> ScopeFilter:
    key = _normalize_key(caller_key)
    if not key:
        return EXCLUDE_ALL
    return ScopeFilter(kind=ScopeFilterKind.OWN, caller_key=key)


def build_scope_filter(
    mode: ScopeMode,
    caller_key: str | None,
    scope_ids: OrgScopeIds | None = None,
) -> ScopeFilter:
    """
    Translate a resolved scope mode into a listing filter.

    - none: matches nothing
    - own:  the caller's own identity key
    - ldd:  own, or any identity holding an assignment that shares a division,
            department or location id with the caller; categories with no ids
            are left out, and no ids at all degrades to own
    - any:  no filter
    """
    mode = ScopeMode(mode)
    if mode is ScopeMode.NONE:
        return EXCLUDE_ALL
    if mode is ScopeMode.ANY:
        return UNRESTRICTED

    own = own_filter(caller_key)
    if mode is ScopeMode.OWN or own.excludes_all:
        return own

    ids = scope_ids or OrgScopeIds()
    if not ids.has_any_scope:
        return own
    return ScopeFilter(
        kind=ScopeFilterKind.OWN_OR_LDD,
        caller_key=own.caller_key,
        scope_ids=ids,
    )
