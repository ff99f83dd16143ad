from __future__ import annotations

from sqlalchemy import select

from app.crud.employees import list_employees, scope_filter_clause
from app.models.employees import Employee
from app.models.org_assignments import OrgUserAssignment
from app.services.org_scope_service import OrgScopeIds
from app.services.scope_filter import (
    EXCLUDE_ALL,
    UNRESTRICTED,
    ScopeFilterKind,
    build_scope_filter,
)
from app.services.scope_mode import ScopeMode


def _emp(idx: int, email: str, last: str, manager_id: str | None = None) -> Employee:
    return Employee(
        id=f"e{idx}",
        user_email=email,
        first_name=f"First{idx}",
        last_name=last,
        manager_id=manager_id,
        is_active=True,
    )


def _seed_population(db_session):
    db_session.add_all(
        [
            _emp(1, "caller@example.com", "Adams"),
            _emp(2, "div.peer@example.com", "Baker", manager_id="e1"),
            _emp(3, "dep.peer@example.com", "Clark", manager_id="e1"),
            _emp(4, "loc.peer@example.com", "Davis"),
            _emp(5, "stranger@example.com", "Evans"),
        ]
    )
    db_session.add_all(
        [
            OrgUserAssignment(user_key="caller@example.com", division_id="d1"),
            OrgUserAssignment(user_key="div.peer@example.com", division_id="d1"),
            OrgUserAssignment(user_key="dep.peer@example.com", department_id="dep1"),
            OrgUserAssignment(user_key="loc.peer@example.com", location_id="l1"),
            OrgUserAssignment(
                user_key="stranger@example.com",
                division_id="d9",
                department_id="dep9",
                location_id="l9",
            ),
        ]
    )
    db_session.commit()


def _visible_emails(db_session, scope_filter) -> set[str]:
    stmt = select(Employee.user_email)
    clause = scope_filter_clause(scope_filter)
    if clause is not None:
        stmt = stmt.where(clause)
    return set(db_session.execute(stmt).scalars().all())


def test_filter_per_mode():
    ids = OrgScopeIds(division_ids=frozenset({"d1"}))

    assert build_scope_filter(ScopeMode.NONE, "caller@example.com", ids) == EXCLUDE_ALL
    assert build_scope_filter(ScopeMode.ANY, "caller@example.com", ids) == UNRESTRICTED

    own = build_scope_filter(ScopeMode.OWN, "Caller@Example.com", ids)
    assert own.kind is ScopeFilterKind.OWN
    assert own.caller_key == "caller@example.com"

    ldd = build_scope_filter(ScopeMode.LDD, "caller@example.com", ids)
    assert ldd.kind is ScopeFilterKind.OWN_OR_LDD
    assert ldd.scope_ids.field_to_ids() == {"division_id": frozenset({"d1"})}


def test_ldd_with_no_scope_ids_equals_own():
    own = build_scope_filter(ScopeMode.OWN, "caller@example.com")
    assert build_scope_filter(ScopeMode.LDD, "caller@example.com", OrgScopeIds()) == own
    assert build_scope_filter(ScopeMode.LDD, "caller@example.com", None) == own


def test_missing_caller_key_excludes_everything():
    assert build_scope_filter(ScopeMode.OWN, "", None) == EXCLUDE_ALL
    assert build_scope_filter(
        ScopeMode.LDD, None, OrgScopeIds(division_ids=frozenset({"d1"}))
    ) == EXCLUDE_ALL


def test_filter_flags():
    assert UNRESTRICTED.is_unrestricted
    assert not UNRESTRICTED.excludes_all
    assert EXCLUDE_ALL.excludes_all
    own = build_scope_filter(ScopeMode.OWN, "caller@example.com")
    assert not own.is_unrestricted
    assert not own.excludes_all


def test_sql_rendering_matches_modes(db_session):
    _seed_population(db_session)
    everyone = {
        "caller@example.com",
        "div.peer@example.com",
        "dep.peer@example.com",
        "loc.peer@example.com",
        "stranger@example.com",
    }

    assert _visible_emails(db_session, EXCLUDE_ALL) == set()
    assert _visible_emails(db_session, UNRESTRICTED) == everyone
    assert _visible_emails(
        db_session, build_scope_filter(ScopeMode.OWN, "CALLER@example.com")
    ) == {"caller@example.com"}

    division_only = build_scope_filter(
        ScopeMode.LDD,
        "caller@example.com",
        OrgScopeIds(division_ids=frozenset({"d1"})),
    )
    assert _visible_emails(db_session, division_only) == {
        "caller@example.com",
        "div.peer@example.com",
    }

    all_categories = build_scope_filter(
        ScopeMode.LDD,
        "caller@example.com",
        OrgScopeIds(
            division_ids=frozenset({"d1"}),
            department_ids=frozenset({"dep1"}),
            location_ids=frozenset({"l1"}),
        ),
    )
    assert _visible_emails(db_session, all_categories) == everyone - {"stranger@example.com"}


def test_scope_filter_composes_with_search_and_paging(db_session):
    _seed_population(db_session)
    scope = build_scope_filter(
        ScopeMode.LDD,
        "caller@example.com",
        OrgScopeIds(division_ids=frozenset({"d1"}), location_ids=frozenset({"l1"})),
    )

    items, pagination = list_employees(db_session, scope_filter=scope, page=1, page_size=2)
    assert pagination == {"page": 1, "page_size": 2, "total": 3, "total_pages": 2}
    assert [item["last_name"] for item in items] == ["Adams", "Baker"]

    items, pagination = list_employees(db_session, scope_filter=scope, search="davis")
    assert pagination["total"] == 1
    assert items[0]["user_email"] == "loc.peer@example.com"
    assert items[0]["location_id"] == "l1"

    # Out-of-scope rows stay hidden even when the search matches them.
    items, pagination = list_employees(db_session, scope_filter=scope, search="evans")
    assert pagination["total"] == 0
    assert items == []


def test_manager_filter_skips_self_managed_row(db_session):
    _seed_population(db_session)
    db_session.add(_emp(6, "loop@example.com", "Fisher", manager_id="e6"))
    db_session.commit()

    items, _ = list_employees(db_session, scope_filter=UNRESTRICTED, manager_id="e1")
    assert {item["id"] for item in items} == {"e2", "e3"}

    items, _ = list_employees(db_session, scope_filter=UNRESTRICTED, manager_id="e6")
    assert items == []


def test_sorting_desc(db_session):
    _seed_population(db_session)
    items, _ = list_employees(
        db_session, scope_filter=UNRESTRICTED, sort_by="lastName", sort_order="desc"
    )
    assert [item["last_name"] for item in items][:2] == ["Evans", "Davis"]


def test_search_treats_wildcards_literally(db_session):
    db_session.add_all(
        [
            _emp(7, "jo_ann@example.com", "Gray"),
            _emp(8, "joxann@example.com", "Hall"),
            _emp(9, "pct@example.com", "100%Hill"),
        ]
    )
    db_session.commit()

    items, _ = list_employees(db_session, scope_filter=UNRESTRICTED, search="o_a")
    assert [item["user_email"] for item in items] == ["jo_ann@example.com"]

    items, _ = list_employees(db_session, scope_filter=UNRESTRICTED, search="0%h")
    assert [item["user_email"] for item in items] == ["pct@example.com"]

    items, _ = list_employees(db_session, scope_filter=UNRESTRICTED, search="%")
    assert [item["user_email"] for item in items] == ["pct@example.com"]
