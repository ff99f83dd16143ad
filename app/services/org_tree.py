"""
Manager/report hierarchy over flat employee rows.

The manager reference is a plain id, so the parent/child adjacency is built in
a separate index here. Rows are whatever the caller's scope filter let
through: a manager outside that set simply makes the employee a root, and two
callers can legitimately see different forests over the same data.

Bad data never raises:
- a self-managed row (manager_id == id) becomes a root
- a dangling manager id becomes a root
- a longer cycle (A -> B -> A) would leave every member unreachable, so its
  first member in input order is promoted to root; its manager still lists it,
  as a copy without children, so every children list matches the manager ids
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from app.core.flow_logging import flow_info

logger = logging.getLogger(__name__)


@dataclass
class OrgTreeNode:
    id: str
    manager_id: str | None = None
    user_email: str = ""
    first_name: str = ""
    last_name: str = ""
    preferred_name: str | None = None
    profile_picture_url: str | None = None
    position_name: str | None = None
    is_active: bool = True
    children: list["OrgTreeNode"] = field(default_factory=list)

    def detached(self) -> "OrgTreeNode":
        """Copy without children."""
        return replace(self, children=[])

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "managerId": self.manager_id,
            "userEmail": self.user_email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "preferredName": self.preferred_name,
            "profilePictureUrl": self.profile_picture_url,
            "positionName": self.position_name,
            "isActive": self.is_active,
            "children": [child.to_dict() for child in self.children],
        }


@dataclass
class DirectReportsResult:
    direct_reports: list[OrgTreeNode] = field(default_factory=list)
    org_tree: list[OrgTreeNode] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "directReports": [node.to_dict() for node in self.direct_reports],
            "orgTree": [node.to_dict() for node in self.org_tree],
        }


def _field(row: Any, name: str) -> Any:
    if isinstance(row, Mapping):
        return row.get(name)
    return getattr(row, name, None)


def _text_or_none(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def node_from_row(row: Any) -> OrgTreeNode:
    """Build a childless node from a mapping or an attribute-style row."""
    active = _field(row, "is_active")
    return OrgTreeNode(
        id=str(_field(row, "id")),
        manager_id=_text_or_none(_field(row, "manager_id")),
        user_email=str(_field(row, "user_email") or ""),
        first_name=str(_field(row, "first_name") or ""),
        last_name=str(_field(row, "last_name") or ""),
        preferred_name=_text_or_none(_field(row, "preferred_name")),
        profile_picture_url=_text_or_none(_field(row, "profile_picture_url")),
        position_name=_text_or_none(_field(row, "position_name")),
        is_active=True if active is None else bool(active),
    )


def _index_rows(rows: Iterable[Any]) -> dict[str, OrgTreeNode]:
    nodes: dict[str, OrgTreeNode] = {}
    for row in rows:
        node = node_from_row(row)
        if node.id in nodes:
            flow_info(logger, "org_tree_duplicate_id id=%s", node.id, category="org_tree")
            continue
        nodes[node.id] = node
    return nodes


def _parent_id(nodes: Mapping[str, OrgTreeNode], node: OrgTreeNode) -> str | None:
    manager_id = node.manager_id
    if not manager_id or manager_id == node.id or manager_id not in nodes:
        return None
    return manager_id


def _find_cycles(nodes: Mapping[str, OrgTreeNode]) -> list[list[str]]:
    """Manager cycles of two or more rows, members in walk order."""
    # Each node has at most one parent, so every walk ends at a root or loops.
    state: dict[str, int] = {}
    cycles: list[list[str]] = []
    for start in nodes:
        if start in state:
            continue
        path: list[str] = []
        position: dict[str, int] = {}
        current: str | None = start
        while current is not None and current not in state:
            state[current] = 1
            position[current] = len(path)
            path.append(current)
            current = _parent_id(nodes, nodes[current])
        if current is not None and current in position:
            cycles.append(path[position[current]:])
        for node_id in path:
            state[node_id] = 2
    return cycles


def _link(nodes: dict[str, OrgTreeNode]) -> list[OrgTreeNode]:
    roots: list[OrgTreeNode] = []
    for node in nodes.values():
        parent_id = _parent_id(nodes, node)
        if parent_id is None:
            if node.manager_id == node.id:
                flow_info(logger, "org_tree_self_manager id=%s", node.id, category="org_tree")
            elif node.manager_id:
                flow_info(
                    logger,
                    "org_tree_manager_outside_rows id=%s manager_id=%s",
                    node.id,
                    node.manager_id,
                    category="org_tree",
                )
            roots.append(node)
            continue
        nodes[parent_id].children.append(node)

    order = {node_id: idx for idx, node_id in enumerate(nodes)}
    for cycle in _find_cycles(nodes):
        promoted_id = min(cycle, key=order.__getitem__)
        promoted = nodes[promoted_id]
        parent = nodes[promoted.manager_id]
        # The manager keeps a childless copy; the real node becomes a root.
        parent.children = [
            promoted.detached() if child is promoted else child for child in parent.children
        ]
        flow_info(
            logger,
            "org_tree_cycle_promoted id=%s cycle=%s",
            promoted_id,
            cycle,
            category="org_tree",
        )
        roots.append(promoted)
    return roots


def build_forest(rows: Iterable[Any]) -> list[OrgTreeNode]:
    """All roots over `rows` with their full recursive children."""
    nodes = _index_rows(rows)
    return _link(nodes)


def direct_reports(
    rows: Iterable[Any],
    root_id: Any,
    *,
    root_identity_key: str | None = None,
) -> DirectReportsResult:
    """
    One level of reports under `root_id` plus the root's subtree.

    An unknown root (for example filtered out by scope) yields an empty
    result. Reports equal to the root by id or identity key are dropped and
    each report is returned without children.
    """
    nodes = _index_rows(rows)
    _link(nodes)

    root = nodes.get(str(root_id)) if root_id is not None else None
    if root is None:
        return DirectReportsResult()

    root_key = (root_identity_key or root.user_email or "").strip().lower()
    reports: list[OrgTreeNode] = []
    for child in root.children:
        if child.id == root.id:
            continue
        child_key = (child.user_email or "").strip().lower()
        if root_key and child_key and child_key == root_key:
            continue
        reports.append(child.detached())

    return DirectReportsResult(direct_reports=reports, org_tree=[root])
