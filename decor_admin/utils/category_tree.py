"""Helpers for turning flat category lists into the two-level admin table."""

from __future__ import annotations

import enum
import logging
import math
import numbers
from decimal import Decimal
from typing import Any, Dict, Hashable, Iterable, Iterator, List, Optional, Set, TypedDict, Union


logger = logging.getLogger(__name__)

ACTIVE_LABEL = "Activa"
INACTIVE_LABEL = "Inactiva"
PUBLIC_LABEL = "Pública"
PRIVATE_LABEL = "Privada"


class HierarchyNode(TypedDict):
    """A root category together with its direct children."""

    category: Any
    is_parent: bool
    children: List[Any]


class CategoryRow(TypedDict):
    """One renderable table row with hierarchy metadata."""

    category: Any
    id: Hashable
    name: str
    handle: str
    depth: int
    is_parent: bool
    is_expanded: bool
    active_label: str
    visibility_label: str


class ExpansionStatus(enum.Enum):
    COLLAPSED = "collapsed"
    EXPANDED = "expanded"


class ExpansionState:
    """Set of root ids whose children are currently shown.

    One instance belongs to one rendering of the table. The list view keeps it
    in the ``expanded`` query argument, so opening the page afresh starts with
    every root collapsed.
    """

    def __init__(self, expanded_ids: Iterable[Hashable] = ()) -> None:
        self._expanded: Set[Hashable] = set(expanded_ids)

    @classmethod
    def from_query(cls, value: Optional[str]) -> "ExpansionState":
        """Parse a comma separated id list, skipping anything that is not an int."""

        ids: Set[int] = set()
        for chunk in (value or "").split(","):
            chunk = chunk.strip()
            if not chunk:
                continue
            try:
                ids.add(int(chunk))
            except ValueError:
                logger.debug("Ignoring invalid expanded id %r", chunk)
        return cls(ids)

    def to_query(self) -> str:
        return ",".join(str(item) for item in sorted(self._expanded, key=str))

    def is_expanded(self, category_id: Hashable) -> bool:
        return category_id in self._expanded

    def state_of(self, category_id: Hashable) -> ExpansionStatus:
        if self.is_expanded(category_id):
            return ExpansionStatus.EXPANDED
        return ExpansionStatus.COLLAPSED

    def toggle(self, category_id: Hashable) -> None:
        if category_id in self._expanded:
            self._expanded.remove(category_id)
        else:
            self._expanded.add(category_id)

    def toggled(self, category_id: Hashable) -> "ExpansionState":
        """Return a copy with ``category_id`` flipped, leaving ``self`` untouched."""

        state = ExpansionState(self._expanded)
        state.toggle(category_id)
        return state

    def __contains__(self, category_id: object) -> bool:
        return category_id in self._expanded

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self._expanded)

    def __len__(self) -> int:
        return len(self._expanded)


def active_label(is_active: Any) -> str:
    return ACTIVE_LABEL if is_active else INACTIVE_LABEL


def visibility_label(is_internal: Any) -> str:
    # internal categories are hidden from the storefront
    return PRIVATE_LABEL if is_internal else PUBLIC_LABEL


def category_rank(category: Any) -> Union[int, float, Decimal]:
    """Return the sort rank of ``category``, reading unusable values as ``0``.

    Integers and decimals are returned as they are so large ranks keep their
    exact order; strings and other reals are read as floats.
    """

    value = getattr(category, "rank", None)
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, numbers.Integral):
        return value
    if isinstance(value, Decimal):
        return value if value.is_finite() else 0
    if isinstance(value, numbers.Real):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            logger.debug("Category %r has non-numeric rank %r", _category_id(category), value)
            return 0
    else:
        return 0
    if math.isnan(number) or math.isinf(number):
        return 0
    return number


def build_category_hierarchy(categories: Iterable[Any]) -> List[HierarchyNode]:
    """Group categories into roots with their direct children.

    True roots are categories without a parent or whose parent is not in
    ``categories``; only they can take children. Children are categories
    whose parent is a true root. A category whose parent is not a true root
    (nested deeper, or caught in a parent cycle) is listed as a root too, but
    never gets children of its own. Roots and every group of children are
    sorted by ``rank``; equal ranks keep input order.
    """

    records = list(categories)
    known_ids = {_category_id(category) for category in records}

    top_level_ids: Set[Hashable] = set()
    for category in records:
        if not _resolves(_parent_id(category), known_ids):
            top_level_ids.add(_category_id(category))

    roots: List[Any] = []
    children_by_parent: Dict[Hashable, List[Any]] = {}
    for category in records:
        parent_id = _parent_id(category)
        if not _resolves(parent_id, known_ids):
            if parent_id:
                logger.warning(
                    "Category %r points to missing parent %r; listing it as a root",
                    _category_id(category),
                    parent_id,
                )
            roots.append(category)
        elif parent_id in top_level_ids:
            children_by_parent.setdefault(parent_id, []).append(category)
        else:
            logger.warning(
                "Category %r is nested below child %r; listing it as a root",
                _category_id(category),
                parent_id,
            )
            roots.append(category)

    for group in children_by_parent.values():
        group.sort(key=category_rank)
    roots.sort(key=category_rank)

    nodes: List[HierarchyNode] = []
    for category in roots:
        children = children_by_parent.get(_category_id(category), [])
        nodes.append(
            HierarchyNode(category=category, is_parent=bool(children), children=children)
        )
    return nodes


def build_category_rows(
    nodes: Iterable[HierarchyNode], expansion: ExpansionState
) -> List[CategoryRow]:
    """Flatten hierarchy nodes into table rows, showing children of expanded roots."""

    rows: List[CategoryRow] = []
    for node in nodes:
        category = node["category"]
        expanded = node["is_parent"] and expansion.is_expanded(_category_id(category))
        rows.append(_make_row(category, depth=0, is_parent=node["is_parent"], is_expanded=expanded))
        if expanded:
            for child in node["children"]:
                rows.append(_make_row(child, depth=1, is_parent=False, is_expanded=False))
    return rows


def _make_row(category: Any, depth: int, is_parent: bool, is_expanded: bool) -> CategoryRow:
    return CategoryRow(
        category=category,
        id=_category_id(category),
        name=getattr(category, "name", None) or "",
        handle=getattr(category, "handle", None) or "",
        depth=depth,
        is_parent=is_parent,
        is_expanded=is_expanded,
        active_label=active_label(getattr(category, "is_active", False)),
        visibility_label=visibility_label(getattr(category, "is_internal", False)),
    )


def _category_id(category: Any) -> Hashable:
    return getattr(category, "id", None)


def _parent_id(category: Any) -> Optional[Hashable]:
    return getattr(category, "parent_category_id", None)


def _resolves(parent_id: Optional[Hashable], known_ids: Set[Hashable]) -> bool:
    if not parent_id:
        return False
    try:
        return parent_id in known_ids
    except TypeError:
        return False
