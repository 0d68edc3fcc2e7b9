"""Core pipeline logic: project roster rows, filter them and aggregate.

This module turns parsed CSV rows into the manager -> location hierarchy
shown as a treemap.  It is a chain of pure functions:

* :func:`project_rows` applies the column mapping to every row and builds
  the employee frame.
* :func:`derive_filter_options` lists the values offered by the facet
  filters.
* :func:`filter_employees` combines drill-down, facet and "different
  campus" constraints.
* :func:`aggregate` folds the filtered employees into
  :class:`HierarchyNode` objects.

Every step is re-run in full whenever an upstream input changes; nothing
here caches or mutates its inputs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Mapping, Optional, Sequence

import logging
import pandas as pd

from .config import EMPLOYEE_COLUMNS, PATH_SEP, TARGET_FIELDS, UNKNOWN_LOCATION
from .csv_parser import RawRow
from .errors import ProcessingError

# Module-level logger
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FilterOptions:
    levels: List[str] = field(default_factory=list)
    employee_types: List[str] = field(default_factory=list)
    team_projects: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class FilterState:
    """Currently active constraints.

    Empty facet sets mean "no constraint".  ``drill_location`` is only
    honoured together with ``drill_manager``.
    """

    level: FrozenSet[str] = frozenset()
    employee_type: FrozenSet[str] = frozenset()
    team_project: FrozenSet[str] = frozenset()
    drill_manager: Optional[str] = None
    drill_location: Optional[str] = None
    different_campus_only: bool = False

    @property
    def is_drilled_down(self) -> bool:
        return self.drill_manager is not None


@dataclass(frozen=True)
class HierarchyNode:
    kind: str  # "manager" or "location"
    name: str
    count: int
    path: str
    children: tuple = ()


# ---------------------------------------------------------------------------
# Projection
# ---------------------------------------------------------------------------


def empty_employees() -> pd.DataFrame:
    return pd.DataFrame(columns=EMPLOYEE_COLUMNS)


def project_rows(
    rows: Sequence[RawRow], mapping: Mapping[str, Optional[str]]
) -> pd.DataFrame:
    """Apply the column mapping to every parsed row.

    Parameters
    ----------
    rows : Sequence[RawRow]
        Parsed CSV rows, header -> cell value.
    mapping : Mapping[str, Optional[str]]
        Target field -> CSV header, or ``None`` when unmapped.

    Returns
    -------
    pd.DataFrame
        One row per input row with columns ``id``, the target fields and
        ``original_row``.  ``id`` is the position in ``rows`` and is also
        the frame index.  Unmapped fields and headers missing from a row
        become ``""``.  ``original_row`` holds the input dicts themselves,
        not copies.
    """
    records = []
    for index, row in enumerate(rows):
        record = {"id": index}
        for target in TARGET_FIELDS:
            header = mapping.get(target)
            record[target] = (row.get(header) or "") if header else ""
        record["original_row"] = row
        records.append(record)

    if not records:
        return empty_employees()
    return pd.DataFrame.from_records(records, columns=EMPLOYEE_COLUMNS)


# ---------------------------------------------------------------------------
# Filter options
# ---------------------------------------------------------------------------


def derive_options(employees: pd.DataFrame, column: str) -> List[str]:
    """Sorted distinct non-empty trimmed values of ``column``."""
    if employees.empty:
        return []
    values = employees[column].fillna("").astype(str).str.strip()
    return sorted(set(values[values != ""]))


def derive_filter_options(employees: pd.DataFrame) -> FilterOptions:
    return FilterOptions(
        levels=derive_options(employees, "level"),
        employee_types=derive_options(employees, "employee_type"),
        team_projects=derive_options(employees, "team_project"),
    )


# ---------------------------------------------------------------------------
# Filtering
# ---------------------------------------------------------------------------


def build_manager_index(
    employees: pd.DataFrame, mapping: Mapping[str, Optional[str]]
) -> pd.Series:
    """Map each username to the location of that employee's own row.

    Both values are read from ``original_row`` through the mapped username
    and location columns.  When a username occurs more than once the first
    row wins; blank usernames are not indexed.  Returns an empty Series if
    either column is unmapped.
    """
    username_col = mapping.get("username")
    location_col = mapping.get("location")
    if employees.empty or not username_col or not location_col:
        return pd.Series(dtype=object)

    originals = employees["original_row"]
    usernames = originals.map(lambda row: row.get(username_col, ""))
    locations = originals.map(lambda row: row.get(location_col, ""))
    index = pd.Series(locations.to_numpy(), index=usernames.to_numpy(), dtype=object)
    index = index[index.index != ""]
    return index[~index.index.duplicated(keep="first")]


def different_campus_mask(
    employees: pd.DataFrame, manager_index: pd.Series
) -> pd.Series:
    """True where the employee's manager sits elsewhere or is unknown."""
    manager_locations = employees["manager"].map(manager_index)
    return manager_locations.isna() | (manager_locations != employees["location"])


def filter_employees(
    employees: pd.DataFrame,
    filters: FilterState,
    mapping: Mapping[str, Optional[str]],
    manager_index: Optional[pd.Series] = None,
) -> pd.DataFrame:
    """Return the employees that satisfy every active constraint.

    Parameters
    ----------
    employees : pd.DataFrame
        The full projected employee frame (never a previously filtered one;
        the different-campus lookup needs every row).
    filters : FilterState
        Active drill-down, facet and campus constraints.  All are combined
        with AND.
    mapping : Mapping[str, Optional[str]]
        The column mapping used for the projection.  The team/project facet
        is ignored while ``team_project`` is unmapped, and the campus check
        needs both ``username`` and ``location`` to be mapped.
    manager_index : pd.Series, optional
        Output of :func:`build_manager_index` for ``employees``.  Built on
        demand when omitted.

    Returns
    -------
    pd.DataFrame
        The matching subset of ``employees``, original order kept.
    """
    if employees.empty:
        return employees

    mask = pd.Series(True, index=employees.index, dtype=bool)

    if filters.drill_manager is not None:
        mask &= employees["manager"] == filters.drill_manager
        if filters.drill_location == UNKNOWN_LOCATION:
            # the placeholder tile groups blank locations with the literal text
            mask &= location_labels(employees["location"]) == UNKNOWN_LOCATION
        elif filters.drill_location is not None:
            mask &= employees["location"] == filters.drill_location

    facets: Dict[str, FrozenSet[str]] = {
        "level": filters.level,
        "employee_type": filters.employee_type,
        "team_project": filters.team_project,
    }
    for column, selected in facets.items():
        if not selected:
            continue
        if column == "team_project" and not mapping.get("team_project"):
            continue
        mask &= employees[column].isin(list(selected))

    if (
        filters.different_campus_only
        and mapping.get("username")
        and mapping.get("location")
    ):
        if manager_index is None:
            manager_index = build_manager_index(employees, mapping)
        mask &= different_campus_mask(employees, manager_index)

    return employees.loc[mask]


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


def location_labels(locations: pd.Series) -> pd.Series:
    """Location names as shown in the hierarchy: blanks become the placeholder."""
    locations = locations.fillna("").astype(str)
    return locations.where(locations.str.strip() != "", UNKNOWN_LOCATION)


def aggregate(
    filtered: pd.DataFrame, employees: pd.DataFrame
) -> Optional[List[HierarchyNode]]:
    """Fold filtered employees into manager -> location count nodes.

    Returns ``None`` when no employees have been projected at all, and an
    empty list when the filters removed every employee.  Employees with a
    blank manager are left out; a blank location is shown as
    ``UNKNOWN_LOCATION``.  Managers and their locations keep first-seen
    order so repeated renders of the same input are stable.
    """
    if employees is None or employees.empty:
        return None
    if filtered.empty:
        return []

    managers = filtered["manager"].fillna("").astype(str)
    locations = filtered["location"].fillna("").astype(str)
    keep = managers.str.strip() != ""
    if not keep.any():
        return []

    frame = pd.DataFrame(
        {
            "manager": managers[keep],
            "location": location_labels(locations[keep]),
        }
    )
    counts = frame.groupby(["manager", "location"], sort=False).size()

    grouped: Dict[str, List[HierarchyNode]] = {}
    for (manager, location), count in counts.items():
        grouped.setdefault(manager, []).append(
            HierarchyNode(
                kind="location",
                name=location,
                count=int(count),
                path=f"{manager}{PATH_SEP}{location}",
            )
        )

    return [
        HierarchyNode(
            kind="manager",
            name=manager,
            count=sum(child.count for child in children),
            path=manager,
            children=tuple(children),
        )
        for manager, children in grouped.items()
        if children
    ]


def flatten_hierarchy(hierarchy: Optional[Sequence[HierarchyNode]]) -> List[HierarchyNode]:
    """Managers first, then every location node, in render order."""
    if not hierarchy:
        return []
    nodes: List[HierarchyNode] = list(hierarchy)
    for manager in hierarchy:
        nodes.extend(manager.children)
    return nodes


def node_click_target(node: HierarchyNode) -> Dict[str, str]:
    """What a click on ``node`` selects: a manager, or a manager and location."""
    if node.kind == "manager":
        return {"manager": node.name}
    # manager names may contain PATH_SEP, so strip the known location suffix
    manager = node.path[: len(node.path) - len(node.name) - len(PATH_SEP)]
    return {"manager": manager, "location": node.name}


# ---------------------------------------------------------------------------
# Pipeline entry points
# ---------------------------------------------------------------------------


def process(
    rows: Sequence[RawRow], mapping: Mapping[str, Optional[str]]
) -> tuple[pd.DataFrame, FilterOptions, pd.Series]:
    """Project rows and derive everything computed once per projection."""
    try:
        employees = project_rows(rows, mapping)
        options = derive_filter_options(employees)
        manager_index = build_manager_index(employees, mapping)
    except Exception as exc:
        logger.exception("Projection failed for %d rows", len(rows))
        raise ProcessingError(f"Error processing data with mappings: {exc}") from exc
    logger.info("Projected %d employee records", len(employees))
    return employees, options, manager_index


def build_hierarchy(
    employees: pd.DataFrame,
    filters: FilterState,
    mapping: Mapping[str, Optional[str]],
    manager_index: Optional[pd.Series] = None,
) -> tuple[pd.DataFrame, Optional[List[HierarchyNode]]]:
    """Run filter and aggregate for the current filter state."""
    try:
        filtered = filter_employees(employees, filters, mapping, manager_index)
        hierarchy = aggregate(filtered, employees)
    except Exception as exc:
        logger.exception("Aggregation failed")
        raise ProcessingError(f"Error building the hierarchy: {exc}") from exc
    return filtered, hierarchy
