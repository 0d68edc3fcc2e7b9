"""Immutable application state and the transitions that update it.

The Shiny app keeps a single :class:`AppState` in a ``reactive.Value`` and
only ever replaces it with the result of one of the functions below.  Each
transition is pure, so the whole upload -> map -> filter -> drill-down flow
can be exercised without a UI.  :func:`compute_view` derives the filtered
employees and the hierarchy from a state; nothing derived is stored.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Iterable, List, Mapping, Optional, Tuple

import pandas as pd

from .config import REQUIRED_FIELDS, UNKNOWN_LOCATION
from .csv_parser import ParsedCSV, RawRow
from .errors import ProcessingError
from .mapping import (
    ColumnMapping,
    is_complete,
    mapped_count,
    mapping_from_suggestion,
    reconcile_mapping,
    reset_mapping,
    set_mapping,
)
from .pipeline import (
    FilterOptions,
    FilterState,
    HierarchyNode,
    build_hierarchy,
    empty_employees,
    flatten_hierarchy,
    node_click_target,
    process,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppState:
    upload_id: int = 0
    file_name: Optional[str] = None
    headers: Tuple[str, ...] = ()
    rows: Tuple[RawRow, ...] = field(default=(), compare=False)
    mapping: ColumnMapping = field(default_factory=reset_mapping)
    employees: pd.DataFrame = field(default_factory=empty_employees, compare=False)
    manager_index: pd.Series = field(
        default_factory=lambda: pd.Series(dtype=object), compare=False
    )
    applied_mapping: ColumnMapping = field(default_factory=reset_mapping)
    filter_options: FilterOptions = field(default_factory=FilterOptions)
    filters: FilterState = field(default_factory=FilterState)
    suggestion_pending: bool = False
    error: Optional[str] = None
    notice: Optional[str] = None

    @property
    def has_rows(self) -> bool:
        return bool(self.rows)

    @property
    def has_employees(self) -> bool:
        return not self.employees.empty

    def mapping_complete(self, required_fields: Iterable[str] = REQUIRED_FIELDS) -> bool:
        return is_complete(self.mapping, required_fields)


@dataclass(frozen=True)
class View:
    filtered: pd.DataFrame
    hierarchy: Optional[List[HierarchyNode]]
    nodes: List[HierarchyNode]


# ---------------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------------


def upload_loaded(state: AppState, file_name: str, parsed: ParsedCSV) -> AppState:
    """A new file was parsed: replace everything downstream of it."""
    notice = f"{file_name} processed successfully. {len(parsed.rows)} rows found."
    if parsed.skipped_lines:
        notice += f" {len(parsed.skipped_lines)} malformed rows skipped."
    return AppState(
        upload_id=state.upload_id + 1,
        file_name=file_name,
        headers=parsed.headers,
        rows=parsed.rows,
        mapping=reset_mapping(),
        suggestion_pending=True,
        notice=notice,
    )


def upload_failed(state: AppState, file_name: Optional[str], message: str) -> AppState:
    """Parsing failed: clear all downstream state and keep the error."""
    return AppState(
        upload_id=state.upload_id + 1,
        file_name=file_name,
        error=f"Error parsing CSV: {message}",
    )


# ---------------------------------------------------------------------------
# Mapping
# ---------------------------------------------------------------------------


def mapping_changed(state: AppState, target: str, header: Optional[str]) -> AppState:
    """Set one field; a header the current file lacks is stored as unmapped."""
    mapping = set_mapping(state.mapping, target, header)
    return replace(state, mapping=reconcile_mapping(mapping, state.headers))


def suggestion_received(
    state: AppState, upload_id: int, suggestion: Mapping[str, str]
) -> AppState:
    """Apply a suggestion unless it belongs to an earlier upload."""
    if upload_id != state.upload_id:
        logger.info(
            "Discarding stale mapping suggestion for upload %d (current %d)",
            upload_id,
            state.upload_id,
        )
        return state
    mapping = mapping_from_suggestion(suggestion, state.headers)
    return replace(
        state,
        mapping=mapping,
        suggestion_pending=False,
        error=None,
        notice=f"Suggested mappings for {mapped_count(mapping)} fields.",
    )


def suggestion_failed(state: AppState, upload_id: int, message: str) -> AppState:
    """Fall back to manual mapping: every field unmapped."""
    if upload_id != state.upload_id:
        return state
    logger.warning("Mapping suggestion failed, resetting mapping: %s", message)
    return replace(
        state,
        mapping=reset_mapping(),
        suggestion_pending=False,
        notice=f"Mapping suggestion unavailable, map columns manually ({message}).",
    )


def apply_mapping(state: AppState) -> AppState:
    """Project the rows with the current mapping.

    On a :class:`ProcessingError` the previous employees are kept and the
    error is recorded.  A successful apply resets the filters because the
    option sets are replaced.
    """
    if not state.has_rows:
        return state
    try:
        employees, options, manager_index = process(state.rows, state.mapping)
    except ProcessingError as exc:
        return replace(state, error=str(exc), notice=None)
    return replace(
        state,
        employees=employees,
        manager_index=manager_index,
        applied_mapping=dict(state.mapping),
        filter_options=options,
        filters=FilterState(),
        error=None,
        notice=f"{len(employees)} records processed.",
    )


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------


def facet_selected(state: AppState, facet: str, values: Iterable[str]) -> AppState:
    """Replace one facet selection; always leaves drill-down."""
    if facet not in ("level", "employee_type", "team_project"):
        raise KeyError(f"Unknown facet: {facet!r}")
    filters = replace(
        state.filters,
        **{facet: frozenset(values)},
        drill_manager=None,
        drill_location=None,
    )
    return replace(state, filters=filters, notice=None)


def different_campus_toggled(state: AppState, enabled: bool) -> AppState:
    return replace(state, filters=replace(state.filters, different_campus_only=bool(enabled)))


def drilled_down(
    state: AppState, manager: str, location: Optional[str] = None
) -> AppState:
    """Narrow the view to one manager, optionally one of their locations."""
    if location is not None:
        notice = f"Showing data for {location} under {manager}."
    else:
        notice = f"Showing data for {manager}."
    filters = replace(state.filters, drill_manager=manager, drill_location=location)
    return replace(state, filters=filters, notice=notice)


def node_clicked(state: AppState, node: HierarchyNode) -> AppState:
    target = node_click_target(node)
    return drilled_down(state, target["manager"], target.get("location"))


def filters_reset(state: AppState) -> AppState:
    return replace(state, filters=FilterState(), notice="Filters reset. Displaying all data.")


# ---------------------------------------------------------------------------
# Derived view
# ---------------------------------------------------------------------------


def compute_view(state: AppState) -> View:
    """Filter and aggregate the projected employees of ``state``.

    ``hierarchy`` is ``None`` until a mapping has been applied and ``[]``
    when the active filters exclude everyone.
    """
    filtered, hierarchy = build_hierarchy(
        state.employees,
        state.filters,
        state.applied_mapping,
        state.manager_index,
    )
    return View(filtered=filtered, hierarchy=hierarchy, nodes=flatten_hierarchy(hierarchy))


def view_caption(state: AppState) -> str:
    filters = state.filters
    if filters.drill_manager is None:
        return "Overview of managers and their locations by employee count."
    if filters.drill_location is None:
        return f"Displaying: {filters.drill_manager}"
    location = filters.drill_location or UNKNOWN_LOCATION
    return f"Displaying: {filters.drill_manager} > {location}"
