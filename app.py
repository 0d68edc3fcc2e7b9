import logging
from pathlib import Path

import plotly.graph_objects as go
from shiny import reactive
from shiny.express import input, render, ui
from shinywidgets import render_plotly

# Import organized modules
from orgmapper.config import (
    FACET_FIELDS,
    FIELD_LABELS,
    NOT_MAPPED,
    NOT_MAPPED_LABEL,
    REQUIRED_FIELDS,
    TARGET_FIELDS,
)
from orgmapper.data_manager import employees_to_csv, read_upload
from orgmapper.errors import MappingSuggestionError, ParseError, ProcessingError
from orgmapper.mapping import missing_fields
from orgmapper.plotting import create_treemap
from orgmapper.state import (
    AppState,
    apply_mapping,
    compute_view,
    different_campus_toggled,
    facet_selected,
    filters_reset,
    mapping_changed,
    node_clicked,
    suggestion_failed,
    suggestion_received,
    upload_failed,
    upload_loaded,
    view_caption,
)
from orgmapper.suggest import suggest_mapping_async

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger("orgmapper.app")

# ======================================================
#  REACTIVE STATE
# ======================================================
# One immutable AppState per session; every change goes through a reducer.
app_state = reactive.Value(AppState())
clicked_node = reactive.Value(None)
last_figure = {"figure": None}


def _mapping_choices(headers):
    return {NOT_MAPPED: NOT_MAPPED_LABEL, **{h: h for h in headers}}


def _push_mapping_inputs(state: AppState) -> None:
    # Keep the selectors aligned with state after an upload or a suggestion.
    for field in TARGET_FIELDS:
        ui.update_select(
            f"map_{field}",
            choices=_mapping_choices(state.headers),
            selected=state.mapping.get(field) or NOT_MAPPED,
        )


def _push_filter_inputs(state: AppState) -> None:
    for field, options_attr, _label in FACET_FIELDS:
        ui.update_selectize(
            f"filter_{field}",
            choices=getattr(state.filter_options, options_attr),
            selected=[],
        )
    ui.update_switch("different_campus", value=False)


def _notify(state: AppState, kind: str = "message") -> None:
    if state.notice:
        ui.notification_show(state.notice, type=kind, duration=4)


@reactive.extended_task
async def suggestion_task(headers, upload_id):
    try:
        suggestion = await suggest_mapping_async(headers)
    except MappingSuggestionError as exc:
        return upload_id, None, str(exc)
    return upload_id, suggestion, None


# ======================================================
#  UPLOAD AND MAPPING
# ======================================================
@reactive.effect
@reactive.event(input.roster)
def _load_roster():
    files = input.roster()
    if not files:
        return
    upload = files[0]
    state = app_state.get()
    try:
        parsed = read_upload(upload["name"], upload["datapath"])
    except ParseError as exc:
        logger.warning("Upload %s rejected: %s", upload["name"], exc)
        failed = upload_failed(state, upload["name"], str(exc))
        app_state.set(failed)
        _push_mapping_inputs(failed)
        _push_filter_inputs(failed)
        ui.notification_show(f"CSV Parsing Error: {exc}", type="error")
        return

    loaded = upload_loaded(state, upload["name"], parsed)
    app_state.set(loaded)
    _push_mapping_inputs(loaded)
    _push_filter_inputs(loaded)
    _notify(loaded)
    suggestion_task.invoke(list(loaded.headers), loaded.upload_id)


@reactive.effect
def _apply_suggestion():
    if suggestion_task.status() != "success":
        return
    upload_id, suggestion, error = suggestion_task.result()
    with reactive.isolate():
        state = app_state.get()
    if error is not None:
        updated = suggestion_failed(state, upload_id, error)
        kind = "warning"
    else:
        updated = suggestion_received(state, upload_id, suggestion)
        kind = "message"
    if updated is state:
        return
    app_state.set(updated)
    _push_mapping_inputs(updated)
    _notify(updated, kind)


def _watch_mapping_input(field: str) -> None:
    input_id = f"map_{field}"

    @reactive.effect
    @reactive.event(input[input_id], ignore_init=True)
    def _on_mapping_change():
        header = input[input_id]() or None
        state = app_state.get()
        if state.mapping.get(field) == header:
            return
        app_state.set(mapping_changed(state, field, header))


for _field in TARGET_FIELDS:
    _watch_mapping_input(_field)


@reactive.effect
def _toggle_apply_button():
    state = app_state.get()
    ui.update_action_button(
        "apply_mappings", disabled=not (state.has_rows and state.mapping_complete())
    )


@reactive.effect
@reactive.event(input.apply_mappings)
def _apply_mappings():
    state = app_state.get()
    if not state.mapping_complete():
        ui.notification_show("Map all required fields to proceed.", type="warning")
        return
    updated = apply_mapping(state)
    app_state.set(updated)
    if updated.error and updated.error != state.error:
        ui.notification_show(updated.error, type="error")
        return
    _push_filter_inputs(updated)
    _notify(updated)


# ======================================================
#  FILTERS AND DRILL-DOWN
# ======================================================
def _watch_facet_input(field: str) -> None:
    input_id = f"filter_{field}"

    @reactive.effect
    @reactive.event(input[input_id], ignore_init=True, ignore_none=False)
    def _on_facet_change():
        values = frozenset(input[input_id]() or ())
        state = app_state.get()
        if getattr(state.filters, field) == values and not state.filters.is_drilled_down:
            return
        app_state.set(facet_selected(state, field, values))


for _field, _attr, _label in FACET_FIELDS:
    _watch_facet_input(_field)


@reactive.effect
@reactive.event(input.different_campus, ignore_init=True)
def _on_campus_toggle():
    app_state.set(different_campus_toggled(app_state.get(), input.different_campus()))


@reactive.effect
@reactive.event(input.reset_filters)
def _reset_filters():
    updated = filters_reset(app_state.get())
    app_state.set(updated)
    for field, _attr, _label in FACET_FIELDS:
        ui.update_selectize(f"filter_{field}", selected=[])
    ui.update_switch("different_campus", value=False)
    _notify(updated)


@reactive.effect
@reactive.event(clicked_node)
def _on_node_click():
    click = clicked_node.get()
    if not click:
        return
    updated = node_clicked(app_state.get(), click["node"])
    app_state.set(updated)
    _notify(updated)


# ======================================================
#  UI LAYOUT
# ======================================================
css_file = Path(__file__).parent / "css" / "theme.css"

ui.include_css(css_file)

ui.page_opts(
    title="OrgMapper",
    fillable=False,
    fillable_mobile=True,
    full_width=True,
    id="page",
    lang="en",
)

with ui.sidebar(open="always", position="left", width=360):
    ui.h5("1. Upload CSV")
    ui.input_file("roster", None, accept=[".csv"], button_label="Upload CSV")

    ui.h5("2. Map Columns")
    for _field in TARGET_FIELDS:
        ui.input_select(
            f"map_{_field}",
            FIELD_LABELS[_field],
            _mapping_choices([]),
            selected=NOT_MAPPED,
        )

    @render.ui
    def mapping_hint():
        state = app_state.get()
        if state.suggestion_pending:
            return ui.p("Suggesting column mappings...", class_="small-note")
        if state.has_rows and not state.mapping_complete():
            missing = ", ".join(FIELD_LABELS[f] for f in missing_fields(state.mapping, REQUIRED_FIELDS))
            return ui.p(f"Map all fields to proceed (missing: {missing}).", class_="small-note")
        return None

    ui.input_action_button(
        "apply_mappings",
        "Apply Mappings & Process Data",
        class_="btn-primary w-100",
        disabled=True,
    )

    ui.h5("3. Filter Data", class_="mt-3")
    for _field, _attr, _label in FACET_FIELDS:
        ui.input_selectize(
            f"filter_{_field}",
            _label,
            [],
            multiple=True,
            options={"placeholder": f"All {_label}s"},
        )
    ui.input_switch("different_campus", "Different campus than manager only", False)
    ui.input_action_button(
        "reset_filters",
        "Reset All Filters",
        class_="btn-outline-secondary w-100 mt-2",
    )


@render.ui
def error_banner():
    state = app_state.get()
    if not state.error:
        return None
    return ui.div(state.error, class_="alert alert-danger")


with ui.card(full_screen=True):
    ui.card_header("Organization Treemap")

    @render.text
    def drill_caption():
        return view_caption(app_state.get())

    @render_plotly
    def treemap_plot():
        state = app_state.get()
        try:
            view = compute_view(state)
        except ProcessingError as exc:
            ui.notification_show(str(exc), type="error")
            if last_figure["figure"] is not None:
                return last_figure["figure"]
            return go.FigureWidget(create_treemap(None))

        fig = go.FigureWidget(create_treemap(view.hierarchy))
        nodes = view.nodes

        def _on_click(_trace, points, _selector):
            for idx in points.point_inds:
                if 0 <= idx < len(nodes):
                    # a fresh dict so repeated clicks on one node still fire
                    clicked_node.set({"node": nodes[idx]})

        if view.hierarchy:
            fig.data[0].on_click(_on_click)
        last_figure["figure"] = fig
        return fig

    @render.download(filename="filtered_roster.csv", label="Download filtered roster")
    def download_filtered():
        yield employees_to_csv(compute_view(app_state.get()).filtered)
