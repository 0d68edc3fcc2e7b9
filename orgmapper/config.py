"""
Configuration constants for the OrgMapper pipeline and app.
"""

import os
from typing import Dict, List, Tuple

# ======================================================
#  TARGET FIELDS
# ======================================================
# Order matters: it is the order of the mapping selectors in the sidebar.
TARGET_FIELDS: Tuple[str, ...] = (
    "manager",
    "location",
    "team_project",
    "employee_type",
    "level",
    "username",
)

FIELD_LABELS: Dict[str, str] = {
    "manager": "Manager",
    "location": "Location",
    "team_project": "Team / Project",
    "employee_type": "Employee Type",
    "level": "Level",
    "username": "Username",
}

# team_project is always optional
REQUIRED_FIELDS: Tuple[str, ...] = (
    "manager",
    "location",
    "employee_type",
    "level",
    "username",
)

# Facet filters: (field, FilterOptions attribute, label)
FACET_FIELDS: List[Tuple[str, str, str]] = [
    ("level", "levels", "Level"),
    ("employee_type", "employee_types", "Employee Type"),
    ("team_project", "team_projects", "Team / Project"),
]

# Column order of the projected employee frame
EMPLOYEE_COLUMNS: List[str] = ["id", *TARGET_FIELDS, "original_row"]

# ======================================================
#  PARSING / AGGREGATION PLACEHOLDERS
# ======================================================
UNNAMED_COLUMN_TEMPLATE: str = "(Unnamed Column {index})"
UNKNOWN_LOCATION: str = "(Unknown Location)"
PATH_SEP: str = "/"
ACCEPTED_SUFFIXES: Tuple[str, ...] = (".csv",)

# ======================================================
#  MAPPING SUGGESTION (LLM)
# ======================================================
LLM_MODEL: str = os.getenv("ORGMAPPER_LLM_MODEL", "gpt-4o-mini")
LLM_TEMPERATURE: float = float(os.getenv("ORGMAPPER_LLM_TEMPERATURE", "0"))

# Accepted spellings of target fields in the model reply
SUGGESTION_KEY_ALIASES: Dict[str, str] = {
    "teamProject": "team_project",
    "employeeType": "employee_type",
}

# ======================================================
#  UI DEFAULTS
# ======================================================
NOT_MAPPED: str = ""
NOT_MAPPED_LABEL: str = "-- Not Mapped --"

TREEMAP_PALETTE: List[str] = [
    "#e76e50",
    "#2a9d90",
    "#274754",
    "#e8c468",
    "#f4a462",
    "#8fb3d9",
    "#ffa34d",
]
TREEMAP_HEIGHT: int = 720
