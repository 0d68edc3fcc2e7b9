import pytest

from orgmapper.pipeline import project_rows

ROSTER_MAPPING = {
    "manager": "Manager",
    "location": "Site",
    "team_project": "Team",
    "employee_type": "Type",
    "level": "Level",
    "username": "User",
}


def make_row(user="", manager="", site="", team="", kind="FTE", level="3"):
    return {
        "User": user,
        "Manager": manager,
        "Site": site,
        "Team": team,
        "Type": kind,
        "Level": level,
    }


@pytest.fixture
def mapping():
    return dict(ROSTER_MAPPING)


@pytest.fixture
def roster_rows():
    return [
        make_row("bob", "carol", "SF", "Platform", "FTE", "6"),
        make_row("ann", "bob", "NYC", "Platform", "FTE", "3"),
        make_row("dan", "bob", "SF", "Search", "Contractor", "4"),
        make_row("eve", "bob", "NYC", "Search", "FTE", "3"),
        make_row("fay", "carol", "", "Platform", "FTE", "5"),
        make_row("gus", "", "SF", "", "Intern", "1"),
    ]


@pytest.fixture
def employees(roster_rows, mapping):
    return project_rows(roster_rows, mapping)
