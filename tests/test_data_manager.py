import pandas as pd
import pytest

from orgmapper.data_manager import employees_to_csv, is_accepted_file, read_upload
from orgmapper.errors import ParseError
from orgmapper.pipeline import project_rows


def test_only_csv_files_are_accepted(tmp_path):
    path = tmp_path / "roster.xlsx"
    path.write_text("a,b\n1,2", encoding="utf-8")

    assert is_accepted_file("Roster.CSV")
    with pytest.raises(ParseError, match="Only .csv"):
        read_upload("roster.xlsx", path)


def test_read_upload_strips_byte_order_mark(tmp_path):
    path = tmp_path / "roster.csv"
    path.write_text("\ufeffManager,Site\nbob,SF\n", encoding="utf-8")

    parsed = read_upload("roster.csv", path)

    assert parsed.headers == ("Manager", "Site")
    assert parsed.rows == ({"Manager": "bob", "Site": "SF"},)


@pytest.mark.parametrize("content", ["", "\n\n", "Manager,Site\n", "a,b\n1,2,3\n"])
def test_unusable_files_raise_parse_error(tmp_path, content):
    path = tmp_path / "roster.csv"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ParseError, match="empty or invalid"):
        read_upload("roster.csv", path)


def test_non_utf8_file_raises_parse_error(tmp_path):
    path = tmp_path / "roster.csv"
    path.write_bytes(b"Manager,Site\n\xff\xfe,SF\n")

    with pytest.raises(ParseError):
        read_upload("roster.csv", path)


def test_export_leaves_out_original_rows(roster_rows, mapping):
    employees = project_rows(roster_rows, mapping)

    text = employees_to_csv(employees.iloc[1:3])
    lines = text.strip().splitlines()

    assert lines[0] == "id,manager,location,team_project,employee_type,level,username"
    assert lines[1] == "1,bob,NYC,Platform,FTE,3,ann"
    assert "original_row" not in text


def test_export_of_empty_selection_has_header_only():
    text = employees_to_csv(pd.DataFrame())

    assert text.strip() == "id,manager,location,team_project,employee_type,level,username"
