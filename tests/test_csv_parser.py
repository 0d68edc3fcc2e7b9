from orgmapper.csv_parser import parse_csv, split_fields


def test_header_and_single_row():
    parsed = parse_csv("a,b,c\n1,2,3")

    assert parsed.headers == ("a", "b", "c")
    assert parsed.rows == ({"a": "1", "b": "2", "c": "3"},)
    assert parsed.skipped_lines == ()


def test_row_with_extra_field_is_dropped():
    parsed = parse_csv("a,b\n1,2\n1,2,3")

    assert len(parsed.rows) == 1
    assert parsed.rows[0] == {"a": "1", "b": "2"}
    assert parsed.skipped_lines == (3,)


def test_short_row_is_dropped_and_parsing_continues():
    parsed = parse_csv("a,b\n1\n3,4")

    assert parsed.rows == ({"a": "3", "b": "4"},)
    assert parsed.skipped_lines == (2,)


def test_empty_header_gets_positional_placeholder():
    parsed = parse_csv("a,,c\n1,2,3")

    assert parsed.headers == ("a", "(Unnamed Column 2)", "c")
    assert parsed.rows[0]["(Unnamed Column 2)"] == "2"


def test_quoted_field_keeps_its_comma():
    parsed = parse_csv('name,city\n"Doe, Jane",NYC')

    assert parsed.rows == ({"name": "Doe, Jane", "city": "NYC"},)


def test_quoted_headers_and_whitespace_are_stripped():
    parsed = parse_csv('"Manager" , "Site"\n  bob ,  "SF" ')

    assert parsed.headers == ("Manager", "Site")
    assert parsed.rows == ({"Manager": "bob", "Site": "SF"},)


def test_crlf_and_trailing_blank_lines():
    parsed = parse_csv("a,b\r\n1,2\r\n3,4\r\n\r\n\n")

    assert len(parsed.rows) == 2
    assert parsed.skipped_lines == ()


def test_blank_line_in_the_middle_is_ignored():
    parsed = parse_csv("a,b\n1,2\n   \n3,4")

    assert [row["a"] for row in parsed.rows] == ["1", "3"]
    assert parsed.skipped_lines == ()


def test_empty_text_gives_empty_result():
    for text in ("", "   ", "\n\r\n"):
        parsed = parse_csv(text)
        assert parsed.is_empty
        assert parsed.headers == ()
        assert parsed.rows == ()


def test_header_only_file_has_no_rows():
    parsed = parse_csv("a,b,c\n")

    assert parsed.headers == ("a", "b", "c")
    assert parsed.rows == ()


def test_escaped_quotes_are_not_unescaped():
    # "" escapes are outside the supported subset; only the outer quotes go.
    assert split_fields('"say ""hi""",x') == ['say ""hi""', "x"]
