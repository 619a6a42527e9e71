import pytest

from game_import.importing.csv_parser import parse_csv


def _quote(value: str) -> str:
    if any(ch in value for ch in ',"\n\r'):
        return '"' + value.replace('"', '""') + '"'
    return value


def _serialize(headers, rows, newline="\n"):
    lines = [",".join(_quote(h) for h in headers)]
    for row in rows:
        lines.append(",".join(_quote(row[h]) for h in headers))
    return newline.join(lines) + newline


@pytest.mark.parametrize("newline", ["\n", "\r\n"])
def test_round_trip_with_commas_newlines_and_quotes(newline):
    headers = ["title", "description", "publisher"]
    rows = [
        {"title": "Wingspan", "description": "Birds, eggs, and cards", "publisher": "Stonemaier"},
        {"title": "Say \"Cheese\"", "description": "Line one\nLine two", "publisher": ""},
        {"title": "Azul", "description": "Tiles", "publisher": "Plan B, Next Move"},
    ]

    parsed_headers, parsed_rows = parse_csv(_serialize(headers, rows, newline))

    assert parsed_headers == headers
    assert parsed_rows == rows


def test_headers_are_lowercased_and_trimmed():
    headers, rows = parse_csv(" Title , Min Players \nCatan,3\n")
    assert headers == ["title", "min players"]
    assert rows == [{"title": "Catan", "min players": "3"}]


def test_bare_carriage_return_ends_a_row():
    headers, rows = parse_csv("title,max_players\rCatan,4\rAzul,4")
    assert headers == ["title", "max_players"]
    assert [row["title"] for row in rows] == ["Catan", "Azul"]


def test_blank_rows_are_skipped():
    _, rows = parse_csv("title,publisher\n\n , \nCatan,Kosmos\n,\n")
    assert rows == [{"title": "Catan", "publisher": "Kosmos"}]


def test_short_rows_are_padded_with_empty_values():
    _, rows = parse_csv("title,publisher,mechanics\nCatan\n")
    assert rows == [{"title": "Catan", "publisher": "", "mechanics": ""}]


def test_unterminated_quote_runs_to_end_of_input():
    _, rows = parse_csv('title,description\nCatan,"never closed, still here\nnext line')
    assert rows == [{"title": "Catan", "description": "never closed, still here\nnext line"}]


@pytest.mark.parametrize("text", ["", "title,publisher", "title,publisher\n", "\n\n"])
def test_fewer_than_two_rows_yields_nothing(text):
    assert parse_csv(text) == ([], [])
