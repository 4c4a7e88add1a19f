import pytest

from inkwell import csv_codec
from inkwell.models import Table

SAMPLE = "id,Product,Price\n1,Laptop,1200\n2,Mouse,25"


def test_decode_sample():
    table = csv_codec.decode(SAMPLE)
    assert table.columns == ["id", "Product", "Price"]
    assert table.rows == [
        {"id": 1, "Product": "Laptop", "Price": 1200},
        {"id": 2, "Product": "Mouse", "Price": 25},
    ]


def test_sample_reencodes_byte_identical():
    assert csv_codec.encode(csv_codec.decode(SAMPLE)) == SAMPLE


def test_empty_input():
    table = csv_codec.decode("")
    assert table.columns == []
    assert table.rows == []


def test_zero_row_table_encodes_to_empty_string():
    assert csv_codec.encode(Table(columns=["a", "b"], rows=[])) == ""
    assert csv_codec.encode(Table()) == ""


def test_header_only_keeps_columns():
    table = csv_codec.decode("a,b\n\n")
    assert table.columns == ["a", "b"]
    assert table.rows == []


def test_blank_lines_are_skipped():
    table = csv_codec.decode("\n\na,b\n\n1,2\n   \n3,4\n")
    assert table.rows == [{"a": 1, "b": 2}, {"a": 3, "b": 4}]


def test_crlf_line_endings():
    table = csv_codec.decode("a,b\r\n1,x\r\n2,y\r\n")
    assert table.rows == [{"a": 1, "b": "x"}, {"a": 2, "b": "y"}]


def test_header_quotes_stripped_and_trimmed():
    table = csv_codec.decode(' "id" , Name \n1,Bob')
    assert table.columns == ["id", "Name"]
    assert table.rows == [{"id": 1, "Name": "Bob"}]


def test_quoted_fields_keep_commas_quotes_and_newlines():
    text = 'name,note\n"Smith, J","said ""hi""\nthen left"'
    table = csv_codec.decode(text)
    assert table.rows == [{"name": "Smith, J", "note": 'said "hi"\nthen left'}]


def test_unquoted_values_are_trimmed():
    table = csv_codec.decode("a,b\n  x  , 3 ")
    assert table.rows == [{"a": "x", "b": 3}]


@pytest.mark.parametrize("raw,expected", [
    ("12", 12),
    ("-3", -3),
    ("1.5", 1.5),
    ("2e3", 2000.0),
    (".5", 0.5),
    ("abc", "abc"),
    ("12abc", "12abc"),
    ("1e999", "1e999"),
    ("nan", "nan"),
    ("", ""),
])
def test_numeric_coercion(raw, expected):
    value = csv_codec.coerce(raw)
    assert value == expected
    assert type(value) is type(expected)


def test_quoted_numbers_are_still_numbers():
    table = csv_codec.decode('id,Product\n1,"Laptop"\n"2","Mouse"')
    assert table.rows == [{"id": 1, "Product": "Laptop"}, {"id": 2, "Product": "Mouse"}]


def test_missing_fields_become_empty_and_extra_fields_are_dropped():
    table = csv_codec.decode("a,b,c\n1\n1,2,3,4")
    assert table.rows == [
        {"a": 1, "b": "", "c": ""},
        {"a": 1, "b": 2, "c": 3},
    ]


def test_duplicate_headers_keep_first():
    table = csv_codec.decode("a,b,a\n1,2,3")
    assert table.columns == ["a", "b"]
    assert table.rows == [{"a": 1, "b": 2}]


def test_encode_quotes_only_when_needed():
    table = Table(
        columns=["plain", "comma", "quote", "newline", "padded"],
        rows=[{
            "plain": "hello",
            "comma": "a,b",
            "quote": 'say "x"',
            "newline": "one\ntwo",
            "padded": " x ",
        }],
    )
    assert csv_codec.encode(table).split("\n", 1)[1] == 'hello,"a,b","say ""x""","one\ntwo"," x "'


def test_encode_numbers_in_short_form():
    table = Table(columns=["a", "b", "c"], rows=[{"a": 1200.0, "b": 0.25, "c": -7}])
    assert csv_codec.encode(table) == "a,b,c\n1200,0.25,-7"


def test_delimiter_free_round_trip():
    table = Table(
        columns=["id", "Product", "Price"],
        rows=[
            {"id": 1, "Product": "Laptop", "Price": 1200},
            {"id": 2, "Product": "Mouse", "Price": 24.5},
            {"id": 3, "Product": "", "Price": ""},
        ],
    )
    assert csv_codec.decode(csv_codec.encode(table)) == table


def test_quoted_round_trip():
    table = Table(
        columns=["name", "notes, misc"],
        rows=[
            {"name": 'The "Best" Co', "notes, misc": "line one\nline two"},
            {"name": "Doe, Jane", "notes, misc": "\n\nblank lines inside\n"},
            {"name": "  padded  ", "notes, misc": 'trailing quote"'},
        ],
    )
    assert csv_codec.decode(csv_codec.encode(table)) == table


def test_single_empty_column_row_survives():
    table = Table(columns=["Email"], rows=[{"Email": ""}])
    assert csv_codec.decode(csv_codec.encode(table)) == table


def test_huge_integer_stays_text():
    digits = "7" * 5000
    table = csv_codec.decode("id,code\n1," + digits)
    assert table.rows == [{"id": 1, "code": digits}]
