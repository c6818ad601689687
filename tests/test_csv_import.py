"""Tests for CSV parsing and row validation."""

import pytest

from app.models.customer import CustomerCreate
from app.models.product import ProductCreate
from app.services.csv_import import (
    CUSTOMER_COLUMNS,
    CsvImportError,
    decode_upload,
    parse_csv,
    require_columns,
    validate_rows,
)


def test_parse_csv_normalises_headers_and_cells():
    rows = parse_csv(" Name , EMAIL \n Ada , ada@coffeeshop.io \n")
    assert rows == [{"name": "Ada", "email": "ada@coffeeshop.io"}]


def test_parse_csv_quoted_fields():
    text = 'name,address\n"Lovelace, Ada","1 ""Analytical"" Way\nLondon"\n'
    [row] = parse_csv(text)
    assert row["name"] == "Lovelace, Ada"
    assert row["address"] == '1 "Analytical" Way\nLondon'


def test_parse_csv_skips_blank_lines_and_pads_short_rows():
    rows = parse_csv("name,email,phone\n\nAda,ada@coffeeshop.io\n,,\n")
    assert rows == [{"name": "Ada", "email": "ada@coffeeshop.io", "phone": ""}]


def test_parse_csv_empty_input():
    with pytest.raises(CsvImportError, match="empty"):
        parse_csv("\n\n")


def test_decode_upload_strips_bom():
    assert decode_upload("\ufeffname\n".encode()) == "name\n"


def test_decode_upload_rejects_binary():
    with pytest.raises(CsvImportError):
        decode_upload(b"\xff\xfe\x00bad")


def test_require_columns():
    rows = parse_csv("name,phone\nAda,123\n")
    with pytest.raises(CsvImportError, match="email"):
        require_columns(rows, CUSTOMER_COLUMNS)

    with pytest.raises(CsvImportError, match="no data rows"):
        require_columns(parse_csv("name,email\n"), CUSTOMER_COLUMNS)


def test_validate_rows_reports_bad_rows_with_line_numbers():
    rows = parse_csv(
        "name,email\n"
        "Ada,ada@coffeeshop.io\n"
        "Bob,not-an-email\n"
        ",carol@coffeeshop.io\n"
    )
    valid, errors = validate_rows(rows, CustomerCreate)

    assert [c.email for c in valid] == ["ada@coffeeshop.io"]
    assert len(errors) == 2
    assert errors[0].startswith("Row 3: email")
    assert errors[1].startswith("Row 4: name")


def test_row_numbers_follow_file_lines():
    rows = parse_csv(
        "name,email,address\n"
        "\n"
        'Ada,ada@coffeeshop.io,"1 Analytical Way\nLondon"\n'
        "Bob,not-an-email,\n"
        "\n"
        ",carol@coffeeshop.io,\n"
    )
    assert [r.line_no for r in rows] == [3, 5, 7]

    valid, errors = validate_rows(rows, CustomerCreate)
    assert [c.name for c in valid] == ["Ada"]
    assert errors[0].startswith("Row 5: email")
    assert errors[1].startswith("Row 7: name")


def test_validate_rows_plain_dicts_count_from_first_row():
    _, errors = validate_rows(
        [{"name": "Ada", "email": "ada@coffeeshop.io"}, {"name": "Bob", "email": "nope"}],
        CustomerCreate,
        first_row=2,
    )
    assert errors[0].startswith("Row 3: email")


def test_validate_rows_empty_cells_use_defaults():
    rows = parse_csv("name,category,price,cost,stock\nLatte,Coffee,4.50,1.20,\n")
    [product], errors = validate_rows(rows, ProductCreate)
    assert errors == []
    assert product.stock == 0
    assert product.price == 4.5


def test_validate_rows_rejects_negative_price():
    _, errors = validate_rows(
        [{"name": "Latte", "category": "Coffee", "price": "-1", "cost": "1"}],
        ProductCreate,
    )
    assert errors and errors[0].startswith("Row 1: price")
