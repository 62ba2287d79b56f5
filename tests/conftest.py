"""Shared HTML fixtures: a device page with an specifications table, an EEPROM and a RAM table."""

import pytest

HEADER = ("Address", "Size<br>(Byte)", "Data Name", "Access", "Initial<br>Value", "Range", "Unit")

EEPROM_ROWS = [
    ("0", "2", "Model Number", "R", "1,060", "-", "-"),
    ("7", "1", "ID", "RW", "1", "0 ~ 252", "-"),
    ("36", "2", "PWM Limit", "RW", "885", "0 ~ 885", "-"),
]

RAM_ROWS = [
    ("64", "1", "Torque Enable", "RW", "0", "0 ~ 1", "-"),
    ("100", "2", "Goal PWM", "RW", "-", "-PWM Limit ~ PWM Limit", "-"),
    ("132", "4", "Present Position", "R", "-", "-", "-"),
    ("168", "2", "Indirect Address 1", "RW", "224", "64 ~ 661", "-"),
    ("170", "2", "Indirect Address 2", "RW", "225", "64 ~ 661", "-"),
]


def table_html(header, rows) -> str:
    head = "".join(f"<th>{h}</th>" for h in header)
    body = "".join("<tr>" + "".join(f"<td>{c}</td>" for c in row) + "</tr>" for row in rows)
    return f"<table><thead><tr>{head}</tr></thead><tbody>{body}</tbody></table>"


def page_html(*tables: str) -> str:
    return "<html><body><h1>XL430-W250</h1>" + "".join(tables) + "</body></html>"


SPEC_TABLE = table_html(("Item", "Specifications"), [("MCU", "ARM CORTEX-M3"), ("Weight", "57.2 g")])

SAMPLE_PAGE = page_html(SPEC_TABLE, table_html(HEADER, EEPROM_ROWS), table_html(HEADER, RAM_ROWS))


@pytest.fixture
def sample_page() -> str:
    return SAMPLE_PAGE
