"""Unit tests for redemption codes and date helpers"""

import re
from datetime import datetime, timezone, timedelta
from recycle_ledger.utils.codes import CODE_ALPHABET, generate_redemption_code
from recycle_ledger.utils.date_utils import add_days, as_utc


def test_redemption_code_format():
    code = generate_redemption_code()
    assert re.fullmatch(r"[A-Z0-9]{4}-[A-Z0-9]{4}-[A-Z0-9]{4}", code)


def test_redemption_code_custom_shape():
    code = generate_redemption_code(groups=2, group_size=6)
    groups = code.split("-")
    assert [len(g) for g in groups] == [6, 6]
    assert all(c in CODE_ALPHABET for c in "".join(groups))


def test_redemption_codes_vary():
    codes = {generate_redemption_code() for _ in range(200)}
    assert len(codes) == 200


def test_as_utc_attaches_timezone_to_naive():
    value = as_utc(datetime(2024, 6, 1, 12, 0))
    assert value.tzinfo == timezone.utc
    assert value.hour == 12


def test_as_utc_converts_other_offsets():
    value = as_utc(datetime(2024, 6, 1, 14, 0, tzinfo=timezone(timedelta(hours=2))))
    assert value == datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
    assert as_utc(None) is None


def test_add_days():
    start = datetime(2024, 1, 30, tzinfo=timezone.utc)
    assert add_days(start, 30) == datetime(2024, 2, 29, tzinfo=timezone.utc)
