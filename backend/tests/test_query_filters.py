import pytest

from storecore.errors import CommerceError
from storecore.services.query_filters import parse_pagination, pagination_dict


def test_pagination_defaults(app):
    assert parse_pagination(None, None) == (1, 20)
    assert parse_pagination("", "") == (1, 20)


@pytest.mark.parametrize("page,limit", [("0", "10"), (0, 10), ("1", "0"), (1, 0), ("-2", "10")])
def test_zero_or_negative_values_are_rejected(app, page, limit):
    with pytest.raises(CommerceError) as exc:
        parse_pagination(page, limit)
    assert exc.value.code == "VALIDATION_ERROR"


def test_limit_is_capped(app):
    assert parse_pagination("3", "500", max_limit=100) == (3, 100)


def test_pagination_dict_counts_pages():
    assert pagination_dict(2, 20, 41) == {"page": 2, "limit": 20, "total": 41, "total_pages": 3}
