import pytest
import uuid
from common.services.validation import validate_area_id, validate_area_ids, validate_batch, validate_depth, chunked
from common.schemas.pagination import PaginatedResponse
from common.exceptions import InvalidInput

def test_validate_area_id_canonicalizes():
    raw = str(uuid.uuid4())
    assert validate_area_id(raw.upper()) == raw

@pytest.mark.parametrize("bad", [
    "",
    "123",
    "not-a-uuid",
    "'; DROP TABLE geographic_area; --",
    "{12345678-1234-5678-1234-567812345678}",
    "12345678123456781234567812345678",
    None,
])
def test_validate_area_id_rejects(bad):
    with pytest.raises(InvalidInput):
        validate_area_id(bad)

def test_validate_area_ids_dedupes_in_order():
    a, b = str(uuid.uuid4()), str(uuid.uuid4())
    assert validate_area_ids([a, b, a.upper()]) == [a, b]

def test_validate_batch_bounds():
    with pytest.raises(InvalidInput):
        validate_batch([], 100)
    with pytest.raises(InvalidInput):
        validate_batch([str(uuid.uuid4()) for _ in range(4)], 3)
    assert len(validate_batch([str(uuid.uuid4()) for _ in range(3)], 3)) == 3

def test_validate_depth():
    assert validate_depth(0) == 0
    with pytest.raises(InvalidInput):
        validate_depth(-1)

def test_chunked():
    assert list(chunked(range(5), 2)) == [[0, 1], [2, 3], [4]]
    assert list(chunked([], 2)) == []

def test_paginated_response_window():
    page = PaginatedResponse[int].from_sequence(list(range(10)), skip=8, limit=5)
    assert page.items == [8, 9]
    assert page.total == 10
    assert page.has_more is False

    with pytest.raises(InvalidInput):
        PaginatedResponse[int].from_sequence([], skip=-1, limit=5)
