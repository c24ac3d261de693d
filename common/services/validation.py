import uuid
from typing import Iterable, List, Iterator, TypeVar
from common.exceptions import InvalidInput

T = TypeVar('T')

def validate_area_id(area_id: str) -> str:
    """
    Confirm an ID has the canonical UUID form before it reaches any query.
    Returns the canonical lower-case representation.
    """
    if not isinstance(area_id, str):
        raise InvalidInput(f"Invalid UUID: {area_id!r}")
    try:
        parsed = uuid.UUID(area_id)
    except ValueError:
        raise InvalidInput(f"Invalid UUID: {area_id!r}")
    if str(parsed) != area_id.lower():
        raise InvalidInput(f"Invalid UUID: {area_id!r}")
    return str(parsed)

def validate_area_ids(area_ids: Iterable[str]) -> List[str]:
    seen = set()
    result = []
    for area_id in area_ids:
        canonical = validate_area_id(area_id)
        if canonical not in seen:
            seen.add(canonical)
            result.append(canonical)
    return result

def validate_batch(area_ids: List[str], max_size: int) -> List[str]:
    if not area_ids:
        raise InvalidInput("area_ids must contain at least one ID")
    if len(area_ids) > max_size:
        raise InvalidInput(f"Cannot request more than {max_size} area IDs at once")
    return validate_area_ids(area_ids)

def validate_depth(depth: int) -> int:
    if depth < 0:
        raise InvalidInput("depth must be zero or greater")
    return depth

def chunked(items: Iterable[T], size: int) -> Iterator[List[T]]:
    batch: List[T] = []
    for item in items:
        batch.append(item)
        if len(batch) >= size:
            yield batch
            batch = []
    if batch:
        yield batch
