"""
Query Option Resolver

Translates list-endpoint query parameters into repository primitives:

    ?role=client&rating[gte]=4&sort=-rating,name&fields=name,email&page=2&limit=10

Reserved keys are page, limit, sort and fields; every other key is a filter.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Tuple
import math
import re

from .errors import BadRequest

OPERATORS = {"eq", "ne", "gt", "gte", "lt", "lte", "in"}
DEFAULT_PAGE_LIMIT = 100

_OPERATOR_KEY_RE = re.compile(r"^(?P<field>\w+)\[(?P<op>\w+)\]$")


@dataclass
class QueryOptions:
    filter: Dict[str, Any] = field(default_factory=dict)
    sort: List[str] = field(default_factory=list)
    fields: List[str] = field(default_factory=list)
    page: int = 1
    page_limit: int = DEFAULT_PAGE_LIMIT


def _split(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def _positive_int(name: str, value: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise BadRequest(f"Invalid {name}: {value}")
    if number < 1:
        raise BadRequest(f"Invalid {name}: {value}")
    return number


def resolve_query_options(
    params: Iterable[Tuple[str, str]],
    page_limit: int = DEFAULT_PAGE_LIMIT,
) -> QueryOptions:
    """
    Build QueryOptions from (key, value) query pairs.

    Raises:
        BadRequest: On a malformed page/limit or an unknown operator
    """
    options = QueryOptions(page_limit=page_limit)

    for key, value in params:
        if key == "page":
            options.page = _positive_int("page", value)
        elif key == "limit":
            options.page_limit = _positive_int("limit", value)
        elif key == "sort":
            options.sort.extend(_split(value))
        elif key == "fields":
            options.fields.extend(_split(value))
        else:
            match = _OPERATOR_KEY_RE.match(key)
            if match is None:
                options.filter[key] = value
                continue
            name, op = match.group("field"), match.group("op")
            if op not in OPERATORS:
                raise BadRequest(f"Invalid operator: {op}")
            condition = options.filter.setdefault(name, {})
            if not isinstance(condition, dict):
                # field=value and field[op]=value given together
                condition = options.filter[name] = {"eq": condition}
            condition[op] = _split(value) if op == "in" else value

    return options


def pagination(page: int, page_limit: int, total_count: int) -> Dict[str, int]:
    total_pages = math.ceil(total_count / page_limit)
    return {
        "page": page,
        "page_limit": page_limit,
        "total_count": total_count,
        "total_pages": total_pages,
    }
