# query_resolver.py - Turns a Grafana SimpleJSON search target into {text, value} pairs
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Tuple

from dataset_store import Dataset, ListDataset, as_text

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    INVALID_QUERY_SHAPE = "InvalidQueryShape"
    PARSE_ERROR = "ParseError"
    MISSING_OR_INVALID_FIELD = "MissingOrInvalidField"
    UNKNOWN_DATASET = "UnknownDataset"
    ACCESS_DENIED = "AccessDenied"


@dataclass(frozen=True)
class QueryError:
    kind: ErrorKind
    message: str

    @property
    def status_code(self) -> int:
        return 401 if self.kind is ErrorKind.ACCESS_DENIED else 400

    def to_body(self) -> Dict[str, str]:
        return {"error": self.message}


@dataclass(frozen=True)
class Query:
    data: str
    contains: Any = None
    id: Any = None


class Resolution(NamedTuple):
    results: List[Dict[str, Any]]
    error: Optional[QueryError] = None


def parse_target(raw_target: str) -> Tuple[Optional[Query], Optional[QueryError]]:
    """Parse a JSON target into a Query.

    Returns ``(query, None)`` on success or ``(None, error)``; parse failures
    are returned, never raised.
    """
    if not isinstance(raw_target, str) or not raw_target.startswith("{"):
        return None, QueryError(ErrorKind.INVALID_QUERY_SHAPE, "query should be a JSON object")

    try:
        payload = json.loads(raw_target)
    except json.JSONDecodeError as e:
        return None, QueryError(ErrorKind.PARSE_ERROR, str(e))

    data = payload.get("data")
    if not data or not isinstance(data, str):
        return None, QueryError(ErrorKind.MISSING_OR_INVALID_FIELD, '"data" must be a string')

    return Query(data=data, contains=payload.get("contains"), id=payload.get("id")), None


def contains_filter(query: Query) -> Optional[str]:
    # An empty string disables filtering, same as an absent one
    if not query.contains:
        return None
    return as_text(query.contains).lower()


def parse_id_filter(raw_id: Any) -> List[str]:
    """Expand ``"key"`` or ``"(k1|k2|...)"`` into an ordered, de-duplicated key list."""
    if not isinstance(raw_id, str) or not raw_id:
        return []
    if raw_id.startswith("("):
        ids = raw_id[1:-1].split("|")
    else:
        ids = [raw_id]
    return list(dict.fromkeys(ids))


def _matches(needle: Optional[str], *candidates: Any) -> bool:
    if needle is None:
        return True
    return any(needle in as_text(c).lower() for c in candidates)


def select_values(dataset: Dataset, query: Query) -> List[Dict[str, Any]]:
    needle = contains_filter(query)
    results: List[Dict[str, Any]] = []

    if isinstance(dataset, ListDataset):
        for val in dataset.values:
            if _matches(needle, val):
                results.append({"text": val, "value": val})
        return results

    entries: Mapping[str, Any] = dataset.entries
    ids = parse_id_filter(query.id)
    keys = [k for k in ids if k in entries] if ids else list(entries)
    for key in keys:
        text = entries[key]
        # Display text is searched as well as the key, so "one" finds {"h1": "Host One"}
        if _matches(needle, key, text):
            results.append({"text": text, "value": key})
    return results


def resolve(raw_target: Any, datasets: Mapping[str, Dataset]) -> Resolution:
    """Resolve a raw search target against the loaded datasets."""
    # No query yet, e.g. the template variable editor before anything is typed
    if not raw_target:
        return Resolution([])

    query, error = parse_target(raw_target)
    if error is not None:
        logger.debug("Rejected search target %r: %s", raw_target, error.message)
        return Resolution([], error)

    dataset = datasets.get(query.data)
    if dataset is None:
        logger.debug("Unknown dataset requested: %s", query.data)
        return Resolution([], QueryError(ErrorKind.UNKNOWN_DATASET, f"no data found for data target: {query.data}"))

    return Resolution(select_values(dataset, query))
