# dataset_store.py - Loads the static value-mapping datasets served by /search
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Tuple, Union

logger = logging.getLogger(__name__)

SCALAR_TYPES = (str, int, float, bool, type(None))


class DatasetError(Exception):
    """Raised when the dataset file cannot be loaded or has an unsupported shape."""
    pass


@dataclass(frozen=True)
class ListDataset:
    """Plain list of values; each value is both the text and the value."""
    values: Tuple[Any, ...]

    @property
    def shape(self) -> str:
        return "list"

    def __len__(self) -> int:
        return len(self.values)


@dataclass(frozen=True)
class KeyedDataset:
    """Aliased look-up: key is the value Grafana stores, mapped value is the display text."""
    entries: Mapping[str, Any]

    @property
    def shape(self) -> str:
        return "keyed"

    def __len__(self) -> int:
        return len(self.entries)


Dataset = Union[ListDataset, KeyedDataset]


def as_text(value: Any) -> str:
    """String form of a scalar, using JSON spelling for booleans and null."""
    if value is None or isinstance(value, bool):
        return json.dumps(value)
    return str(value)


def _check_scalar(name: str, where: str, value: Any) -> None:
    if not isinstance(value, SCALAR_TYPES):
        raise DatasetError(f"dataset '{name}': {where} must be a scalar, got {type(value).__name__}")


def classify_dataset(name: str, raw: Any) -> Dataset:
    if isinstance(raw, list):
        for i, val in enumerate(raw):
            _check_scalar(name, f"element {i}", val)
        return ListDataset(tuple(raw))
    if isinstance(raw, dict):
        for key, val in raw.items():
            _check_scalar(name, f"value for key '{key}'", val)
        return KeyedDataset(MappingProxyType(dict(raw)))
    raise DatasetError(f"dataset '{name}' must be a list or an object, got {type(raw).__name__}")


def build_datasets(raw: Any) -> Mapping[str, Dataset]:
    if not isinstance(raw, dict):
        raise DatasetError(f"top level of the dataset file must be an object, got {type(raw).__name__}")
    return MappingProxyType({name: classify_dataset(name, values) for name, values in raw.items()})


def _reject_constant(name: str):
    raise DatasetError(f"dataset file contains {name}, which is not valid JSON")


def load_datasets(path: Union[str, Path]) -> Mapping[str, Dataset]:
    """Read the dataset file once and return a read-only name -> dataset mapping."""
    path = Path(path)
    logger.info(f"Loading datasets from: {path}")
    try:
        with path.open("r", encoding="utf-8") as f:
            raw = json.load(f, parse_constant=_reject_constant)
    except FileNotFoundError as e:
        raise DatasetError(f"dataset file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise DatasetError(f"dataset file {path} is not valid JSON: {e}") from e

    datasets = build_datasets(raw)
    for name, dataset in datasets.items():
        logger.debug(f"  {name}: {dataset.shape} ({len(dataset)} entries)")
    logger.info(f"Loaded {len(datasets)} datasets successfully")
    return datasets
