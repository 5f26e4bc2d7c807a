# NetXMS Query Bridge
# File: ordered_json.py
# Version: v1

"""Order-capturing JSON decoding.

Column order of dynamic tables is user-visible, so objects are decoded into
OrderedRecord instances that record key order explicitly as the decoder
encounters the pairs, instead of relying on the mapping type.
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, List, Sequence, Tuple, Union
import json


class OrderedRecord:
    """A decoded JSON object: ordered key list plus lookup map."""

    __slots__ = ("keys", "values")

    def __init__(self) -> None:
        self.keys: List[str] = []
        self.values: Dict[str, Any] = {}

    @classmethod
    def from_pairs(cls, pairs: Sequence[Tuple[str, Any]]) -> "OrderedRecord":
        record = cls()
        for key, value in pairs:
            # Duplicate keys keep their first position and last value.
            if key not in record.values:
                record.keys.append(key)
            record.values[key] = value
        return record

    def get(self, key: str, default: Any = None) -> Any:
        return self.values.get(key, default)

    def __contains__(self, key: object) -> bool:
        return key in self.values

    def __getitem__(self, key: str) -> Any:
        return self.values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys)

    def __len__(self) -> int:
        return len(self.keys)

    def __repr__(self) -> str:
        inner = ", ".join(f"{k!r}: {self.values[k]!r}" for k in self.keys)
        return f"OrderedRecord({{{inner}}})"

    def to_plain(self) -> Dict[str, Any]:
        """Convert recursively to plain dicts/lists, keeping key order."""
        return {k: to_plain(self.values[k]) for k in self.keys}


def to_plain(value: Any) -> Any:
    if isinstance(value, OrderedRecord):
        return value.to_plain()
    if isinstance(value, list):
        return [to_plain(v) for v in value]
    return value


def loads_ordered(raw: Union[bytes, bytearray, str]) -> Any:
    """Decode JSON turning every object into an OrderedRecord.

    Raises ValueError on malformed input and RecursionError on input nested
    deeper than the interpreter can decode.
    """
    return json.loads(raw, object_pairs_hook=OrderedRecord.from_pairs)
