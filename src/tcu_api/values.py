"""Value tree shared by the request builder and the response parser.

Outbound request parameters and inbound parsed response data use the same
recursive shape so that name sanitization and list promotion behave
identically in both directions:

* :class:`Scalar` - a single text value.
* :class:`ListValue` - an ordered sequence of values (repeated XML siblings).
* :class:`MapValue` - an ordered mapping of element name to value.

Plain Python structures convert through :func:`from_python` and back through
:meth:`to_python`::

    from tcu_api.values import from_python

    params = from_python({"Operation": "CheckStatus", "f4indexno": ["S0123/0001/2023"]})
    params["f4indexno"]            # ListValue([Scalar('S0123/0001/2023')])
    params.to_python()             # {'Operation': 'CheckStatus', 'f4indexno': [...]}

Element order follows ``dict`` insertion order in :class:`MapValue`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union

# Prefixes applied when a name cannot start an XML element.
PARAM_PREFIX = "param_"
ELEMENT_PREFIX = "element_"

_INVALID_NAME_CHARS = re.compile(r"[^A-Za-z0-9_-]")
_VALID_NAME_START = re.compile(r"^[A-Za-z_]")


def sanitize_element_name(name: Any, prefix: str = ELEMENT_PREFIX) -> str:
    """Rewrite ``name`` so it matches ``[A-Za-z_][A-Za-z0-9_-]*``.

    Characters outside the allowed alphabet are dropped. An empty result, or
    one starting with anything other than a letter or underscore, is prefixed
    with ``prefix``.

    Args:
        name: Raw key (non-strings are converted with ``str``).
        prefix: Literal prepended to unusable names.

    Returns:
        A valid element name.

    Example:
        >>> sanitize_element_name("123abc")
        'element_123abc'
        >>> sanitize_element_name("123abc", prefix="param_")
        'param_123abc'
        >>> sanitize_element_name("first name")
        'firstname'
    """
    cleaned = _INVALID_NAME_CHARS.sub("", str(name))
    if not _VALID_NAME_START.match(cleaned):
        cleaned = prefix + cleaned
    return cleaned


@dataclass
class Scalar:
    """Leaf text value."""

    text: str = ""

    def to_python(self) -> str:
        return self.text


@dataclass
class ListValue:
    """Ordered sequence of values."""

    items: List["Value"] = field(default_factory=list)

    def __iter__(self) -> Iterator["Value"]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __getitem__(self, index: int) -> "Value":
        return self.items[index]

    def append(self, value: "Value") -> None:
        self.items.append(value)

    def to_python(self) -> List[Any]:
        return [item.to_python() for item in self.items]


@dataclass
class MapValue:
    """Ordered mapping of element name to value (keys unique)."""

    entries: Dict[str, "Value"] = field(default_factory=dict)

    def __contains__(self, key: object) -> bool:
        return key in self.entries

    def __getitem__(self, key: str) -> "Value":
        return self.entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def get(self, key: str, default: Optional["Value"] = None) -> Optional["Value"]:
        return self.entries.get(key, default)

    def keys(self):
        return self.entries.keys()

    def items(self) -> Iterator[Tuple[str, "Value"]]:
        return iter(self.entries.items())

    def set(self, key: str, value: "Value") -> None:
        self.entries[key] = value

    def add_repeated(self, key: str, value: "Value") -> None:
        """Insert ``value`` under ``key``, promoting repeats to a list.

        The first repeat converts the existing entry into element 0 of a
        :class:`ListValue`; later repeats are appended.
        """
        if key not in self.entries:
            self.entries[key] = value
            return
        existing = self.entries[key]
        if isinstance(existing, ListValue):
            existing.append(value)
        else:
            self.entries[key] = ListValue([existing, value])

    def to_python(self) -> Dict[str, Any]:
        return {key: value.to_python() for key, value in self.entries.items()}


Value = Union[Scalar, ListValue, MapValue]


def from_python(obj: Any) -> Value:
    """Convert nested dict / list / scalar structures into a value tree.

    ``None`` becomes an empty scalar; booleans become ``"true"``/``"false"``;
    every other non-container is converted with ``str``. Existing value nodes
    are returned untouched.

    Raises:
        TypeError: For mapping keys that are not strings or integers.
    """
    if isinstance(obj, (Scalar, ListValue, MapValue)):
        return obj
    if obj is None:
        return Scalar("")
    if isinstance(obj, bool):
        return Scalar("true" if obj else "false")
    if isinstance(obj, Mapping):
        entries: Dict[str, Value] = {}
        for key, value in obj.items():
            if not isinstance(key, (str, int)):
                raise TypeError(f"Unsupported key type: {type(key).__name__}")
            entries[str(key)] = from_python(value)
        return MapValue(entries)
    if isinstance(obj, (list, tuple)):
        return ListValue([from_python(item) for item in obj])
    return Scalar(str(obj))
