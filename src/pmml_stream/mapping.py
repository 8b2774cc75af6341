"""
mapping.py - Field Mapping Between Messages and the PMML Model

Parses the declarative mapping strings and resolves dotted paths
against nested payload trees.

Mapping syntax (comma separated, whitespace trimmed):

    inputs:  Sepal.Length = payload.sepalLength, Petal.Width = headers.width
    outputs: Predicted_Species = payload.predictedSpecies

The left side is always the model field, the right side is always
the message path. For inputs the message path is the source, for
outputs it is the target.

Usage:
    from pmml_stream.mapping import MappingTable, resolve_path

    table = MappingTable.parse_inputs("Sepal.Length = payload.sepalLength")
    value = resolve_path({"sepalLength": 6.4}, "sepalLength")
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, Optional, Tuple

from .errors import ConfigurationError, FieldNotFoundError

PAYLOAD_SCOPE = "payload"
HEADERS_SCOPE = "headers"


@dataclass(frozen=True)
class MappingEntry:
    """
    One configured pairing.

    Attributes:
        source_path: dotted path read from (message path or model output name)
        target_name: name written to (model input name or outbound payload path)
        scope: "payload" or "headers" for message-side sources
    """
    source_path: str
    target_name: str
    scope: str = PAYLOAD_SCOPE


class MappingTable:
    """
    Ordered, read-only list of MappingEntry.

    An empty table means identity mode.
    """

    def __init__(self, entries: Iterable[MappingEntry] = ()):
        entries = tuple(entries)
        seen = set()
        for entry in entries:
            if entry.target_name in seen:
                raise ConfigurationError(f"Duplicate mapping target: '{entry.target_name}'")
            seen.add(entry.target_name)
        self._entries = entries

    @property
    def entries(self) -> Tuple[MappingEntry, ...]:
        return self._entries

    @property
    def is_identity(self) -> bool:
        return not self._entries

    def __iter__(self) -> Iterator[MappingEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other):
        if not isinstance(other, MappingTable):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self):
        pairs = ", ".join(f"{e.source_path}->{e.target_name}" for e in self._entries)
        return f"MappingTable([{pairs}])"

    # -------------------------------------------------------------------------
    # Factories
    # -------------------------------------------------------------------------

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[str, str]]) -> "MappingTable":
        """Build a table from explicit (source_path, target_name) pairs."""
        entries = []
        for source, target in pairs:
            source = (source or "").strip()
            target = (target or "").strip()
            if not source or not target:
                raise ConfigurationError(f"Empty side in mapping pair: ({source!r}, {target!r})")
            entries.append(MappingEntry(source, target))
        return cls(entries)

    @classmethod
    def parse_inputs(cls, text: Optional[str]) -> "MappingTable":
        """
        Parse an inputs mapping: `ModelInput = payload.path`.

        The message path becomes the source, the model field the target.
        """
        entries = []
        for model_field, message_path in _split_pairs(text):
            scope, path = _split_scope(message_path, allowed=(PAYLOAD_SCOPE, HEADERS_SCOPE))
            entries.append(MappingEntry(path, model_field, scope))
        return cls(entries)

    @classmethod
    def parse_outputs(cls, text: Optional[str]) -> "MappingTable":
        """
        Parse an outputs mapping: `ModelOutput = payload.path`.

        The model output name becomes the source, the payload path the target.
        """
        entries = []
        for model_field, message_path in _split_pairs(text):
            _, path = _split_scope(message_path, allowed=(PAYLOAD_SCOPE,))
            entries.append(MappingEntry(model_field, path))
        return cls(entries)


def _split_pairs(text):
    """Yield trimmed (left, right) pairs from a mapping string."""
    if text is None or not text.strip():
        return

    for raw in text.split(","):
        if not raw.strip():
            raise ConfigurationError(f"Empty mapping entry in: {text!r}")
        if "=" not in raw:
            raise ConfigurationError(f"Mapping entry lacks '=' separator: {raw.strip()!r}")
        if raw.count("=") > 1:
            raise ConfigurationError(f"Mapping entry has more than one '=': {raw.strip()!r}")

        left, right = raw.split("=")
        left, right = left.strip(), right.strip()
        if not left or not right:
            raise ConfigurationError(f"Mapping entry has an empty side: {raw.strip()!r}")

        yield left, right


def _split_scope(message_path, allowed):
    """`payload.a.b` -> ("payload", "a.b"); bare paths are payload-relative."""
    head, _, rest = message_path.partition(".")
    if head in (PAYLOAD_SCOPE, HEADERS_SCOPE):
        if head not in allowed:
            raise ConfigurationError(f"'{head}' paths are not allowed here: {message_path!r}")
        if not rest:
            raise ConfigurationError(f"Path must name a field below '{head}': {message_path!r}")
        return head, rest
    return PAYLOAD_SCOPE, message_path


# =============================================================================
# FIELD EXTRACTOR
# =============================================================================

def resolve_path(payload: Mapping, path: str) -> Any:
    """
    Resolve a dotted path against a nested payload tree.

    At each level keys made of more segments are tried first, so a literal
    "Sepal.Length" key is found before descending into "Sepal". When descent
    below such a key fails, shorter splits are tried.

    Args:
        payload: nested dict
        path: dotted path, e.g. "Sepal.Length"

    Returns:
        The scalar value at the path

    Raises:
        FieldNotFoundError: missing segment, descent into a non-map,
            or the path ends on a map
    """
    if not path:
        raise FieldNotFoundError(path, "empty path")

    found, value, reason = _descend(payload, path.split("."), 0)
    if not found:
        raise FieldNotFoundError(path, reason)
    return value


def _descend(node, segments, i):
    """Returns (found, value, reason) for segments[i:] below node."""
    if i == len(segments):
        if isinstance(node, Mapping):
            return False, None, "resolves to a map, not a scalar"
        return True, node, None

    if not isinstance(node, Mapping):
        return False, None, f"'{'.'.join(segments[:i])}' is not a map"

    reason = f"missing segment '{segments[i]}'"
    for j in range(len(segments), i, -1):
        key = ".".join(segments[i:j])
        if key not in node:
            continue
        found, value, why = _descend(node[key], segments, j)
        if found:
            return True, value, None
        reason = why
    return False, None, reason


def assign_path(tree: Dict[str, Any], path: str, value: Any) -> None:
    """Write value at a dotted path, creating intermediate maps."""
    segments = path.split(".")
    node = tree
    for depth, segment in enumerate(segments[:-1]):
        child = node.get(segment)
        if child is None:
            child = node[segment] = {}
        elif not isinstance(child, dict):
            raise FieldNotFoundError(path, f"'{'.'.join(segments[:depth + 1])}' is not a map")
        node = child
    node[segments[-1]] = value


def flatten_payload(payload: Mapping, prefix: str = "") -> Dict[str, Any]:
    """
    Flatten nested maps into dotted keys.

    {"Sepal": {"Length": 6.4}, "id": 1} -> {"Sepal.Length": 6.4, "id": 1}
    """
    flat = {}
    for key, value in payload.items():
        name = f"{prefix}{key}"
        if isinstance(value, Mapping):
            flat.update(flatten_payload(value, prefix=f"{name}."))
        else:
            flat[name] = value
    return flat
