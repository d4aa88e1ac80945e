"""Filter state, its query-string encoding, and the session that owns it.

The encoded form is what a dashboard keeps in its URL fragment, e.g.
``category=ConfigGap&search=timeout&runs=r1%2Cr2``. Only set predicates are
written, and decoding resets every predicate the string does not mention.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field, fields, replace
from urllib.parse import parse_qs, urlencode

# Encoded key for each FilterState field, in encoding order
ENCODED_KEYS: dict[str, str] = {
    "category": "category",
    "status": "status",
    "component": "component",
    "date_from": "dateFrom",
    "date_to": "dateTo",
    "search": "search",
    "selected_runs": "runs",
}

# Separator for the selected run list
RUNS_SEPARATOR = ","


@dataclass
class FilterState:
    """Active query predicates. None, "" and [] all mean "unset"."""

    category: str | None = None
    status: str | None = None
    component: str | None = None
    date_from: str | None = None
    date_to: str | None = None
    search: str = ""
    selected_runs: list[str] = field(default_factory=list)

    def copy(self) -> FilterState:
        return replace(self, selected_runs=list(self.selected_runs))

    def to_dict(self) -> dict[str, object]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @property
    def is_empty(self) -> bool:
        return not encode(self)


def encode(state: FilterState) -> str:
    """Serialize the set predicates of a state to a query string."""
    params: list[tuple[str, str]] = []
    for attr, key in ENCODED_KEYS.items():
        value = getattr(state, attr)
        if attr == "selected_runs":
            if value:
                params.append((key, RUNS_SEPARATOR.join(value)))
        elif value:
            params.append((key, value))
    return urlencode(params)


def decode(text: str | None) -> FilterState:
    """Parse a query string produced by encode().

    A leading "#" or "?" is ignored, as are unknown keys. Keys that are
    missing or blank leave their predicate at its default.
    """
    text = (text or "").lstrip("#?")
    params = parse_qs(text, keep_blank_values=False)

    def first(key: str) -> str | None:
        values = params.get(key)
        return values[0] if values else None

    runs = first("runs")
    return FilterState(
        category=first("category"),
        status=first("status"),
        component=first("component"),
        date_from=first("dateFrom"),
        date_to=first("dateTo"),
        search=first("search") or "",
        selected_runs=[r for r in runs.split(RUNS_SEPARATOR) if r] if runs else [],
    )


Subscriber = Callable[[FilterState], None]


class FilterSession:
    """Owns the filter state of one dashboard session.

    Subscribers are called synchronously, in registration order, after
    every change. A subscriber must not call update() itself.
    """

    def __init__(self, state: FilterState | None = None) -> None:
        self.state = state if state is not None else FilterState()
        self.query = encode(self.state)
        self._subscribers: list[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a change callback.

        Returns:
            A function that removes the callback again.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def update(self, **patch: object) -> FilterState:
        """Merge predicate values into the state and notify subscribers.

        Raises:
            ValueError: If a key is not a FilterState field.
        """
        unknown = sorted(set(patch) - set(ENCODED_KEYS))
        if unknown:
            raise ValueError(f"Unknown filter field(s): {', '.join(unknown)}")
        for name, value in patch.items():
            if name == "selected_runs":
                value = [value] if isinstance(value, str) and value else list(value or [])
            elif name == "search":
                value = value or ""
            else:
                value = value or None
            setattr(self.state, name, value)
        self._changed()
        return self.state

    def restore(self, text: str | None) -> FilterState:
        """Replace the state from an encoded string and notify subscribers."""
        self.state = decode(text)
        self._changed()
        return self.state

    def close(self) -> None:
        """Drop all subscribers at the end of the session."""
        self._subscribers.clear()

    def _changed(self) -> None:
        self.query = encode(self.state)
        for callback in list(self._subscribers):
            callback(self.state)
