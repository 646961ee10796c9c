"""Data exchanged between peers, definition errors, and sync conditions."""

from __future__ import annotations

import enum
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, Union

from cockpitshare.util import InDataType

VarValue = Union[bool, int, float]


class DefinitionError(Exception):
    """An aircraft definition could not be loaded or applied."""


class MissingFieldError(DefinitionError):
    """A required field is absent or has the wrong type."""

    def __init__(self, field_name: str) -> None:
        super().__init__(f"missing field `{field_name}`")
        self.field_name = field_name


class InvalidCategoryError(DefinitionError):
    """A definition category is not one of shared, master, server or init."""

    def __init__(self, category: str) -> None:
        super().__init__(f"invalid category `{category}`")
        self.category = category


class InvalidSyncTypeError(DefinitionError):
    """A definition entry has an unknown ``type``."""

    def __init__(self, sync_type: str) -> None:
        super().__init__(f"invalid sync type `{sync_type}`")
        self.sync_type = sync_type


class IncludeError(DefinitionError):
    """An included definition file could not be parsed."""

    def __init__(self, message: str, file_name: str) -> None:
        super().__init__(f"error in included file {file_name}: {message}")
        self.message = message
        self.file_name = file_name


class MissingMappingError(DefinitionError):
    """Data arrived for a name that has no mapping."""

    def __init__(self, name: str) -> None:
        super().__init__(f"no mapping for `{name}`")
        self.name = name


class ProgramAction(enum.Enum):
    """Actions a definition can ask the program to perform."""

    TAKE_CONTROLS = "TakeControls"
    TRANSFER_CONTROLS = "TransferControls"


@dataclass(frozen=True)
class SyncPermission:
    """What the sender of some data is allowed to sync."""

    is_server: bool
    is_master: bool
    is_init: bool


@dataclass(frozen=True)
class KeyEvent:
    name: str
    value: int


@dataclass(frozen=True)
class JSEvent:
    name: str


@dataclass(frozen=True)
class JSInputEvent:
    instrument: str
    id: str
    value: str


@dataclass(frozen=True)
class TimeEvent:
    hour: int
    minute: int
    day: int
    year: int


SyncEvent = Union[KeyEvent, JSEvent, JSInputEvent, TimeEvent]


def _event_name(event: SyncEvent) -> str | None:
    if isinstance(event, (KeyEvent, JSEvent)):
        return event.name
    return None


@dataclass
class SyncData:
    """Aircraft variables, local variables and events waiting to be synced."""

    avars: dict[str, VarValue] = field(default_factory=dict)
    lvars: dict[str, VarValue] = field(default_factory=dict)
    events: list[SyncEvent] = field(default_factory=list)

    def filter(self, predicate: Callable[[str], bool]) -> None:
        """Drop variables and named events whose name fails ``predicate``."""
        self.avars = {k: v for k, v in self.avars.items() if predicate(k)}
        self.lvars = {k: v for k, v in self.lvars.items() if predicate(k)}
        self.events = [
            e
            for e in self.events
            if (name := _event_name(e)) is None or predicate(name)
        ]

    def split_off(self, predicate: Callable[[str], bool]) -> SyncData:
        """Keep only variables whose name satisfies ``predicate``.

        Everything else, including all events, is moved into the returned data.
        """
        rest = SyncData(
            avars={k: v for k, v in self.avars.items() if not predicate(k)},
            lvars={k: v for k, v in self.lvars.items() if not predicate(k)},
            events=self.events,
        )
        self.avars = {k: v for k, v in self.avars.items() if predicate(k)}
        self.lvars = {k: v for k, v in self.lvars.items() if predicate(k)}
        self.events = []
        return rest

    def is_empty(self) -> bool:
        return not (self.avars or self.lvars or self.events)

    def clear(self) -> None:
        self.avars.clear()
        self.lvars.clear()
        self.events.clear()


def _require_mapping(value: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise DefinitionError(f"{what} must be a mapping")
    return value


def _require_str(value: Mapping[str, Any], key: str) -> str:
    item = value.get(key)
    if not isinstance(item, str):
        raise MissingFieldError(key)
    return item


def _optional_str(value: Mapping[str, Any], key: str) -> str | None:
    item = value.get(key)
    if item is None:
        return None
    if not isinstance(item, str):
        raise DefinitionError(f"`{key}` must be a string")
    return item


def _optional_number(value: Mapping[str, Any], key: str) -> VarValue | None:
    item = value.get(key)
    if item is None:
        return None
    if not isinstance(item, (bool, int, float)):
        raise DefinitionError(f"`{key}` must be a number or boolean")
    return item


def _parse_data_type(value: Mapping[str, Any]) -> InDataType:
    name = _require_str(value, "var_type")
    try:
        return InDataType(name)
    except ValueError:
        raise DefinitionError(f"invalid var_type `{name}`") from None


@dataclass
class VarData:
    """The variable a condition watches."""

    var_name: str
    var_type: InDataType
    var_units: str | None = None


def _parse_var_data(value: Any) -> VarData:
    mapping = _require_mapping(value, "var")
    return VarData(
        var_name=_require_str(mapping, "var_name"),
        var_type=_parse_data_type(mapping),
        var_units=_optional_str(mapping, "var_units"),
    )


@dataclass
class Condition:
    """A test on a value, optionally joined with one further test by and/or."""

    var: VarData | None = None
    equals: VarValue | None = None
    greater_than: VarValue | None = None
    less_than: VarValue | None = None
    and_: Condition | None = None
    or_: Condition | None = None

    @classmethod
    def from_yaml(cls, value: Any) -> Condition | None:
        """Build a condition from parsed YAML; ``None`` gives ``None``."""
        if value is None:
            return None
        mapping = _require_mapping(value, "condition")
        if mapping.get("and") is not None and mapping.get("or") is not None:
            raise DefinitionError("condition may not have both `and` and `or`")
        var = mapping.get("var")
        return cls(
            var=None if var is None else _parse_var_data(var),
            equals=_optional_number(mapping, "equals"),
            greater_than=_optional_number(mapping, "greater_than"),
            less_than=_optional_number(mapping, "less_than"),
            and_=cls.from_yaml(mapping.get("and")),
            or_=cls.from_yaml(mapping.get("or")),
        )


class _VarSource(Protocol):
    def get_var(self, var_name: str) -> VarValue | None: ...


def evaluate_condition_values(condition: Condition, value: VarValue) -> bool:
    """Test ``value`` against the first of equals, greater_than, less_than set."""
    if condition.equals is not None:
        return value == condition.equals
    if condition.greater_than is not None:
        return value > condition.greater_than
    if condition.less_than is not None:
        return value < condition.less_than
    return False


def evaluate_condition(
    lvars: _VarSource,
    avars: _VarSource,
    condition: Condition,
    incoming_value: VarValue,
    other_incoming_values: Mapping[str, VarValue] | None,
) -> bool:
    """Evaluate one condition, ignoring any joined condition.

    Without a watched variable the incoming value is tested. Otherwise the
    watched variable is looked up among the other incoming values, then in
    the current local (``L:``) or aircraft variables; an unknown value
    counts as satisfied.
    """
    if condition.var is None:
        return evaluate_condition_values(condition, incoming_value)

    name = condition.var.var_name
    if other_incoming_values is not None and name in other_incoming_values:
        return evaluate_condition_values(condition, other_incoming_values[name])

    if name.startswith("L:"):
        current = lvars.get_var(name)
        if current is None:
            return True
        return evaluate_condition_values(condition, float(current))

    current = avars.get_var(name)
    if current is None:
        return True
    return evaluate_condition_values(condition, current)


def evaluate_conditions(
    lvars: _VarSource,
    avars: _VarSource,
    condition: Condition | None,
    incoming_value: VarValue,
    other_incoming_values: Mapping[str, VarValue] | None,
) -> bool:
    """Evaluate a condition and the one joined to it; no condition is satisfied."""
    if condition is None:
        return True
    satisfied = evaluate_condition(
        lvars, avars, condition, incoming_value, other_incoming_values
    )
    if condition.and_ is not None:
        satisfied = satisfied and evaluate_condition(
            lvars, avars, condition.and_, incoming_value, other_incoming_values
        )
    elif condition.or_ is not None:
        satisfied = satisfied or evaluate_condition(
            lvars, avars, condition.or_, incoming_value, other_incoming_values
        )
    return satisfied