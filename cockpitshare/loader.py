"""Loading aircraft definition files into mappings, variables and events."""

from __future__ import annotations

import collections.abc
import enum
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

import msgpack
import yaml

from cockpitshare.gaugecommunicator import InterpolationType
from cockpitshare.syncdata import (
    Condition,
    DefinitionError,
    IncludeError,
    InvalidCategoryError,
    InvalidSyncTypeError,
    MissingFieldError,
    ProgramAction,
)
from cockpitshare.syncdefs import (
    CustomCalculator,
    LocalVarProxy,
    MultiplyDifferenceLocalVarSet,
    NumDigitSet,
    NumIncrement,
    NumSet,
    ResetWhenEquals,
    Syncable,
    ToggleSwitch,
)
from cockpitshare.transfer import AircraftVars, Events, LVarSyncer
from cockpitshare.util import Category, InDataType

_I32_MIN = -(2**31)
_I32_MAX = 2**31 - 1
_U32_MAX = 2**32 - 1


class _YamlError(DefinitionError):
    """A definition document or entry does not have the expected shape."""

    def __init__(self, message: str, path: str = "") -> None:
        super().__init__(f"{path}: {message}" if path else message)
        self.message = message
        self.path = path


class VarKind(enum.Enum):
    """Whether a variable is an aircraft variable or a local (``L:``) variable."""

    AIRCRAFT_VAR = "aircraft"
    LOCAL_VAR = "local"


@dataclass(frozen=True)
class VarOnly:
    """The variable is synced by writing its value directly."""


@dataclass(frozen=True)
class EventAction:
    """A key event that is replayed on the receiving side."""

    use_calculator: bool = False


Action = Union[Syncable, ProgramAction, EventAction, VarOnly]


@dataclass
class Mapping:
    """How a variable or event is synced.

    ``value_type`` is the kind of value a :class:`Syncable` action accepts;
    it is ``None`` for the other actions.
    """

    action: Action = field(default_factory=VarOnly)
    condition: Condition | None = None
    cancel_h_events: bool = False
    value_type: InDataType | None = None


class Period:
    """Limits how often a value is sent: at most once every ``time`` seconds."""

    def __init__(self, time: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.time = time
        self._clock = clock
        self._last_update: float | None = None

    def do_update(self) -> bool:
        """Whether an update is due now; starts a new period if so."""
        now = self._clock()
        if self._last_update is None or now - self._last_update >= self.time:
            self._last_update = now
            return True
        return False


class WriteTracker:
    """Remembers which names were written within the last second."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._written: dict[str, float] = {}

    def mark(self, name: str) -> None:
        self._written[name] = self._clock()

    def wrote_recently(self, name: str) -> bool:
        written = self._written.get(name)
        return written is not None and self._clock() - written < 1.0

    def clear(self) -> None:
        self._written.clear()


def category_from_string(category: str) -> Category:
    """Parse a category name, ignoring case."""
    try:
        return Category(category.lower())
    except ValueError:
        raise InvalidCategoryError(category) from None


def data_type_from_string(string: str) -> InDataType:
    """Parse ``i32``, ``f64`` or ``bool``."""
    types = {"i32": InDataType.I32, "f64": InDataType.F64, "bool": InDataType.BOOL}
    try:
        return types[string]
    except KeyError:
        raise MissingFieldError("var_type") from None


def real_var_name(var_name: str) -> str:
    """Strip a one letter prefix such as ``A:`` from a variable name."""
    if var_name[1:2] == ":":
        return var_name[2:]
    return var_name


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class _Entry:
    """Typed access to the fields of one definition entry."""

    def __init__(self, value: Any) -> None:
        if not isinstance(value, collections.abc.Mapping):
            raise _YamlError("definition entry must be a mapping")
        self._data = value

    def _get(self, key: str, required: bool) -> Any:
        value = self._data.get(key)
        if value is None and required:
            raise _YamlError(f"missing field `{key}`")
        return value

    def req_str(self, key: str) -> str:
        value = self._get(key, True)
        if not isinstance(value, str):
            raise _YamlError(f"`{key}` must be a string")
        return value

    def opt_str(self, key: str) -> str | None:
        value = self._get(key, False)
        if value is not None and not isinstance(value, str):
            raise _YamlError(f"`{key}` must be a string")
        return value

    def flag(self, key: str) -> bool:
        if key not in self._data:
            return False
        value = self._data[key]
        if not isinstance(value, bool):
            raise _YamlError(f"`{key}` must be a boolean")
        return value

    def opt_u32(self, key: str) -> int | None:
        value = self._get(key, False)
        if value is None:
            return None
        if not _is_int(value) or not 0 <= value <= _U32_MAX:
            raise _YamlError(f"`{key}` must be an unsigned 32-bit integer")
        return value

    def _float(self, key: str, value: Any) -> float:
        if not _is_number(value):
            raise _YamlError(f"`{key}` must be a number")
        return float(value)

    def req_float(self, key: str) -> float:
        return self._float(key, self._get(key, True))

    def opt_float(self, key: str) -> float | None:
        value = self._get(key, False)
        return None if value is None else self._float(key, value)

    def number(self, key: str, data_type: InDataType, required: bool) -> int | float | None:
        value = self._get(key, required)
        if value is None:
            return None
        if data_type is InDataType.I32:
            if not _is_int(value) or not _I32_MIN <= value <= _I32_MAX:
                raise _YamlError(f"`{key}` must be a 32-bit integer")
            return value
        return self._float(key, value)

    def str_list(self, key: str) -> list[str]:
        value = self._get(key, True)
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise _YamlError(f"`{key}` must be a list of strings")
        return value

    def float_list(self, key: str) -> list[float]:
        value = self._get(key, True)
        if not isinstance(value, list):
            raise _YamlError(f"`{key}` must be a list of numbers")
        return [self._float(key, v) for v in value]

    def enum(self, key: str, enum_type: type[enum.Enum], required: bool) -> Any:
        value = self._get(key, required)
        if value is None:
            return None
        try:
            return enum_type(value)
        except (ValueError, TypeError):
            raise _YamlError(f"invalid value for `{key}`: {value!r}") from None

    def condition(self, key: str = "condition") -> Condition | None:
        try:
            return Condition.from_yaml(self._data.get(key))
        except DefinitionError as error:
            raise _YamlError(str(error)) from error


def _check_document(document: Any, source: str) -> dict[str, list[Any]]:
    if not isinstance(document, dict):
        raise _YamlError("definition document must be a mapping", source)
    for key, values in document.items():
        if not isinstance(key, str):
            raise _YamlError("definition keys must be strings", source)
        if not isinstance(values, list):
            raise _YamlError(f"`{key}` must hold a list", source)
    return document


class DefinitionLoader:
    """Reads definition files and registers everything they describe."""

    def __init__(self) -> None:
        self._definitions_buffer: dict[str, list[Any]] = {}
        self.mappings: dict[str, list[Mapping]] = {}
        self.events = Events(1)
        self.lvarstransfer = LVarSyncer()
        self.avarstransfer = AircraftVars(1)
        self.categories: dict[str, Category] = {}
        self.periods: dict[str, Period] = {}
        self.unreliable_vars: set[str] = set()
        self.do_not_sync: set[str] = set()
        self.interpolate_vars: set[str] = set()

    # Registration helpers

    def _add_var_string(
        self,
        category: str,
        var_name: str,
        var_units: str | None,
        var_type: InDataType,
    ) -> tuple[str, VarKind]:
        if var_name.startswith("L:"):
            parsed = category_from_string(category)
            self.lvarstransfer.add_var(var_name, var_units)
            self.categories[var_name] = parsed
            return var_name, VarKind.LOCAL_VAR
        actual = real_var_name(var_name)
        if var_units is None:
            raise MissingFieldError("var_units")
        parsed = category_from_string(category)
        self.avarstransfer.add_var(actual, var_units, var_type)
        self.categories[actual] = parsed
        return actual, VarKind.AIRCRAFT_VAR

    def _add_mapping(self, var_name: str, mapping: Mapping) -> None:
        condition = mapping.condition
        if condition is not None and condition.var is not None:
            name, _ = self._add_var_string(
                "shared",
                condition.var.var_name,
                condition.var.var_units,
                condition.var.var_type,
            )
            condition.var.var_name = name
        self.do_not_sync.discard(var_name)
        self.mappings.setdefault(var_name, []).append(mapping)

    def _add_to_buffer(self, category: str, value: Any) -> None:
        self._definitions_buffer.setdefault(category, []).append(value)

    # Entry types

    def _add_var(self, category: str, value: Any) -> None:
        entry = _Entry(value)
        var_name = entry.req_str("var_name")
        var_units = entry.opt_str("var_units")
        var_type = entry.enum("var_type", InDataType, False) or InDataType.F64
        update_every = entry.opt_float("update_every")
        condition = entry.condition()
        interpolate = entry.enum("interpolate", InterpolationType, False)
        unreliable = entry.flag("unreliable")
        cancel_h_events = entry.flag("cancel_h_events")

        name, kind = self._add_var_string(category, var_name, var_units, var_type)
        if interpolate is not None:
            self.interpolate_vars.add(name)
            if kind is VarKind.AIRCRAFT_VAR:
                self.lvarstransfer.transfer.add_interpolate_mapping(
                    var_name, name, var_units, interpolate
                )
        if unreliable:
            self.unreliable_vars.add(name)
        if update_every is not None:
            self.periods[name] = Period(update_every)
        self._add_mapping(name, Mapping(VarOnly(), condition, cancel_h_events))

    def _add_event(self, category: str, value: Any) -> None:
        entry = _Entry(value)
        event_name = entry.req_str("event_name")
        use_calculator = entry.flag("use_calculator")
        cancel_h_events = entry.flag("cancel_h_events")
        condition = entry.condition()

        parsed = category_from_string(category)
        self.events.get_or_map_event_id(event_name, True)
        self.categories[event_name] = parsed
        self._add_mapping(
            event_name, Mapping(EventAction(use_calculator), condition, cancel_h_events)
        )

    def _add_toggle_switch(self, category: str, value: Any) -> None:
        entry = _Entry(value)
        var_name = entry.req_str("var_name")
        var_units = entry.opt_str("var_units")
        event_name = entry.req_str("event_name")
        off_event_name = entry.opt_str("off_event_name")
        event_param = entry.opt_u32("event_param")
        switch_on = entry.flag("switch_on")
        use_calculator = entry.flag("use_calculator")
        on_condition_value = entry.opt_float("on_condition_value")
        condition = entry.condition()
        cancel_h_events = entry.flag("cancel_h_events")

        event_id = self.events.get_or_map_event_id(event_name, False)
        name, kind = self._add_var_string(category, var_name, var_units, InDataType.BOOL)
        off_event_id = None
        if off_event_name is not None:
            off_event_id = self.events.get_or_map_event_id(off_event_name, False)
        action = ToggleSwitch(
            event_id,
            off_event_id=off_event_id,
            event_param=event_param,
            calculator_event_name=event_name if use_calculator else None,
            switch_on=switch_on,
            on_condition_value=1.0 if on_condition_value is None else on_condition_value,
        )
        value_type = InDataType.BOOL if kind is VarKind.AIRCRAFT_VAR else InDataType.F64
        self._add_mapping(name, Mapping(action, condition, cancel_h_events, value_type))

    def _add_num_set(self, category: str, value: Any) -> None:
        data_type = self._read_number_type(value)
        entry = _Entry(value)
        condition = entry.condition()
        cancel_h_events = value.get("cancel_h_events") is True
        if data_type is InDataType.BOOL:
            return

        var_name = entry.req_str("var_name")
        var_units = entry.opt_str("var_units")
        event_name = entry.req_str("event_name")
        event_param = entry.opt_u32("event_param")
        multiply_by = entry.number("multiply_by", data_type, False)
        add_by = entry.number("add_by", data_type, False)
        interpolate = entry.enum("interpolate", InterpolationType, False)
        use_calculator = entry.flag("use_calculator")
        is_user_event = entry.flag("is_user_event")
        index_reversed = entry.flag("index_reversed")
        swap_event_name = entry.opt_str("swap_event_name")
        unreliable = entry.flag("unreliable")

        event_id = self.events.get_or_map_event_id(event_name, False)
        name, _ = self._add_var_string(category, var_name, var_units, data_type)

        if interpolate is not None:
            self.lvarstransfer.transfer.add_interpolate_mapping(
                f"K:{event_name}", name, var_units, interpolate
            )
            self.interpolate_vars.add(name)
            self._add_mapping(name, Mapping(VarOnly(), entry.condition()))
            return

        if unreliable:
            self.unreliable_vars.add(name)
        swap_event_id = None
        if swap_event_name is not None:
            swap_event_id = self.events.get_or_map_event_id(swap_event_name, False)
        action = NumSet(
            event_id,
            event_name=event_name,
            use_calculator=use_calculator,
            event_param=event_param,
            index_reversed=index_reversed,
            swap_event_id=swap_event_id,
            multiply_by=multiply_by,
            add_by=add_by,
            is_user_event=is_user_event,
        )
        self._add_mapping(name, Mapping(action, condition, cancel_h_events, data_type))

    def _add_num_increment(self, category: str, value: Any) -> None:
        data_type = self._read_number_type(value)
        entry = _Entry(value)
        condition = entry.condition("conditions")
        cancel_h_events = value.get("cancel_h_events") is True
        if data_type is InDataType.BOOL:
            return

        var_name = entry.req_str("var_name")
        var_units = entry.opt_str("var_units")
        up_event_name = entry.req_str("up_event_name")
        up_event_param = entry.number("up_event_param", data_type, False)
        down_event_name = entry.req_str("down_event_name")
        down_event_param = entry.number("down_event_param", data_type, False)
        increment_by = entry.number("increment_by", data_type, True)
        pass_difference = entry.flag("pass_difference")
        is_user_event = entry.flag("is_user_event")
        use_calculator = entry.flag("use_calculator")

        name, _ = self._add_var_string(category, var_name, var_units, data_type)
        names: dict[str, Any] = {}
        if use_calculator:
            names = {"up_event_name": up_event_name, "down_event_name": down_event_name}
        else:
            names = {
                "up_event_id": self.events.get_or_map_event_id(up_event_name, False),
                "down_event_id": self.events.get_or_map_event_id(down_event_name, False),
            }
        try:
            action = NumIncrement(
                increment_by,
                is_user_event=is_user_event,
                pass_difference=pass_difference,
                up_event_param=up_event_param,
                down_event_param=down_event_param,
                **names,
            )
        except ValueError as error:
            raise DefinitionError(str(error)) from error
        self._add_mapping(name, Mapping(action, condition, cancel_h_events, data_type))

    def _add_num_digit_set(self, category: str, value: Any) -> None:
        entry = _Entry(value)
        var_name = entry.req_str("var_name")
        var_units = entry.opt_str("var_units")
        up_names = entry.str_list("up_event_names")
        down_names = entry.str_list("down_event_names")
        condition = entry.condition()
        cancel_h_events = entry.flag("cancel_h_events")

        up_ids = [self.events.get_or_map_event_id(n, False) for n in up_names]
        down_ids = [self.events.get_or_map_event_id(n, False) for n in down_names]
        name, _ = self._add_var_string(category, var_name, var_units, InDataType.I32)
        self._add_mapping(
            name,
            Mapping(NumDigitSet(up_ids, down_ids), condition, cancel_h_events, InDataType.I32),
        )

    def _add_custom_calculator(self, category: str, value: Any) -> None:
        entry = _Entry(value)
        get = entry.req_str("get")
        set_string = entry.req_str("set")
        condition = entry.condition()
        cancel_h_events = entry.flag("cancel_h_events")

        parsed = category_from_string(category)
        name = self.lvarstransfer.add_custom_var(get)
        self.categories[name] = parsed
        self._add_mapping(
            name,
            Mapping(CustomCalculator(set_string), condition, cancel_h_events, InDataType.F64),
        )

    def _add_local_var_proxy(self, category: str, value: Any) -> None:
        entry = _Entry(value)
        var_name = entry.req_str("var_name")
        target = entry.req_str("target")
        loopback = entry.flag("loopback")
        condition = entry.condition()

        name, _ = self._add_var_string(category, var_name, None, InDataType.F64)
        action = LocalVarProxy(target, name if loopback else None)
        self._add_mapping(name, Mapping(action, condition, value_type=InDataType.F64))

    def _add_multiply_difference_local_var(self, category: str, value: Any) -> None:
        entry = _Entry(value)
        var_name = entry.req_str("var_name")
        target = entry.req_str("target")
        multiply_by = entry.req_float("multiply_by")
        max_val = entry.req_float("max_val")
        loopback = entry.flag("loopback")
        condition = entry.condition()

        name, _ = self._add_var_string(category, var_name, None, InDataType.F64)
        action = MultiplyDifferenceLocalVarSet(
            target, multiply_by, max_val, name if loopback else None
        )
        self._add_mapping(name, Mapping(action, condition, value_type=InDataType.F64))

    def _add_reset_when_equals(self, category: str, value: Any) -> None:
        entry = _Entry(value)
        var_name = entry.req_str("var_name")
        target = entry.req_str("target")
        equals = entry.float_list("equals")
        condition = entry.condition()

        name, _ = self._add_var_string(category, var_name, None, InDataType.F64)
        self._add_mapping(
            name,
            Mapping(ResetWhenEquals(target, equals), condition, value_type=InDataType.F64),
        )

    def _add_program_action(self, category: str, value: Any) -> None:
        entry = _Entry(value)
        var_name = entry.req_str("var_name")
        var_units = entry.opt_str("var_units")
        var_type = entry.enum("var_type", InDataType, True)
        condition = entry.condition()
        action = entry.enum("action", ProgramAction, True)

        name, _ = self._add_var_string(category, var_name, var_units, var_type)
        self._add_mapping(name, Mapping(action, condition))

    def _add_program_action_event(self, category: str, value: Any) -> None:
        entry = _Entry(value)
        event_name = entry.req_str("event_name")
        action = entry.enum("action", ProgramAction, True)

        parsed = category_from_string(category)
        self.events.get_or_map_event_id(event_name, True)
        self.categories[event_name] = parsed
        self._add_mapping(event_name, Mapping(action))

    @staticmethod
    def _read_number_type(value: Any) -> InDataType:
        var_type = value.get("var_type")
        if not isinstance(var_type, str):
            raise MissingFieldError("var_type")
        return data_type_from_string(var_type)

    # Documents

    def _parse_var(self, category: str, value: Any) -> None:
        if not isinstance(value, collections.abc.Mapping):
            raise MissingFieldError("type")
        type_str = value.get("type")
        if not isinstance(type_str, str):
            raise MissingFieldError("type")
        handlers = {
            "VAR": self._add_var,
            "EVENT": self._add_event,
            "TOGGLESWITCH": self._add_toggle_switch,
            "NUMSET": self._add_num_set,
            "NUMINCREMENT": self._add_num_increment,
            "NUMDIGITSET": self._add_num_digit_set,
            "CUSTOMCALCULATOR": self._add_custom_calculator,
            "PROGRAMACTION": self._add_program_action,
            "LOCALVARPROXY": self._add_local_var_proxy,
            "RESETWHENEQUALS": self._add_reset_when_equals,
            "MULTIPLYDIFFERENCELOCALVAR": self._add_multiply_difference_local_var,
            "PROGRAMACTIONEVENT": self._add_program_action_event,
        }
        handler = handlers.get(type_str.upper())
        if handler is None:
            raise InvalidSyncTypeError(type_str)
        handler(category, value)
        self._add_to_buffer(category, value)

    def _parse_document(self, document: dict[str, list[Any]]) -> None:
        for key, values in document.items():
            if key == "include":
                for include_file in values:
                    if not isinstance(include_file, str):
                        raise _YamlError("include entries must be file names")
                    try:
                        self.load_config(include_file)
                    except _YamlError as error:
                        raise IncludeError(error.message, include_file) from error
                    except (OSError, DefinitionError):
                        pass
            elif key == "ignore":
                for ignore_value in values:
                    if not isinstance(ignore_value, str):
                        raise _YamlError("ignore entries must be names")
                    self.do_not_sync.add(ignore_value)
                    self._add_to_buffer(key, ignore_value)
            else:
                for var_data in values:
                    self._parse_var(key, var_data)

    def load_config(self, path: str | Path) -> None:
        """Load a YAML definition file and any files it includes.

        Raises :class:`OSError` if the file cannot be opened and
        :class:`DefinitionError` for a malformed definition.
        """
        source = str(path)
        with open(path, encoding="utf-8") as handle:
            try:
                document = yaml.safe_load(handle)
            except (yaml.YAMLError, UnicodeDecodeError) as error:
                raise _YamlError(str(error), source) from error
        self._parse_document(_check_document(document, source))

    def load_config_from_bytes(self, data: bytes) -> None:
        """Load definitions produced by :meth:`get_buffer_bytes`."""
        try:
            document = msgpack.unpackb(bytes(data), raw=False)
        except (ValueError, TypeError) as error:
            raise DefinitionError(f"invalid definition data: {error}") from error
        self._parse_document(_check_document(document, "<bytes>"))

    def get_buffer_bytes(self) -> bytes:
        """Every loaded definition entry, grouped by category, as MessagePack."""
        return msgpack.packb(self._definitions_buffer, use_bin_type=True)

    def number_avars(self) -> int:
        return len(self.avarstransfer)

    def number_events(self) -> int:
        return len(self.events)

    def number_lvars(self) -> int:
        return len(self.lvarstransfer)