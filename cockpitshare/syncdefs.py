"""Strategies that turn a received value into simulator commands."""

from __future__ import annotations

import abc
import math
from collections.abc import Iterable, Sequence
from decimal import Decimal
from typing import TYPE_CHECKING, Union

from cockpitshare.connector import EVENT_FLAG_GROUPID_IS_PRIORITY, SimConnector
from cockpitshare.util import NumberDigits, float_eq, wrap_diff

if TYPE_CHECKING:
    from cockpitshare.transfer import LVarSyncer

GROUP_ID = 5

Number = Union[int, float]

_U32_MASK = 0xFFFF_FFFF


def _format_number(value: bool | int | float) -> str:
    """Plain decimal text for a number: integral floats lose their fraction."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    if value.is_integer():
        if value == 0 and math.copysign(1.0, value) < 0:
            return "-0"
        return str(int(value))
    text = repr(value)
    if "e" in text or "E" in text:
        text = format(Decimal(text), "f")
    return text


def _to_u32_or_zero(value: Number | None) -> int:
    """Truncate to an unsigned 32-bit value, or 0 if that is impossible."""
    if value is None:
        return 0
    if isinstance(value, float):
        if math.isnan(value) or not -1.0 < value < 2.0**32:
            return 0
        return int(value)
    if 0 <= value <= _U32_MASK:
        return int(value)
    return 0


def _event_data(value: Number) -> int:
    """Event data word for a number: truncated, then reinterpreted as unsigned."""
    return int(value) & _U32_MASK


class Syncable(abc.ABC):
    """Tracks the local value of a variable and applies values received remotely."""

    @abc.abstractmethod
    def set_current(self, current) -> None:
        """Record the value currently in the simulator."""

    @abc.abstractmethod
    def set_new(self, new, conn: SimConnector, lvar_transfer: LVarSyncer) -> None:
        """Bring the simulator to ``new``."""


class ToggleSwitch(Syncable):
    """A switch flipped by an event.

    Boolean values are used as they are; numeric values count as "on" when
    they equal ``on_condition_value``.
    """

    def __init__(
        self,
        event_id: int,
        *,
        off_event_id: int | None = None,
        event_param: int | None = None,
        calculator_event_name: str | None = None,
        switch_on: bool = False,
        on_condition_value: float = 1.0,
    ) -> None:
        self.event_id = event_id
        self.off_event_id = off_event_id
        self.event_param = event_param
        if calculator_event_name is not None and calculator_event_name[1:2] != ":":
            calculator_event_name = f"K:{calculator_event_name}"
        self.event_name = calculator_event_name
        self.switch_on = switch_on
        self.on_condition_value = on_condition_value
        self.current = False

    def _is_on(self, value: bool | Number) -> bool:
        if isinstance(value, bool):
            return value
        return float_eq(float(value), self.on_condition_value)

    def set_current(self, current: bool | Number) -> None:
        self.current = self._is_on(current)

    def set_new(
        self, new: bool | Number, conn: SimConnector, lvar_transfer: LVarSyncer
    ) -> None:
        is_on = self._is_on(new)
        if self.current == is_on:
            return
        if not is_on and self.switch_on:
            return

        if self.event_name is not None:
            value = "" if self.event_param is None else str(self.event_param)
            lvar_transfer.set_unchecked(conn, self.event_name, None, value)
            return

        event_id = self.event_id
        if self.off_event_id is not None and not is_on:
            event_id = self.off_event_id
        param = 0 if self.event_param is None else self.event_param
        conn.transmit_client_event(1, event_id, param, GROUP_ID, 0)


class NumSet(Syncable):
    """Sets a number with a single event, optionally scaled and offset.

    With ``use_calculator`` or an ``event_param`` the event is fired through
    calculator code; an ``event_param`` is passed alongside the value.
    """

    def __init__(
        self,
        event_id: int,
        *,
        event_name: str | None = None,
        use_calculator: bool = False,
        event_param: int | None = None,
        index_reversed: bool = False,
        swap_event_id: int | None = None,
        multiply_by: Number | None = None,
        add_by: Number | None = None,
        is_user_event: bool = False,
    ) -> None:
        self.event_id = event_id
        self.event_name: str | None = None
        if event_name is not None and (use_calculator or event_param is not None):
            prefix = "K:2:" if event_param is not None else "K:"
            self.event_name = f"{prefix}{event_name}"
        self.event_param = event_param
        self.index_reversed = index_reversed
        self.swap_event_id = swap_event_id
        self.multiply_by = multiply_by
        self.add_by = add_by
        self.is_user_event = is_user_event
        self.current: Number = 0

    def set_current(self, current: Number) -> None:
        self.current = current

    def set_new(self, new: Number, conn: SimConnector, lvar_transfer: LVarSyncer) -> None:
        if new == self.current:
            return

        object_id = 0 if self.is_user_event else 1
        value = new
        if self.multiply_by is not None:
            value = value * self.multiply_by
        if self.add_by is not None:
            value = value + self.add_by

        if self.event_name is not None:
            text = _format_number(value)
            if self.event_param is not None:
                if self.index_reversed:
                    text = f"{text} {self.event_param}"
                else:
                    text = f"{self.event_param} {text}"
            lvar_transfer.set_unchecked(conn, self.event_name, None, text)
        else:
            conn.transmit_client_event(
                object_id,
                self.event_id,
                _event_data(value),
                GROUP_ID,
                EVENT_FLAG_GROUPID_IS_PRIORITY,
            )

        if self.swap_event_id is not None:
            conn.transmit_client_event(
                object_id,
                self.swap_event_id,
                0,
                GROUP_ID,
                EVENT_FLAG_GROUPID_IS_PRIORITY,
            )


class NumIncrement(Syncable):
    """Reaches a number by repeated up/down events, or one event carrying the difference.

    Events are identified either by id or, through calculator code, by name.
    """

    def __init__(
        self,
        increment_by: Number,
        *,
        is_user_event: bool = False,
        pass_difference: bool = False,
        up_event_id: int | None = None,
        down_event_id: int | None = None,
        up_event_name: str | None = None,
        down_event_name: str | None = None,
        up_event_param: Number | None = None,
        down_event_param: Number | None = None,
    ) -> None:
        if not increment_by > 0:
            raise ValueError("increment_by must be positive")
        self.increment_amount = increment_by
        self.is_user_event = is_user_event
        self.pass_difference = pass_difference
        self.up_event_id = up_event_id
        self.down_event_id = down_event_id
        self.up_event_name = None if up_event_name is None else f"K:{up_event_name}"
        self.down_event_name = (
            None if down_event_name is None else f"K:{down_event_name}"
        )
        self.up_event_param = up_event_param
        self.down_event_param = down_event_param
        self.current: Number = 0

    def set_current(self, current: Number) -> None:
        self.current = current

    def _fire(
        self,
        conn: SimConnector,
        lvar_transfer: LVarSyncer,
        event_id: int | None,
        event_name: str | None,
        data: int,
    ) -> None:
        if event_id is not None:
            conn.transmit_client_event(
                0 if self.is_user_event else 1,
                event_id,
                data,
                GROUP_ID,
                EVENT_FLAG_GROUPID_IS_PRIORITY,
            )
        elif event_name is not None:
            lvar_transfer.set_unchecked(conn, event_name, None, str(data))

    def set_new(self, new: Number, conn: SimConnector, lvar_transfer: LVarSyncer) -> None:
        if self.pass_difference:
            if new > self.current:
                difference = _event_data(new - self.current)
                self._fire(
                    conn, lvar_transfer, self.up_event_id, self.up_event_name, difference
                )
            elif new < self.current:
                difference = _event_data(self.current - new)
                # Calculator fallback deliberately uses the up event name.
                self._fire(
                    conn, lvar_transfer, self.down_event_id, self.up_event_name, difference
                )
            return

        working = self.current
        down_param = _to_u32_or_zero(self.down_event_param)
        while working > new:
            working -= self.increment_amount
            self._fire(
                conn, lvar_transfer, self.down_event_id, self.down_event_name, down_param
            )

        up_param = _to_u32_or_zero(self.up_event_param)
        while working < new:
            working += self.increment_amount
            self._fire(conn, lvar_transfer, self.up_event_id, self.up_event_name, up_param)


class NumDigitSet(Syncable):
    """Sets a number digit by digit with per-digit increment and decrement events.

    Index 0 of each event list belongs to the ones place.
    """

    def __init__(
        self, inc_event_ids: Iterable[int], dec_event_ids: Iterable[int]
    ) -> None:
        self.inc_event_ids: Sequence[int] = list(inc_event_ids)
        self.dec_event_ids: Sequence[int] = list(dec_event_ids)
        self.current = NumberDigits(0)

    def set_current(self, current: int) -> None:
        self.current = NumberDigits(current)

    def set_new(self, new: int, conn: SimConnector, lvar_transfer: LVarSyncer) -> None:
        target = NumberDigits(new)
        for index, inc_event_id in enumerate(self.inc_event_ids):
            wanted = target.get(index)
            have = self.current.get(index)
            if have > wanted:
                dec_event_id = self.dec_event_ids[index]
                for _ in range(have - wanted):
                    conn.transmit_client_event(1, dec_event_id, 0, GROUP_ID, 0)
            for _ in range(wanted - have):
                conn.transmit_client_event(1, inc_event_id, 0, GROUP_ID, 0)


class CustomCalculator(Syncable):
    """Runs fixed calculator code whenever the value changes."""

    def __init__(self, set_string: str) -> None:
        self.set_string = set_string
        self.current = 0.0

    def set_current(self, current: float) -> None:
        self.current = current

    def set_new(self, new: float, conn: SimConnector, lvar_transfer: LVarSyncer) -> None:
        if float_eq(self.current, new):
            return
        lvar_transfer.send_raw(conn, self.set_string)


class LocalVarProxy(Syncable):
    """Writes the received value to another variable, and optionally back to itself."""

    def __init__(self, target: str, loopback_var: str | None = None) -> None:
        self.target = target
        self.loopback_var = loopback_var

    def set_current(self, current: float) -> None:
        pass

    def set_new(self, new: float, conn: SimConnector, lvar_transfer: LVarSyncer) -> None:
        text = _format_number(new)
        lvar_transfer.set(conn, self.target, text)
        if self.loopback_var is not None:
            lvar_transfer.set(conn, self.loopback_var, text)


class MultiplyDifferenceLocalVarSet(Syncable):
    """Writes the scaled, wrap-aware change of a value to a target variable."""

    def __init__(
        self,
        target: str,
        multiply_by: float,
        max_val: float,
        loopback_var: str | None = None,
    ) -> None:
        self.target = target
        self.multiply_by = multiply_by
        self.max_val = max_val
        self.loopback_var = loopback_var
        self.current = 0.0

    def set_current(self, current: float) -> None:
        self.current = current

    def set_new(self, new: float, conn: SimConnector, lvar_transfer: LVarSyncer) -> None:
        change = wrap_diff(self.current, new, self.max_val) * self.multiply_by
        lvar_transfer.set(conn, self.target, _format_number(change))
        if self.loopback_var is not None:
            lvar_transfer.set(conn, self.loopback_var, _format_number(new))


class ResetWhenEquals(Syncable):
    """Sets a target once; armed again when the value equals one of ``equals``."""

    def __init__(self, target: str, equals: Iterable[float]) -> None:
        self.target = target
        self.equals = list(equals)
        self.did_trigger = False

    def set_current(self, current: float) -> None:
        if current in self.equals:
            self.did_trigger = False

    def set_new(self, new: float, conn: SimConnector, lvar_transfer: LVarSyncer) -> None:
        if new in self.equals:
            self.did_trigger = False
            return
        if self.did_trigger:
            return
        self.did_trigger = True
        lvar_transfer.set(conn, self.target, "1.0")