import struct

import pytest

from cockpitshare.syncdata import (
    Condition,
    DefinitionError,
    JSEvent,
    KeyEvent,
    MissingFieldError,
    ProgramAction,
    SyncData,
    TimeEvent,
    VarData,
    evaluate_condition,
    evaluate_condition_values,
    evaluate_conditions,
)
from cockpitshare.transfer import AircraftVars, LVarSyncer
from cockpitshare.util import InDataType


@pytest.fixture
def lvars():
    syncer = LVarSyncer()
    syncer.add_var("L:GEAR", None)
    data = struct.pack("=I4x", 1) + struct.pack("=i4xd", 0, 5.0)
    syncer.process_client_data(data)
    return syncer


@pytest.fixture
def avars():
    aircraft = AircraftVars(1)
    aircraft.add_var("INDICATED ALTITUDE", "feet", InDataType.F64)
    aircraft.read_vars(1, struct.pack("<Id", 0, 100.0))
    return aircraft


def test_from_yaml_none():
    assert Condition.from_yaml(None) is None


def test_from_yaml_full():
    cond = Condition.from_yaml(
        {
            "var": {"var_name": "L:GEAR", "var_type": "f64"},
            "equals": 1.0,
            "or": {"greater_than": 3},
        }
    )
    assert cond.var == VarData("L:GEAR", InDataType.F64, None)
    assert cond.equals == 1.0
    assert cond.or_ == Condition(greater_than=3)
    assert cond.and_ is None


def test_from_yaml_both_joins_rejected():
    with pytest.raises(DefinitionError):
        Condition.from_yaml({"equals": 1, "and": {"equals": 1}, "or": {"equals": 2}})


def test_from_yaml_missing_var_name():
    with pytest.raises(MissingFieldError) as info:
        Condition.from_yaml({"var": {"var_type": "f64"}})
    assert info.value.field_name == "var_name"


def test_from_yaml_bad_type():
    with pytest.raises(DefinitionError):
        Condition.from_yaml({"var": {"var_name": "X", "var_type": "u8"}})
    with pytest.raises(DefinitionError):
        Condition.from_yaml({"equals": "yes please"})


def test_condition_values():
    assert evaluate_condition_values(Condition(equals=2), 2) is True
    assert evaluate_condition_values(Condition(equals=2), 3) is False
    assert evaluate_condition_values(Condition(greater_than=2), 3) is True
    assert evaluate_condition_values(Condition(less_than=2), 3) is False
    assert evaluate_condition_values(Condition(), 3) is False


def test_equals_takes_precedence():
    cond = Condition(equals=5, greater_than=100)
    assert evaluate_condition_values(cond, 5) is True


def test_condition_without_var_uses_incoming(lvars, avars):
    cond = Condition(equals=True)
    assert evaluate_condition(lvars, avars, cond, True, None) is True
    assert evaluate_condition(lvars, avars, cond, False, None) is False


def test_condition_prefers_other_incoming(lvars, avars):
    cond = Condition(var=VarData("L:GEAR", InDataType.F64), equals=7.0)
    assert evaluate_condition(lvars, avars, cond, 0.0, {"L:GEAR": 7.0}) is True
    assert evaluate_condition(lvars, avars, cond, 0.0, None) is False


def test_condition_reads_lvar(lvars, avars):
    cond = Condition(var=VarData("L:GEAR", InDataType.F64), equals=5.0)
    assert evaluate_condition(lvars, avars, cond, 0.0, None) is True


def test_condition_unknown_var_is_satisfied(lvars, avars):
    cond = Condition(var=VarData("L:MISSING", InDataType.F64), equals=5.0)
    assert evaluate_condition(lvars, avars, cond, 0.0, None) is True
    cond = Condition(var=VarData("MISSING", InDataType.F64), equals=5.0)
    assert evaluate_condition(lvars, avars, cond, 0.0, None) is True


def test_condition_reads_avar(lvars, avars):
    cond = Condition(var=VarData("INDICATED ALTITUDE", InDataType.F64), greater_than=50.0)
    assert evaluate_condition(lvars, avars, cond, 0.0, None) is True
    cond = Condition(var=VarData("INDICATED ALTITUDE", InDataType.F64), less_than=50.0)
    assert evaluate_condition(lvars, avars, cond, 0.0, None) is False


def test_conditions_none_is_true(lvars, avars):
    assert evaluate_conditions(lvars, avars, None, 0, None) is True


def test_conditions_and_or(lvars, avars):
    and_cond = Condition(equals=1, and_=Condition(greater_than=5))
    assert evaluate_conditions(lvars, avars, and_cond, 1, None) is False
    or_cond = Condition(equals=1, or_=Condition(greater_than=5))
    assert evaluate_conditions(lvars, avars, or_cond, 10, None) is True
    assert evaluate_conditions(lvars, avars, or_cond, 3, None) is False


def test_nested_join_is_not_followed(lvars, avars):
    inner = Condition(equals=1, or_=Condition(equals=2))
    cond = Condition(equals=2, and_=inner)
    assert evaluate_conditions(lvars, avars, cond, 2, None) is False


def test_filter():
    data = SyncData(
        avars={"A": 1.0, "B": 2.0},
        lvars={"L:A": 3.0, "L:B": 4.0},
        events=[KeyEvent("B", 1), KeyEvent("A", 2), TimeEvent(1, 2, 3, 4)],
    )
    data.filter(lambda name: not name.endswith("B"))
    assert data.avars == {"A": 1.0}
    assert data.lvars == {"L:A": 3.0}
    assert data.events == [KeyEvent("A", 2), TimeEvent(1, 2, 3, 4)]


def test_split_off():
    data = SyncData(
        avars={"A": 1.0, "B": 2.0},
        lvars={"L:A": 3.0},
        events=[JSEvent("H:X")],
    )
    rest = data.split_off(lambda name: name == "A")
    assert data.avars == {"A": 1.0}
    assert data.lvars == {}
    assert data.events == []
    assert rest.avars == {"B": 2.0}
    assert rest.lvars == {"L:A": 3.0}
    assert rest.events == [JSEvent("H:X")]


def test_is_empty_and_clear():
    data = SyncData()
    assert data.is_empty()
    data.lvars["L:A"] = 1.0
    assert not data.is_empty()
    data.clear()
    assert data.is_empty()


def test_program_action_names():
    assert ProgramAction("TakeControls") is ProgramAction.TAKE_CONTROLS
    assert ProgramAction("TransferControls") is ProgramAction.TRANSFER_CONTROLS
    with pytest.raises(ValueError):
        ProgramAction("Nothing")