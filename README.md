# cockpitshare

Building blocks for shared-cockpit synchronisation in flight simulators.
`cockpitshare` reads aircraft definition files written in YAML, registers the
aircraft variables, local (`L:`) variables and key events they describe, and
provides the strategies that turn a value received from another pilot into
simulator commands.

## Installation

```
pip install cockpitshare
```

To run the test suite:

```
pip install "cockpitshare[test]"
pytest
```

## Aircraft definitions

A definition file maps categories (`shared`, `master`, `server`, `init`,
case-insensitive) to lists of entries. The keys `include` (further files to
load) and `ignore` (names that are not to be synced) are handled specially.
Every other entry has a `type`:

```yaml
include:
  - definitions/common.yaml
ignore:
  - L:SOME_VAR_NOT_TO_SYNC
shared:
  - type: ToggleSwitch
    var_name: A:LIGHT LANDING
    var_units: Bool
    event_name: LANDING_LIGHTS_TOGGLE
  - type: NumSet
    var_name: A:COM ACTIVE FREQUENCY:1
    var_units: Hz
    var_type: i32
    event_name: COM_RADIO_SET_HZ
master:
  - type: Var
    var_name: L:A32NX_FLAPS_HANDLE_INDEX
    var_type: f64
```

The supported types are `VAR`, `EVENT`, `TOGGLESWITCH`, `NUMSET`,
`NUMINCREMENT`, `NUMDIGITSET`, `CUSTOMCALCULATOR`, `PROGRAMACTION`,
`LOCALVARPROXY`, `RESETWHENEQUALS`, `MULTIPLYDIFFERENCELOCALVAR` and
`PROGRAMACTIONEVENT` (case-insensitive). Aircraft variables need `var_units`;
a one-letter prefix such as `A:` is stripped from their names.

## Usage

```python
from cockpitshare.connector import SimConnector
from cockpitshare.loader import DefinitionLoader

loader = DefinitionLoader()
loader.load_config("definitions/aircraft/example.yaml")
print(loader.number_avars(), loader.number_lvars(), loader.number_events())

# Share the loaded definitions with another instance
data = loader.get_buffer_bytes()
other = DefinitionLoader()
other.load_config_from_bytes(data)

# Register everything with the simulator
conn = SimConnector()
loader.avarstransfer.on_connected(conn)
loader.events.on_connected(conn)
loader.lvarstransfer.on_connected(conn)
print(len(conn.requests))
```

Malformed definitions raise `cockpitshare.syncdata.DefinitionError` (or one of
its subclasses such as `MissingFieldError`, `InvalidCategoryError`,
`InvalidSyncTypeError` and `IncludeError`); a file that cannot be opened
raises `OSError`.

## Modules

- `cockpitshare.loader` — `DefinitionLoader`, plus `Mapping`, `Period` (rate
  limiting) and `WriteTracker` (remembers names written within the last second).
- `cockpitshare.syncdefs` — the `Syncable` strategies: `ToggleSwitch`,
  `NumSet`, `NumIncrement`, `NumDigitSet`, `CustomCalculator`,
  `LocalVarProxy`, `MultiplyDifferenceLocalVarSet`, `ResetWhenEquals`.
- `cockpitshare.syncdata` — `SyncData` (variables and events waiting to be
  sent, with `filter` and `split_off`), `SyncPermission`, the event types,
  `Condition` and `evaluate_conditions`.
- `cockpitshare.transfer` — `Events`, `LVarSyncer` and `AircraftVars`
  registries.
- `cockpitshare.gaugecommunicator` — `GaugeCommunicator`, which encodes
  commands and definitions for the in-simulator gauge's client data areas and
  decodes the values it returns.
- `cockpitshare.control` — `Control`, which freezes and unfreezes the aircraft
  as control changes hands.
- `cockpitshare.connector` — `SimConnector`, which records every simulator
  request in `requests` and passes each to an optional sink callable.
- `cockpitshare.varreader` — `VarReader`, encoding and decoding of tagged
  simulator data blocks.
- `cockpitshare.memwriter` — `MemWriter`, a fixed-size zero-filled buffer.
- `cockpitshare.simconfig` — `Config`, the JSON user configuration
  (`read_from_file`, `write_to_file`, `to_json`).
- `cockpitshare.util` — `wrap_diff`, `float_eq`, `NumberDigits`, `Vector3`,
  `get_hostname_ip`, `Category`, `InDataType`.

## What this package does not do

- It does not talk to a running simulator: `SimConnector` only records the
  requests made through it and hands them to a sink you supply.
- It has no component that ties the pieces together at run time — processing
  incoming simulator data, queuing changes for other pilots and applying
  received data are left to the caller.
- It has no networking between pilots, no WebSocket link to panel
  instruments, no update checker, no user interface and no command-line
  program.