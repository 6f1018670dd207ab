# hailstorm

Core building blocks of a distributed load testing framework. A controller
decides which simulation the agents should run; agents run simulated bots,
time their actions and report state counts and response-time histograms back
upstream. This package holds the transport-independent parts of that system.
It has no third-party dependencies; timestamps are timezone-aware UTC
`datetime` values and durations are `timedelta` values.

## Modules

- `hailstorm.messages` — the message dataclasses exchanged between controller
  and agents: `AgentUpdate`, `ModelStats`, `ModelStateSnapshot`,
  `PerformanceSnapshot`, `AgentMessage`, `ControllerCommand`, the commands
  `LoadSimCommand`, `LaunchCommand`, `StopCommand`, `UpdateAgentsCount`, and
  the targets `GroupTarget`, `AgentIdTarget`, `AgentsTarget`, each with an
  `includes_agent(agent_id)` method. `AgentUpdate.last_ts()` and
  `ModelStats.last_ts()` give the most recent statistics timestamp.
- `hailstorm.timer` — `Timer` and `ExecutionInfo` (elapsed time and outcome
  code of one action).
- `hailstorm.metrics_storage` — `MetricsStorage`, which folds completed timers
  into a 20-bucket logarithmic histogram of response times in centiseconds
  (`compute_bucket_idx`), keyed by outcome. A snapshot of the histogram is
  stored at most every five seconds in a `SnapshotBuffer` holding up to 60
  snapshots; `fetch_metrics()` drains it. Timers still pending after an hour
  are dropped.
- `hailstorm.metrics_manager` — `MetricsManager`, one storage per
  (model, action) `StorageKey`. `stop_timer` raises `ActionTimerError` when no
  storage exists for the timer's key. `ActionMetricsFamilySnapshot.to_protobuf()`
  turns snapshots into `PerformanceSnapshot` messages.
- `hailstorm.simulation_model` — `BotDef`, `SimulationDef` and the controller
  states `IdleSimulation`, `ReadySimulation`, `LaunchedSimulation`, whose
  `is_aligned(agent_state)` tells whether an agent's reported
  `AgentSimulationState` matches.
- `hailstorm.downstream` — `DownstreamClient`, which wraps commands in a
  `ControllerCommand` addressed to one agent, several agents or all agents and
  awaits a recipient coroutine with it.
- `hailstorm.controller` — `ControllerActor`, which tracks agent states (agents
  silent for 60 seconds are forgotten), forwards updates to a metrics
  recipient, and sends the commands that bring misaligned agents in line.
- `hailstorm.router` — `ServerRouter` and `DownstreamAgent`: downstream
  connections backed by `asyncio.Queue` objects, the agents seen behind each
  connection, and dispatch of commands to the connections a target covers.
- `hailstorm.notifier` — `UpdatesNotifier`, which buffers updates by
  `update_id` and sends them as one `AgentMessage` to every registered sender
  when `flush()` is called.
- `hailstorm.backoff` — `truncated_exponential_backoff(attempt, max_backoff)`:
  `2**attempt` seconds plus up to a second of jitter, capped at `max_backoff`.

## Describing a simulation

```python
from hailstorm.simulation_model import BotDef, SimulationDef

simulation = SimulationDef(
    bots=[BotDef(model="browser", shape="1000 * sin(t / 10)")],
    script="...",
)
command = simulation.to_load_command()
```

## Driving a controller

```python
import asyncio
from datetime import datetime, timedelta, timezone

from hailstorm.controller import ControllerActor
from hailstorm.downstream import DownstreamClient


async def deliver(command):
    print(command)


async def store(updates):
    pass


async def main():
    controller = ControllerActor(DownstreamClient(deliver), store)
    await controller.load_simulation(simulation)
    await controller.start_simulation(
        datetime.now(timezone.utc) + timedelta(seconds=10)
    )


asyncio.run(main())
```

`load_simulation` broadcasts a stop, an agent count and a load command;
`start_simulation` adds a launch command (and is ignored while the controller
is idle). `handle_updates` records agent states and sends the same commands to
any agent whose state drifts from the desired one.

## Timing actions

```python
from datetime import timedelta

from hailstorm.metrics_manager import MetricsManager
from hailstorm.timer import ExecutionInfo

manager = MetricsManager()
timer = manager.start_timer("browser", "login")
manager.stop_timer(timer, ExecutionInfo(timedelta(milliseconds=120), 200))
for family in manager.fetch_metrics():
    print(family.to_protobuf())
```

## What this package does not do

It has no network transport: no server accepting agent connections, no client
connecting an agent to its parent, and no wire encoding of the messages. It
does not run bots or interpret bot scripts, and it has no agent runtime or
command-line program. Nothing runs on a timer by itself; the caller decides
when to call `UpdatesNotifier.flush()` or feed updates to the controller.

## Running the tests

```
pip install ".[test]"
pytest
```