# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# queues.py
# -----------------------------------------------------------------------------
# Purpose:
#   Minimal process-oriented discrete-event primitives: Event, Env (clock +
#   Future Event List), Process (cooperative life-cycle handle), and a FIFO
#   ProcessQueue that integrates its own length over simulated time.
#
# Design notes:
#   - A life cycle is a generator. It suspends by yielding the value returned
#     from env.hold(...) or env.passivate(...); nothing else may be yielded.
#   - Exactly one process body runs at a time. Equal due-times fire in the
#     order they were scheduled (sequence tiebreak), so a fixed seed always
#     reproduces the same run.
#   - Processes are not subclassed. Any object with a `name` and a
#     `life_cycle()` generator method can be wrapped by env.process().
#
# Usage:
#   from shopsim.queues import Env, ProcessQueue
#   env = Env(); proc = env.process(body); env.activate(proc); env.run(stop)
# -----------------------------------------------------------------------------

from __future__ import annotations
import heapq, itertools, logging
from enum import Enum
from typing import Any, Callable, Iterator, List, Optional, Protocol
from .metrics import TimeWeightedQueueStats

logger = logging.getLogger(__name__)


class SchedulerError(RuntimeError):
    """Violation of the scheduler contract (a programming error, never retried)."""


class ProcessState(Enum):
    PASSIVE = "passive"
    SCHEDULED = "scheduled"
    TERMINATED = "terminated"


class Suspend(Enum):
    """Token a life cycle yields back to the scheduler."""
    HOLD = "hold"
    PASSIVATE = "passivate"


class Resumable(Protocol):
    name: str

    def life_cycle(self) -> Iterator[Suspend]: ...


class Event:
    """Minimal event object for the Future Event List (FEL)."""
    __slots__ = ("t", "seq", "process")
    def __init__(self, t: float, seq: int, process: "Process"):
        self.t = t; self.seq = seq; self.process = process
    def __lt__(self, other: "Event"):
        return (self.t, self.seq) < (other.t, other.seq)
    def __repr__(self):
        return f"Event(t={self.t:.4f}, seq={self.seq}, process={self.process.name})"


class Process:
    """Scheduler-side handle for one entity's life cycle.

    The handle is created PASSIVE; the generator is only instantiated on the
    first resumption, so an entity can be fully wired before it ever runs.
    """
    def __init__(self, env: "Env", body: Resumable):
        self.env = env
        self.body = body
        self.name = getattr(body, "name", type(body).__name__)
        self.state = ProcessState.PASSIVE
        self._routine: Optional[Iterator[Suspend]] = None
        self._suspended = False
        self._pending: Optional[Event] = None

    @property
    def is_scheduled(self) -> bool:
        return self.state is ProcessState.SCHEDULED

    @property
    def is_passive(self) -> bool:
        return self.state is ProcessState.PASSIVE

    @property
    def is_terminated(self) -> bool:
        return self.state is ProcessState.TERMINATED

    def _resume(self):
        if self._routine is None:
            self._routine = iter(self.body.life_cycle())
        self._suspended = False
        try:
            token = next(self._routine)
        except StopIteration:
            self.state = ProcessState.TERMINATED
            self._routine = None
            return
        if not self._suspended or not isinstance(token, Suspend):
            raise SchedulerError(
                f"{self.name} yielded {token!r} without calling hold() or passivate()"
            )

    def __repr__(self):
        return f"Process({self.name!r}, {self.state.value})"


class Env:
    """Simulation environment holding the clock and the FEL.

    Attributes
    ----------
    t : float
        Simulation time (hours). Only step() moves it, and never backwards.
    FEL : list[Event]
        Min-heap of scheduled events, ordered by (due-time, sequence).
    current : Process | None
        The process whose body is executing right now.
    """
    def __init__(self):
        self.t: float = 0.0
        self.FEL: List[Event] = []
        self.current: Optional[Process] = None
        self._seq = itertools.count()
        self.steps = 0

    def process(self, body: Resumable) -> Process:
        return Process(self, body)

    def activate(self, process: Process, at: Optional[float] = None):
        """Schedule `process` to resume at time `at` (default: now)."""
        at = self.t if at is None else float(at)
        if at < self.t:
            raise SchedulerError(f"cannot activate {process.name} at {at} < now {self.t}")
        if process.is_terminated:
            raise SchedulerError(f"cannot activate terminated process {process.name}")
        if process is self.current:
            raise SchedulerError(f"{process.name} cannot activate itself; use hold()")
        if process.is_scheduled:
            logger.warning("%s is already scheduled at t=%.4f; activate ignored",
                           process.name, process._pending.t)
            return
        self._schedule(process, at)

    def hold(self, process: Process, duration: float) -> Suspend:
        """Suspend the running process for `duration`; yield the result."""
        self._check_current(process, "hold")
        if duration < 0:
            raise SchedulerError(f"{process.name} cannot hold for negative duration {duration}")
        self._schedule(process, self.t + duration)
        process._suspended = True
        return Suspend.HOLD

    def passivate(self, process: Process) -> Suspend:
        """Suspend the running process until another process activates it."""
        self._check_current(process, "passivate")
        process.state = ProcessState.PASSIVE
        process._suspended = True
        return Suspend.PASSIVATE

    def step(self):
        """Fire the earliest event: advance the clock and resume its process."""
        if not self.FEL:
            raise SchedulerError("step() called with an empty event list")
        ev = heapq.heappop(self.FEL)
        proc = ev.process
        self.t = ev.t
        proc._pending = None
        proc.state = ProcessState.PASSIVE
        self.current = proc
        self.steps += 1
        try:
            proc._resume()
        finally:
            self.current = None

    def run(self, stop: Optional[Callable[[], bool]] = None) -> float:
        """Step until `stop()` is true (checked after every step) or the FEL drains.

        Returns the simulated time at which the run ended.
        """
        while self.FEL:
            self.step()
            if stop is not None and stop():
                break
        logger.debug("run finished at t=%.4f after %d steps (%d events pending)",
                     self.t, self.steps, len(self.FEL))
        return self.t

    def peek(self) -> float:
        return self.FEL[0].t if self.FEL else float("inf")

    def _schedule(self, process: Process, at: float):
        ev = Event(at, next(self._seq), process)
        process._pending = ev
        process.state = ProcessState.SCHEDULED
        heapq.heappush(self.FEL, ev)

    def _check_current(self, process: Process, op: str):
        if process is not self.current:
            raise SchedulerError(f"{op}() called for {process.name}, which is not the running process")


class ProcessQueue:
    """Named FIFO of entities, each carrying its own `process` handle.

    Every length change is pushed into a TimeWeightedQueueStats so the
    average and maximum length can be read after the run.

    Parameters
    ----------
    env : Env
        Supplies the clock for the length integral.
    name : str
        Queue name for logging/metrics.
    """
    def __init__(self, env: Env, name: str):
        self.env = env
        self.name = name
        self._items: List[Any] = []
        self.stats = TimeWeightedQueueStats(name, start_time=env.t)

    def insert(self, item: Any) -> bool:
        if item in self._items:
            logger.debug("%s already in %s; insert ignored", getattr(item, "name", item), self.name)
            return False
        self._items.append(item)
        self._changed()
        return True

    def remove_first(self) -> Any:
        if not self._items:
            raise IndexError(f"remove_first() on empty queue {self.name!r}")
        item = self._items.pop(0)
        self._changed()
        return item

    def remove(self, item: Any) -> bool:
        try:
            self._items.remove(item)
        except ValueError:
            return False
        self._changed()
        return True

    def first(self) -> Any:
        return self._items[0] if self._items else None

    def is_empty(self) -> bool:
        return not self._items

    def average_length(self) -> float:
        return self.stats.average_length(self.env.t)

    @property
    def max_length(self) -> int:
        return self.stats.max_length

    def _changed(self):
        self.stats.update(self.env.t, len(self._items))

    def __len__(self):
        return len(self._items)

    def __contains__(self, item):
        return item in self._items

    def __iter__(self):
        return iter(list(self._items))

    def __repr__(self):
        return f"ProcessQueue({self.name!r}, len={len(self._items)})"
