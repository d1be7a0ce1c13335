# events.py
"""
Typed tracker events and the bus that fans them out to subscribers.

Events are frozen snapshots; a subscriber can keep them but cannot reach
back into the tracker through them. Subscribers never influence control
flow: an exception raised by one is logged and the loop carries on.
"""
import logging
from collections import Counter, deque
from dataclasses import dataclass, field
from typing import Callable, Deque, List, Optional, Tuple, Type, Union

import torch

from .status import SuccessCode

logger = logging.getLogger(__name__)


# --------------------------------------------------------------------------- #
# ---- event records -------------------------------------------------------- #
@dataclass(frozen=True)
class TrackingEvent:
    time:                 complex
    step_size:            float
    num_successful_steps: int
    num_failed_steps:     int


@dataclass(frozen=True)
class Initializing(TrackingEvent):
    end_time:    complex = 0j
    start_point: Optional[torch.Tensor] = None


@dataclass(frozen=True)
class NewStep(TrackingEvent):
    delta_t: complex = 0j


@dataclass(frozen=True)
class SuccessfulPredict(TrackingEvent):
    predicted_point: Optional[torch.Tensor] = None


@dataclass(frozen=True)
class FirstStepPredictorMatrixSolveFailure(TrackingEvent):
    code: SuccessCode = SuccessCode.MatrixSolveFailureFirstPartOfPrediction


@dataclass(frozen=True)
class SuccessfulCorrect(TrackingEvent):
    corrected_point: Optional[torch.Tensor] = None
    iterations:      int = 0


@dataclass(frozen=True)
class CorrectorMatrixSolveFailure(TrackingEvent):
    code: SuccessCode = SuccessCode.MatrixSolveFailure


@dataclass(frozen=True)
class SuccessfulStep(TrackingEvent):
    point:               Optional[torch.Tensor] = None
    step_size_increased: bool = False


@dataclass(frozen=True)
class FailedStep(TrackingEvent):
    code: SuccessCode = SuccessCode.FailedToConverge


@dataclass(frozen=True)
class InfinitePathTruncation(TrackingEvent):
    norm: float = float("inf")


@dataclass(frozen=True)
class TrackingEnded(TrackingEvent):
    code: SuccessCode = SuccessCode.Success


# --------------------------------------------------------------------------- #
# ---- bus ------------------------------------------------------------------ #
class Observer:
    """Base for stateful subscribers; override `notify`."""

    def notify(self, event: TrackingEvent) -> None:
        raise NotImplementedError


Subscriber = Union[Observer, Callable[[TrackingEvent], None]]


@dataclass
class _Subscription:
    callback: Callable[[TrackingEvent], None]
    owner:    object
    kinds:    Tuple[Type[TrackingEvent], ...]


class EventBus:

    def __init__(self):
        self._subs: List[_Subscription] = []

    def subscribe(self, subscriber: Subscriber,
                  *kinds: Type[TrackingEvent]) -> Subscriber:
        """
        Register `subscriber` for the given event classes (all events if none
        are named). Returns the subscriber so it can be unsubscribed later.
        """
        callback = subscriber.notify if isinstance(subscriber, Observer) else subscriber
        self._subs.append(_Subscription(callback, subscriber, kinds or (TrackingEvent,)))
        return subscriber

    def unsubscribe(self, subscriber: Subscriber) -> None:
        self._subs = [s for s in self._subs if s.owner is not subscriber]

    def __len__(self) -> int:
        return len(self._subs)

    def publish(self, event: TrackingEvent) -> None:
        for sub in list(self._subs):
            if not isinstance(event, sub.kinds):
                continue
            try:
                sub.callback(event)
            except Exception:
                logger.exception("subscriber %r failed on %s",
                                 sub.owner, type(event).__name__)


# --------------------------------------------------------------------------- #
# ---- stock observers ------------------------------------------------------ #
@dataclass
class PathAccumulator(Observer):
    """Records the accepted (time, point) pairs of a path."""
    times:  List[complex]      = field(default_factory=list)
    points: List[torch.Tensor] = field(default_factory=list)

    def notify(self, event):
        if isinstance(event, Initializing):
            self.times.clear()
            self.points.clear()
            if event.start_point is not None:
                self.times.append(event.time)
                self.points.append(event.start_point)
        elif isinstance(event, SuccessfulStep) and event.point is not None:
            self.times.append(event.time)
            self.points.append(event.point)


class StepFailLogger(Observer):
    """Logs every failed step and truncation at WARNING level."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logger

    def notify(self, event):
        if isinstance(event, FailedStep):
            self.log.warning("step failed at t=%s (h=%.3e): %s",
                             event.time, event.step_size, event.code.value)
        elif isinstance(event, InfinitePathTruncation):
            self.log.warning("path truncated at t=%s, |x|=%.3e",
                             event.time, event.norm)


class EventCounter(Observer):
    def __init__(self):
        self.counts: Counter = Counter()

    def notify(self, event):
        self.counts[type(event).__name__] += 1

    def __getitem__(self, kind: Type[TrackingEvent]) -> int:
        return self.counts[kind.__name__]


class EventRecorder(Observer):
    """Queues events for a consumer to drain later."""

    def __init__(self, maxlen: Optional[int] = None):
        self.queue: Deque[TrackingEvent] = deque(maxlen=maxlen)

    def notify(self, event):
        self.queue.append(event)

    def drain(self) -> List[TrackingEvent]:
        out = list(self.queue)
        self.queue.clear()
        return out
