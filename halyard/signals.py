"""
Halyard Signals - named hooks with ordered receivers.

Controllers fire ``before_action`` and ``after_action`` through a
``SignalBus`` carried by their dispatch context. Each controller connects
its own ``before_action``/``after_action`` methods as receivers filtered on
itself; any other observer may connect as well.

Receivers may be sync or async. Exceptions raised by a receiver propagate
to the sender: a failing hook aborts the dispatch like any other fault.

Usage:
    bus = SignalBus()

    @bus.signal("before_action").connect
    async def audit(sender, owner, action, **kwargs):
        log.info("running %s", action.id)

    results = await bus.send("before_action", controller, owner=controller, action=action)
    if results.proceed:
        ...
"""

from __future__ import annotations

import contextlib
import inspect
import logging
import weakref
from typing import Any, Callable, Dict, List, NamedTuple, Optional

logger = logging.getLogger("halyard.signals")

__all__ = [
    "Signal",
    "SignalBus",
    "SignalResults",
    "BEFORE_ACTION",
    "AFTER_ACTION",
]

BEFORE_ACTION = "before_action"
AFTER_ACTION = "after_action"


_GONE = object()


def _deref(ref: Any) -> Any:
    """Return the object behind ``ref``, ``_GONE`` once it was collected."""
    if isinstance(ref, weakref.ref):
        obj = ref()
        return _GONE if obj is None else obj
    return ref


class _Receiver(NamedTuple):
    target: Any     # callable, weakref.ref or WeakMethod
    sender: Any     # None, a class, an instance or a weakref to one
    priority: int

    @property
    def alive(self) -> bool:
        return _deref(self.target) is not _GONE and _deref(self.sender) is not _GONE

    def accepts(self, sender: Any) -> bool:
        wanted = _deref(self.sender)
        if wanted is None or wanted is sender:
            return True
        return isinstance(wanted, type) and isinstance(sender, wanted)


class SignalResults(list):
    """
    Return values of the receivers of one ``send``, in call order.

    ``proceed`` is the vote used by ``before_action``: the last receiver that
    returned something other than ``None`` decides. With no votes at all,
    execution proceeds.
    """

    @property
    def last(self) -> Any:
        return self[-1] if self else None

    @property
    def proceed(self) -> bool:
        for value in reversed(self):
            if value is not None:
                return bool(value)
        return True


class Signal:
    """
    Named hook; receivers are called as ``receiver(sender=sender, **kwargs)``.

    A receiver connected with a class as ``sender`` hears every instance of
    that class, one connected with an instance hears only that instance.
    Lower ``priority`` runs first and equal priorities run in connection
    order.
    """

    def __init__(self, name: str):
        self.name = name
        self._entries: List[_Receiver] = []

    def connect(
        self,
        receiver: Callable = None,
        *,
        sender: Any = None,
        weak: bool = False,
        priority: int = 100,
    ):
        """
        Attach ``receiver``; without it, return a decorator doing the same.

        With ``weak=True`` the receiver (bound methods included) and an
        instance ``sender`` are held weakly, and the entry disappears as
        soon as either is collected.
        """
        if receiver is None:
            def decorator(fn: Callable) -> Callable:
                self._add_receiver(fn, sender, weak, priority)
                return fn
            return decorator

        self._add_receiver(receiver, sender, weak, priority)
        return receiver

    def _weak(self, obj: Any) -> Any:
        maker = weakref.WeakMethod if inspect.ismethod(obj) else weakref.ref
        try:
            return maker(obj, self._prune)
        except TypeError:
            # builtins and some C callables
            return obj

    def _add_receiver(self, fn: Callable, sender: Any, weak: bool, priority: int) -> None:
        if any(_deref(e.target) == fn and _deref(e.sender) is sender for e in self._entries):
            return

        target, sender_ref = fn, sender
        if weak:
            target = self._weak(fn)
            if sender is not None and not isinstance(sender, type):
                sender_ref = self._weak(sender)

        self._entries.append(_Receiver(target, sender_ref, priority))
        self._entries.sort(key=lambda e: e.priority)

    def _prune(self, _ref=None) -> None:
        self._entries = [e for e in self._entries if e.alive]

    def disconnect(self, receiver: Callable, *, sender: Any = None) -> bool:
        """Detach the first matching entry; False when nothing matched."""
        for index, entry in enumerate(self._entries):
            if _deref(entry.target) != receiver:
                continue
            if sender is None or _deref(entry.sender) is sender:
                del self._entries[index]
                return True
        return False

    def disconnect_sender(self, sender: Any) -> int:
        """Detach every entry filtered on ``sender`` and return how many went."""
        kept = [e for e in self._entries if _deref(e.sender) is not sender]
        removed = len(self._entries) - len(kept)
        self._entries = kept
        return removed

    def _live_receivers(self, sender: Any) -> List[Callable]:
        return [
            _deref(e.target) for e in list(self._entries)
            if e.alive and e.accepts(sender)
        ]

    async def send(self, sender: Any, **kwargs) -> SignalResults:
        """Call the receivers listening to ``sender`` and collect what they return."""
        results = SignalResults()
        for receiver in self._live_receivers(sender):
            result = receiver(sender=sender, **kwargs)
            if inspect.isawaitable(result):
                result = await result
            results.append(result)
        logger.debug(f"Signal '{self.name}' delivered to {len(results)} receiver(s)")
        return results

    @property
    def receivers(self) -> List[Callable]:
        return [_deref(e.target) for e in self._entries if _deref(e.target) is not _GONE]

    def has_listeners(self, sender: Any = None) -> bool:
        if sender is None:
            return bool(self.receivers)
        return bool(self._live_receivers(sender))

    @contextlib.contextmanager
    def connected(self, fn: Callable, *, sender: Any = None, priority: int = 100):
        """
        Keep ``fn`` connected for the duration of a ``with`` block.

            with bus.signal("after_action").connected(capture):
                await controller.run("index")
        """
        self._add_receiver(fn, sender, weak=False, priority=priority)
        try:
            yield
        finally:
            self.disconnect(fn, sender=sender)

    def clear(self) -> None:
        self._entries.clear()

    def __repr__(self) -> str:
        return f"<Signal '{self.name}' receivers={len(self.receivers)}>"


class SignalBus:
    """Registry of named signals, created on first use."""

    def __init__(self):
        self._signals: Dict[str, Signal] = {}

    def signal(self, name: str) -> Signal:
        sig = self._signals.get(name)
        if sig is None:
            sig = self._signals[name] = Signal(name)
        return sig

    def connect(
        self,
        name: str,
        receiver: Callable,
        *,
        sender: Any = None,
        weak: bool = False,
        priority: int = 100,
    ) -> Callable:
        return self.signal(name).connect(receiver, sender=sender, weak=weak, priority=priority)

    async def send(self, name: str, sender: Any, **kwargs) -> SignalResults:
        sig: Optional[Signal] = self._signals.get(name)
        if sig is None:
            return SignalResults()
        return await sig.send(sender, **kwargs)

    def disconnect_sender(self, sender: Any) -> int:
        return sum(sig.disconnect_sender(sender) for sig in self._signals.values())

    def __contains__(self, name: str) -> bool:
        return name in self._signals

    def __repr__(self) -> str:
        return f"<SignalBus signals={sorted(self._signals)}>"
