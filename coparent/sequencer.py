"""Choreography of the two invite confirmation sheets.

After an invite is sent the UI shows a confirmation sheet ("A").  Closing it
opens the accept / decline sheet ("B") after a short delay so A's close
animation finishes first.  The two are never open together and there is no
way back from B to A::

    closed --open_add_co_parent_sheet--> A
    A --handle_add_co_parent_close--> closed --(delay)--> B
    B --handle_invite_accept / handle_invite_decline--> closed

Sheets are reached through :class:`SheetRef` handles.  A handle whose
component is not mounted (``current is None``) turns every call on it into a
silent no-op.  The delayed open is a cancellable task; :meth:`dispose` drops
it when the owning screen goes away.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Callable, Protocol

from .config import ClientConfig

log = logging.getLogger(__name__)

DEFAULT_DELAY = 0.3  # seconds


class Sheet(Protocol):
    def open(self) -> None: ...

    def close(self) -> None: ...


class SheetRef:
    """Mutable handle to a sheet that may not be mounted yet."""

    def __init__(self, current: Sheet | None = None) -> None:
        self.current = current

    def open(self) -> bool:
        if self.current is None:
            return False
        self.current.open()
        return True

    def close(self) -> bool:
        if self.current is None:
            return False
        self.current.close()
        return True


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class AsyncioScheduler:
    """Schedules on an event loop.

    Uses *loop* when given, else the loop running at call time.  Called from
    plain synchronous code with no loop at all, the callback fires from a
    daemon timer thread instead.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        loop = self._loop
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                log.debug("No running event loop; scheduling on a timer thread")
                timer = threading.Timer(delay, callback)
                timer.daemon = True
                timer.start()
                return timer
        return loop.call_later(delay, callback)


class InviteFlowSequencer:
    def __init__(
        self,
        on_invite_complete: Callable[[], None] | None = None,
        *,
        delay: float = DEFAULT_DELAY,
        scheduler: Scheduler | None = None,
    ) -> None:
        self.add_co_parent_sheet = SheetRef()
        self.co_parent_invite_sheet = SheetRef()
        self._on_invite_complete = on_invite_complete
        self._delay = delay
        self._scheduler = scheduler or AsyncioScheduler()
        self._pending_open: TimerHandle | None = None

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        on_invite_complete: Callable[[], None] | None = None,
        *,
        scheduler: Scheduler | None = None,
    ) -> InviteFlowSequencer:
        """A sequencer using the configured delay between the two sheets."""
        return cls(on_invite_complete, delay=config.invite_sheet_delay, scheduler=scheduler)

    @property
    def has_pending_open(self) -> bool:
        return self._pending_open is not None

    def open_add_co_parent_sheet(self) -> None:
        self.add_co_parent_sheet.open()

    def handle_add_co_parent_close(self) -> None:
        """Close sheet A now and open sheet B once the delay has passed."""
        self.add_co_parent_sheet.close()
        self._cancel_pending_open()
        self._pending_open = self._scheduler.call_later(self._delay, self._open_invite_sheet)

    def handle_invite_accept(self) -> None:
        self._finish()

    def handle_invite_decline(self) -> None:
        self._finish()

    def dispose(self) -> None:
        """Cancel the delayed open; call when the owning screen unmounts."""
        self._cancel_pending_open()

    # -- internals -----------------------------------------------------------

    def _open_invite_sheet(self) -> None:
        self._pending_open = None
        if not self.co_parent_invite_sheet.open():
            log.debug("Invite sheet not mounted; skipping open")

    def _cancel_pending_open(self) -> None:
        if self._pending_open is not None:
            self._pending_open.cancel()
            self._pending_open = None

    def _finish(self) -> None:
        self.co_parent_invite_sheet.close()
        if self._on_invite_complete is not None:
            self._on_invite_complete()
