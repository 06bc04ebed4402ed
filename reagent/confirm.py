"""Tap-to-confirm for destructive actions.

The first press arms the control; a second press within ``timeout`` seconds
runs the delete callback. Letting the timeout pass or cancelling disarms it.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Hashable

from reagent.config import settings


class TwoStepConfirm:
    """State machine {idle, confirming} for one control instance."""

    def __init__(
        self,
        on_delete: Callable[[], Any],
        timeout: float = settings.delete_confirm_timeout,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.on_delete = on_delete
        self.timeout = timeout
        self._clock = clock
        self._deadline: float | None = None

    @property
    def state(self) -> str:
        if self._deadline is not None and self._clock() >= self._deadline:
            self._deadline = None
        return "idle" if self._deadline is None else "confirming"

    @property
    def expires_in(self) -> float:
        if self.state == "idle":
            return 0.0
        return max(0.0, self._deadline - self._clock())

    def first_click(self) -> None:
        self._deadline = self._clock() + self.timeout

    def confirm(self) -> Any:
        """Run the delete callback if armed. Returns its result, or None if idle."""
        if self.state != "confirming":
            return None
        self._deadline = None
        return self.on_delete()

    def cancel(self) -> None:
        self._deadline = None

    def press(self) -> tuple[bool, Any]:
        """One click on the control. Returns ``(deleted, callback_result)``."""
        if self.state == "confirming":
            return True, self.confirm()
        self.first_click()
        return False, None


@dataclass
class PressOutcome:
    deleted: bool
    result: Any = None
    expires_in: float = 0.0


class ConfirmRegistry:
    """One TwoStepConfirm per key, e.g. ``(user_id, "project", project_id)``.

    The delete callback is supplied on every press so it can close over the
    current request's database session.
    """

    def __init__(
        self,
        timeout: float = settings.delete_confirm_timeout,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.timeout = timeout
        self._clock = clock
        self._controls: dict[Hashable, TwoStepConfirm] = {}

    def press(self, key: Hashable, on_delete: Callable[[], Any]) -> PressOutcome:
        control = self._controls.get(key)
        if control is None or control.state == "idle":
            control = TwoStepConfirm(on_delete, timeout=self.timeout, clock=self._clock)
            self._controls[key] = control
        else:
            control.on_delete = on_delete
        deleted, result = control.press()
        if deleted:
            del self._controls[key]
            return PressOutcome(deleted=True, result=result)
        return PressOutcome(deleted=False, expires_in=control.expires_in)

    def cancel(self, key: Hashable) -> bool:
        """Disarm ``key``. Returns True if it was confirming."""
        control = self._controls.pop(key, None)
        if control is None or control.state == "idle":
            return False
        control.cancel()
        return True

    def prune(self) -> int:
        """Drop controls whose timeout has elapsed."""
        idle = [k for k, c in self._controls.items() if c.state == "idle"]
        for key in idle:
            del self._controls[key]
        return len(idle)


# Module-level singleton
delete_confirmations = ConfirmRegistry()
