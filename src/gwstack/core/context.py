"""
Build Context

Per-call context handed to every collaborator during a stack build. It carries
the cancellation signal of the caller so that blocking lookups can abort the
whole build instead of returning a partial Stack.
"""

import threading
from dataclasses import dataclass, field

from gwstack.exceptions import BuildCancelledError


@dataclass
class BuildContext:
    """
    Cancellation and identification data for one build.

    ``cancel_event`` may be shared with the caller; setting it makes the next
    ``check_cancelled`` call raise.
    """

    cancel_event: threading.Event = field(default_factory=threading.Event)
    # Free-form label used in log messages (usually the gateway name)
    label: str = ""

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def cancel(self) -> None:
        self.cancel_event.set()

    def check_cancelled(self) -> None:
        """Raise ``BuildCancelledError`` if the build was cancelled."""
        if self.cancel_event.is_set():
            suffix = f" for {self.label}" if self.label else ""
            raise BuildCancelledError(f"build cancelled{suffix}")
