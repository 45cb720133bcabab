"""Observer registry for engine events."""

from typing import Callable, Dict, List

from daily_alchemy.application.interfaces import ILoggingService

DISCOVERY = "discovery"
COMBINE_SETTLED = "combine_settled"
STATE_CHANGE = "state_change"
ACHIEVEMENT = "achievement"

EVENT_NAMES = (DISCOVERY, COMBINE_SETTLED, STATE_CHANGE, ACHIEVEMENT)


class EngineEvents:
    """
    Holds observers for discovery, combine settlement, state changes and achievements.

    Observers run synchronously in registration order. An observer that raises is
    logged and skipped; it never breaks the command that emitted the event.
    """

    def __init__(self, logging_service: ILoggingService):
        self.logger = logging_service
        self._observers: Dict[str, List[Callable]] = {name: [] for name in EVENT_NAMES}

    def subscribe(self, event: str, observer: Callable) -> Callable[[], None]:
        """Register an observer; returns a function that unregisters it."""
        if event not in self._observers:
            raise ValueError(f"Unknown event: {event}")
        self._observers[event].append(observer)

        def unsubscribe() -> None:
            if observer in self._observers[event]:
                self._observers[event].remove(observer)

        return unsubscribe

    def on_discovery(self, observer: Callable) -> Callable[[], None]:
        return self.subscribe(DISCOVERY, observer)

    def on_combine_settled(self, observer: Callable) -> Callable[[], None]:
        return self.subscribe(COMBINE_SETTLED, observer)

    def on_state_change(self, observer: Callable) -> Callable[[], None]:
        return self.subscribe(STATE_CHANGE, observer)

    def on_achievement(self, observer: Callable) -> Callable[[], None]:
        return self.subscribe(ACHIEVEMENT, observer)

    def emit(self, event: str, *args) -> None:
        for observer in list(self._observers[event]):
            try:
                observer(*args)
            except Exception as e:
                self.logger.error(f"❌ {event} observer {getattr(observer, '__name__', observer)!r} failed: {e}")
