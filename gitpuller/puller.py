# gitpuller/puller.py
# The webhook engine: validate -> answer "running" -> run commands in the
# background -> tell listeners how it went.
#
# Events:
#   before(notification)
#   after(notification, error)     error is None on success
#   error(error)

import logging
import threading
from typing import Callable, Dict, List, Tuple

from .commands import CommandOrchestrator
from .config import PullerConfig
from .github import Notification, WebhookRequest
from .validation import Accepted, RequestValidator

logger = logging.getLogger(__name__)

TAG = "[gitpuller]"

EVENTS = ("before", "after", "error")


class Puller:
    def __init__(self, config=None, **options):
        """
        config: a PullerConfig, or a mapping of options merged over the defaults.
        Keyword options are merged the same way.
        """
        if not isinstance(config, PullerConfig):
            config = PullerConfig.from_options({**(config or {}), **options})
        elif options:
            raise TypeError("pass either a PullerConfig or options, not both")
        self._config = config
        self.validator = RequestValidator(config)
        self.orchestrator = CommandOrchestrator(config)
        self._listeners: Dict[str, List[Tuple[Callable, bool]]] = {name: [] for name in EVENTS}
        self._listeners_lock = threading.Lock()
        # only used with serialize_runs
        self._run_lock = threading.Lock()

    @property
    def options(self) -> PullerConfig:
        return self._config

    # ---- listeners ----------------------------------------------------------------

    def on(self, event: str, listener: Callable):
        self._add(event, listener, once=False)
        return self

    def once(self, event: str, listener: Callable):
        self._add(event, listener, once=True)
        return self

    def off(self, event: str, listener: Callable):
        self._check_event(event)
        with self._listeners_lock:
            self._listeners[event] = [(fn, once) for fn, once in self._listeners[event] if fn != listener]
        return self

    def _add(self, event, listener, once):
        self._check_event(event)
        if not callable(listener):
            raise TypeError("listener must be callable")
        with self._listeners_lock:
            self._listeners[event].append((listener, once))

    @staticmethod
    def _check_event(event):
        if event not in EVENTS:
            raise ValueError(f"unknown event '{event}', expected one of {', '.join(EVENTS)}")

    def emit(self, event: str, *args) -> bool:
        self._check_event(event)
        with self._listeners_lock:
            listeners = list(self._listeners[event])
            self._listeners[event] = [(fn, once) for fn, once in listeners if not once]
        for fn, _ in listeners:
            try:
                fn(*args)
            except Exception:
                logger.exception(f"{TAG} '{event}' listener {fn!r} failed")
        return bool(listeners)

    # ---- request handling ---------------------------------------------------------

    def handle(self, request: WebhookRequest) -> Tuple[str, int]:
        """
        Handle one delivery. Returns (body, status) for the HTTP layer.
        Accepted requests are answered immediately; commands run on a thread.
        """
        notification = Notification.from_request(request)
        result = self.validator.validate(request, notification)
        if not isinstance(result, Accepted):
            return result.reason, result.status_code

        if self._config.precondition is not None:
            if self._config.precondition(request, notification) is False:
                logger.info(f"{TAG} precondition declined the request")
                return "", 200

        self.start(notification)
        return "running", 200

    def start(self, notification: Notification) -> threading.Thread:
        t = threading.Thread(
            target=self._run,
            args=(notification,),
            name=f"gitpuller-{notification.ref or 'run'}",
            daemon=True,
        )
        t.start()
        return t

    def _run(self, notification: Notification):
        self.emit("before", notification)
        try:
            self.run_all()
        except Exception as e:
            logger.warning(f"{TAG} run failed: {e}")
            self.emit("error", e)
            self.emit("after", notification, e)
            return
        self.emit("after", notification, None)

    def run_all(self):
        """Run all command categories now, on the calling thread."""
        if not self._config.serialize_runs:
            return self.orchestrator.run_all()
        with self._run_lock:
            return self.orchestrator.run_all()
