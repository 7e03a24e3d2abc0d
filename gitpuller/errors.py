# gitpuller/errors.py
# Exceptions raised by the puller.
# Validation never raises: rejected requests come back as a Rejected result.


class PullerError(Exception):
    """Base class for everything gitpuller raises."""


class ConfigError(PullerError, ValueError):
    """Invalid option passed to PullerConfig (bad key, negative delay, ...)."""


class CommandError(PullerError, RuntimeError):
    """
    A command of the run failed: it could not be spawned, it timed out,
    or it exited non-zero. The run stops at the first one.
    """

    def __init__(self, command, returncode=None, stdout="", stderr="", category=None, cause=None):
        self.command = command
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.category = category
        self.cause = cause
        super().__init__(self._describe())

    def _describe(self):
        where = f" in category '{self.category}'" if self.category else ""
        if self.cause is not None:
            return f"command '{self.command}'{where} failed: {self.cause}"
        return f"command '{self.command}'{where} exited with status {self.returncode}"

    def in_category(self, category):
        # Called by the orchestrator once it knows which category was running
        self.category = category
        self.args = (self._describe(),)
        return self
