# gitpuller/commands.py
# Runs the configured command categories (pre, git, install, post, ...)
#
# - categories run in command_order, one after the other, never in parallel
# - each category waits its delay first
# - the first failing command aborts the whole run

import logging
import subprocess
import time
from typing import Optional, Tuple

from .config import PullerConfig
from .errors import CommandError
from .vars import substitute

logger = logging.getLogger(__name__)

TAG = "[gitpuller]"


def run_cmd(cmd: str, timeout: Optional[float] = None, cwd: Optional[str] = None) -> Tuple[int, str, str]:
    """
    Run a shell command, capture stdout/stderr, return (rc, out, err).
    Output is returned as-is. Raises subprocess.TimeoutExpired after killing
    the process if timeout runs out.
    """
    proc = subprocess.Popen(
        cmd,
        shell=True,
        cwd=cwd,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True
    )
    try:
        out, err = proc.communicate(timeout=timeout)
    except subprocess.TimeoutExpired:
        proc.kill()
        proc.communicate()
        raise
    return proc.returncode, out, err


class CommandRunner:
    """Runs one command template: substitute vars, then spawn (unless dry)."""

    def __init__(self, config: PullerConfig):
        self.config = config

    def run(self, template: str):
        cmd = substitute(template, self.config.vars)
        dry = self.config.dry_commands
        if self.config.log_commands or dry:
            logger.info(f"{TAG} RUN {'(dry) ' if dry else ''}{cmd}")
        if dry:
            return None

        try:
            rc, out, err = run_cmd(cmd, timeout=self.config.command_timeout, cwd=self.config.cwd)
        except subprocess.TimeoutExpired as e:
            raise CommandError(cmd, cause=f"timed out after {e.timeout}s") from e
        except OSError as e:
            raise CommandError(cmd, cause=e) from e

        if rc != 0:
            raise CommandError(cmd, returncode=rc, stdout=out, stderr=err)

        if self.config.log_commands:
            logger.info(out)
            logger.warning(err)
        return rc, out, err


class CommandOrchestrator:
    def __init__(self, config: PullerConfig, runner: Optional[CommandRunner] = None):
        self.config = config
        self.runner = runner or CommandRunner(config)

    def run_all(self):
        """
        Run every category in command_order. Raises CommandError (with the
        category filled in) for the first command that fails.
        """
        if self.config.log_commands:
            logger.info(f"{TAG} Running commands!")
        for category in self.config.command_order:
            delay = self.config.delay_for(category)
            if delay > 0:
                time.sleep(delay)
            self.run_category(category)

    def run_category(self, category: str) -> bool:
        commands = self.config.commands.get(category)
        if commands is None:
            logger.warning(f"{TAG} Tried to run commands of {category} category, but category does not exist")
            return False
        for template in commands:
            try:
                self.runner.run(template)
            except CommandError as e:
                e.in_category(category)
                raise
        return True
