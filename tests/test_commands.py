# We mock run_cmd so nothing is ever spawned (no git pulls from CI, thanks).
#
# We assert that:
# categories run in command_order, commands in list order, vars substituted
# each category waits its delay first
# the first failure stops everything after it
# dry runs never touch run_cmd
import subprocess

import pytest

from gitpuller import commands
from gitpuller.commands import CommandOrchestrator, CommandRunner, run_cmd
from gitpuller.config import PullerConfig
from gitpuller.errors import CommandError


def _config(**options):
    return PullerConfig.from_options(options)


def test_runs_categories_in_order(fake_run_cmd, no_sleep):
    cfg = _config(vars={"appName": "App"}, commands={"install": ["make"]})
    CommandOrchestrator(cfg).run_all()
    ran = [c.args[0] for c in fake_run_cmd.call_args_list]
    assert ran == [
        "git fetch origin master",
        "git pull origin master",
        "make",
        "systemctl restart App",
    ]


def test_passes_timeout_and_cwd(fake_run_cmd):
    cfg = _config(command_order=["git"], command_timeout=30, cwd="/srv/app")
    CommandOrchestrator(cfg).run_all()
    fake_run_cmd.assert_any_call("git pull origin master", timeout=30, cwd="/srv/app")


def test_delays_before_each_category(mocker, fake_run_cmd, no_sleep):
    calls = mocker.MagicMock()
    calls.attach_mock(fake_run_cmd, "run")
    calls.attach_mock(no_sleep, "sleep")
    cfg = _config(command_order=["git", "post"], delays={"git": 0.5, "post": 2})
    CommandOrchestrator(cfg).run_all()

    names = [c[0] for c in calls.mock_calls]
    assert names == ["sleep", "run", "run", "sleep", "run"]
    assert no_sleep.call_args_list == [mocker.call(0.5), mocker.call(2.0)]


def test_zero_delay_does_not_sleep(fake_run_cmd, no_sleep):
    CommandOrchestrator(_config()).run_all()
    no_sleep.assert_not_called()


def test_unknown_category_is_a_warning(fake_run_cmd, caplog):
    cfg = _config(command_order=["missing", "post"])
    CommandOrchestrator(cfg).run_all()
    assert "Tried to run commands of missing category" in caplog.text
    assert fake_run_cmd.call_count == 1


def test_first_failure_aborts_run(fake_run_cmd):
    fake_run_cmd.side_effect = [(0, "", ""), (1, "", "merge conflict")]
    cfg = _config(commands={"pre": ["echo pre"]})
    with pytest.raises(CommandError) as exc:
        CommandOrchestrator(cfg).run_all()

    err = exc.value
    assert err.command == "git fetch origin master"
    assert err.category == "git"
    assert err.returncode == 1
    assert err.stderr == "merge conflict"
    assert "category 'git'" in str(err)
    assert fake_run_cmd.call_count == 2


def test_spawn_error_becomes_command_error(fake_run_cmd):
    fake_run_cmd.side_effect = FileNotFoundError("no shell")
    with pytest.raises(CommandError) as exc:
        CommandRunner(_config()).run("git status")
    assert isinstance(exc.value.cause, FileNotFoundError)
    assert isinstance(exc.value.__cause__, FileNotFoundError)


def test_timeout_becomes_command_error(fake_run_cmd):
    fake_run_cmd.side_effect = subprocess.TimeoutExpired("sleep 100", 5)
    with pytest.raises(CommandError) as exc:
        CommandRunner(_config(command_timeout=5)).run("sleep 100")
    assert "timed out after 5s" in str(exc.value)


def test_dry_run_never_spawns(fake_run_cmd, caplog):
    caplog.set_level("INFO")
    CommandOrchestrator(_config(dry_commands=True)).run_all()
    fake_run_cmd.assert_not_called()
    assert "RUN (dry) git pull origin master" in caplog.text


def test_log_commands_logs_output_verbatim(fake_run_cmd, caplog):
    caplog.set_level("INFO")
    fake_run_cmd.return_value = (0, "Already up to date.\n", "  warning: x\n")
    CommandRunner(_config(log_commands=True)).run("git pull $remote$")

    messages = [r.getMessage() for r in caplog.records]
    assert "[gitpuller] RUN git pull origin" in messages
    assert "Already up to date.\n" in messages
    assert "  warning: x\n" in messages


def test_quiet_by_default(fake_run_cmd, caplog):
    caplog.set_level("INFO")
    CommandRunner(_config()).run("git pull")
    assert caplog.records == []


def test_run_cmd_captures_output():
    rc, out, err = run_cmd("echo hello; echo oops 1>&2; exit 3")
    assert rc == 3
    assert out == "hello\n"
    assert err == "oops\n"


def test_run_cmd_kills_on_timeout(mocker):
    proc = mocker.MagicMock()
    proc.communicate.side_effect = [subprocess.TimeoutExpired("x", 1), ("", "")]
    mocker.patch.object(commands.subprocess, "Popen", return_value=proc)
    with pytest.raises(subprocess.TimeoutExpired):
        run_cmd("sleep 10", timeout=1)
    proc.kill.assert_called_once()
