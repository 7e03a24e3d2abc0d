# gitpuller/config.py
# Options for the puller: defaults, merging user overrides, YAML loading.
#
# vars / commands / delays are merged one level deep, so passing
#   commands={"install": ["make"]}
# keeps the default pre/git/post categories and only replaces install.

import copy
import os
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional, Tuple

import yaml

from .errors import ConfigError

DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "puller.yaml")

DEFAULT_OPTIONS = {
    "events": ["push"],                 # events to react to, "*" for all
    "secret": "",                       # webhook secret, empty skips the signature check
    "token": "",                        # extra ?token= query check, empty skips it
    "vars": {                           # replaced in commands as $<name>$
        "appName": "ExampleApp",
        "remote": "origin",
        "branch": "master",
    },
    "pusher_ignore_regex": re.compile(r"\[bot\]", re.IGNORECASE),
    "commit_ignore_regex": re.compile(r"\[nopull\]", re.IGNORECASE),
    "branches": ["main", "master"],
    "only_tags": False,
    "command_order": ["pre", "git", "install", "post"],
    "commands": {
        "pre": [],
        "git": [
            "git fetch $remote$ $branch$",
            "git pull $remote$ $branch$",
        ],
        "install": [
            "pip install -r requirements.txt",
        ],
        "post": [
            "systemctl restart $appName$",
        ],
    },
    "delays": {                         # seconds to wait before each category
        "pre": 0,
        "git": 0,
        "install": 0,
        "post": 0,
    },
    "dry_commands": False,              # only log commands, never run them
    "log_commands": False,              # log commands and their output
    "precondition": None,               # callable(request, notification) -> bool
    "command_timeout": None,            # seconds, None waits forever
    "serialize_runs": False,            # never let two runs overlap
    "cwd": None,                        # working directory for commands
}

MERGED_KEYS = ("vars", "commands", "delays")

# spellings used by the JS middleware configs people copy around
CAMEL_CASE_ALIASES = {
    "pusherIgnoreRegex": "pusher_ignore_regex",
    "commitIgnoreRegex": "commit_ignore_regex",
    "onlyTags": "only_tags",
    "commandOrder": "command_order",
    "dryCommands": "dry_commands",
    "logCommands": "log_commands",
    "commandTimeout": "command_timeout",
    "serializeRuns": "serialize_runs",
}

IgnoreRule = Optional[Callable[[str], bool]]


@dataclass(frozen=True)
class PullerConfig:
    events: Tuple[str, ...]
    secret: str
    token: str
    vars: Mapping[str, str]
    pusher_ignore: IgnoreRule
    commit_ignore: IgnoreRule
    branches: Tuple[str, ...]
    only_tags: bool
    command_order: Tuple[str, ...]
    commands: Mapping[str, Tuple[str, ...]]
    delays: Mapping[str, float]
    dry_commands: bool
    log_commands: bool
    precondition: Optional[Callable[..., bool]] = None
    command_timeout: Optional[float] = None
    serialize_runs: bool = False
    cwd: Optional[str] = None
    # the raw merged options, handy for printing the effective config
    options: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_options(cls, options: Optional[Mapping[str, Any]] = None) -> "PullerConfig":
        merged = merge_options(options)
        return cls(
            events=_str_list(merged["events"], "events"),
            secret=str(merged["secret"] or ""),
            token=str(merged["token"] or ""),
            vars=MappingProxyType(_vars(merged["vars"])),
            pusher_ignore=ignore_rule(merged["pusher_ignore_regex"], "pusher_ignore_regex"),
            commit_ignore=ignore_rule(merged["commit_ignore_regex"], "commit_ignore_regex"),
            branches=_str_list(merged["branches"], "branches"),
            only_tags=bool(merged["only_tags"]),
            command_order=_str_list(merged["command_order"], "command_order"),
            commands=MappingProxyType({
                str(cat): _str_list(cmds, f"commands.{cat}") for cat, cmds in merged["commands"].items()
            }),
            delays=MappingProxyType({str(cat): _delay(v, cat) for cat, v in merged["delays"].items()}),
            dry_commands=bool(merged["dry_commands"]),
            log_commands=bool(merged["log_commands"]),
            precondition=_precondition(merged["precondition"]),
            command_timeout=_timeout(merged["command_timeout"]),
            serialize_runs=bool(merged["serialize_runs"]),
            cwd=merged["cwd"],
            options=MappingProxyType(merged),
        )

    def delay_for(self, category: str) -> float:
        return self.delays.get(category, 0)


def merge_options(options: Optional[Mapping[str, Any]] = None) -> dict:
    """
    Defaults + user options. Top-level keys replace, the MERGED_KEYS maps
    are merged per key. Unknown keys raise ConfigError.
    """
    merged = copy.deepcopy(DEFAULT_OPTIONS)

    for key, value in (options or {}).items():
        key = CAMEL_CASE_ALIASES.get(key, key)
        if key not in DEFAULT_OPTIONS:
            raise ConfigError(f"unknown option '{key}'")
        if key in MERGED_KEYS:
            if value is None:
                continue
            if not isinstance(value, Mapping):
                raise ConfigError(f"'{key}' must be a mapping, got {type(value).__name__}")
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def ignore_rule(rule, name="rule") -> IgnoreRule:
    """
    Normalize an ignore option into a predicate (or None when disabled).
    Accepts a pattern string (case-insensitive), a compiled pattern, or a callable.
    """
    if rule is None or rule == "":
        return None
    if isinstance(rule, str):
        try:
            rule = re.compile(rule, re.IGNORECASE)
        except re.error as e:
            raise ConfigError(f"'{name}' is not a valid regex: {e}") from e
    if isinstance(rule, re.Pattern):
        pattern = rule
        return lambda text: pattern.search(text) is not None
    if callable(rule):
        return rule
    raise ConfigError(f"'{name}' must be a regex string, compiled pattern or callable")


def load_config(path: Optional[str] = None, env=None) -> PullerConfig:
    """
    Read options from a YAML file, then apply environment overrides
    (GITPULLER_SECRET, GITPULLER_TOKEN) so secrets can stay out of the file.
    """
    path = path or DEFAULT_CONFIG_PATH
    env = os.environ if env is None else env
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, Mapping):
        raise ConfigError(f"{path}: top level must be a mapping")

    section = data["puller"] if "puller" in data else data
    if section is None:
        section = {}
    if not isinstance(section, Mapping):
        raise ConfigError(f"{path}: 'puller' section must be a mapping")

    options = dict(section)
    if env.get("GITPULLER_SECRET"):
        options["secret"] = env["GITPULLER_SECRET"]
    if env.get("GITPULLER_TOKEN"):
        options["token"] = env["GITPULLER_TOKEN"]
    return PullerConfig.from_options(options)


# ---- coercion helpers ----------------------------------------------------------

def _vars(value) -> dict:
    out = {}
    for name, replacement in value.items():
        if replacement is None:
            raise ConfigError(f"var '{name}' has no value")
        out[str(name)] = str(replacement)
    return out


def _str_list(value, name) -> Tuple[str, ...]:
    if isinstance(value, str):
        # events: "*" is allowed as a bare string
        return (value,)
    if not isinstance(value, (list, tuple)):
        raise ConfigError(f"'{name}' must be a list, got {type(value).__name__}")
    return tuple(str(v) for v in value)


def _delay(value, category) -> float:
    if value is None:
        return 0
    try:
        seconds = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"delay for '{category}' must be a number") from e
    if seconds < 0:
        raise ConfigError(f"delay for '{category}' must not be negative")
    return seconds


def _timeout(value) -> Optional[float]:
    if value is None:
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError("command_timeout must be a number") from e
    if seconds <= 0:
        raise ConfigError("command_timeout must be positive")
    return seconds


def _precondition(value):
    if value is not None and not callable(value):
        raise ConfigError("precondition must be callable")
    return value
