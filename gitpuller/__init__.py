from .config import PullerConfig, load_config
from .errors import CommandError, ConfigError, PullerError
from .github import Notification, WebhookRequest
from .puller import Puller

__all__ = [
    "CommandError",
    "ConfigError",
    "Notification",
    "Puller",
    "PullerConfig",
    "PullerError",
    "WebhookRequest",
    "load_config",
]
