# gitpuller/validation.py
# Decides whether an inbound delivery should trigger a run.
#
# Order matters:
#   1-5  request shape      -> 400
#   6-9  relevance filters  -> 200, silently ignored
#   10-11 token / signature -> 401, only for relevant events
# so irrelevant traffic gets the same 200 whether or not it is authentic.

import logging
from dataclasses import dataclass
from typing import Optional, Union

from .config import PullerConfig
from .github import BRANCH_REF_PREFIX, HOOK_USER_AGENT_PREFIX, Notification, WebhookRequest
from .signature import verify_signature

logger = logging.getLogger(__name__)

TAG = "[gitpuller]"


@dataclass(frozen=True)
class Accepted:
    notification: Notification


@dataclass(frozen=True)
class Rejected:
    reason: str
    status_code: int

    @property
    def ignored(self) -> bool:
        # relevance filters answer 200 with no body
        return self.status_code == 200


Result = Union[Accepted, Rejected]

IGNORED = Rejected("", 200)


# ---- relevance filters --------------------------------------------------------

def should_handle_event(config: PullerConfig, notification: Notification) -> bool:
    if config.events and config.events[0] == "*":
        return True
    return notification.event in config.events


def branch_name(notification: Notification) -> Optional[str]:
    """base_ref if present (tag pushes carry the branch there), else ref."""
    ref = notification.base_ref or notification.ref
    if not ref:
        return None
    if ref.startswith(BRANCH_REF_PREFIX):
        ref = ref[len(BRANCH_REF_PREFIX):]
    return ref.strip()


def should_handle_ref(config: PullerConfig, notification: Notification) -> bool:
    if config.branches and config.branches[0] == "*":
        return True
    if config.only_tags and not notification.is_tag:
        return False
    branch = branch_name(notification)
    if not branch:
        return False
    return branch in config.branches


def should_handle_pusher(config: PullerConfig, notification: Notification) -> bool:
    if config.pusher_ignore is None:
        return True
    pusher = notification.pusher
    if pusher is None or pusher.name is None:
        return True
    return not config.pusher_ignore(pusher.name)


def should_handle_commit(config: PullerConfig, notification: Notification) -> bool:
    if config.commit_ignore is None:
        return True
    commit = notification.head_commit
    if commit is None and notification.commits:
        commit = notification.commits[0]
    if commit is None or commit.message is None:
        return True
    return not config.commit_ignore(commit.message)


# ---- authentication -----------------------------------------------------------

def validate_token(config: PullerConfig, notification: Notification) -> bool:
    if not config.token:
        return True  # no token configured
    if not notification.token:
        return False
    return notification.token == config.token


def validate_signature(config: PullerConfig, request: WebhookRequest, notification: Notification) -> bool:
    if not config.secret:
        return True
    return verify_signature(request.body, config.secret, notification.signature)


# ---- pipeline -----------------------------------------------------------------

class RequestValidator:
    """
    Runs the checks above in order and returns Accepted or the first Rejected.
    The external precondition is not evaluated here; the engine calls it last.
    """

    def __init__(self, config: PullerConfig):
        self.config = config

    def validate(self, request: WebhookRequest, notification: Optional[Notification] = None) -> Result:
        if notification is None:
            notification = Notification.from_request(request)

        rejected = self._check_shape(request, notification)
        if rejected is not None:
            return rejected

        if not should_handle_event(self.config, notification):
            logger.debug(f"{TAG} ignoring event '{notification.event}'")
            return IGNORED
        if not should_handle_ref(self.config, notification):
            logger.debug(f"{TAG} ignoring ref '{notification.ref}' (base '{notification.base_ref}')")
            return IGNORED
        if not should_handle_pusher(self.config, notification):
            logger.debug(f"{TAG} ignoring pusher '{notification.pusher.name}'")
            return IGNORED
        if not should_handle_commit(self.config, notification):
            logger.debug(f"{TAG} ignoring commit by message")
            return IGNORED

        if not validate_token(self.config, notification):
            logger.warning(f"{TAG} Received webhook request with invalid token")
            return Rejected("invalid token", 401)
        if not validate_signature(self.config, request, notification):
            logger.warning(f"{TAG} Received webhook request with invalid signature")
            return Rejected("invalid signature", 401)

        return Accepted(notification)

    def _check_shape(self, request: WebhookRequest, notification: Notification) -> Optional[Rejected]:
        if (request.method or "").upper() != "POST":
            return Rejected("invalid request method", 400)
        if not notification.user_agent:
            return Rejected("missing user agent header", 400)
        if not notification.user_agent.startswith(HOOK_USER_AGENT_PREFIX):
            return Rejected("invalid user agent", 400)
        if not notification.signature:
            return Rejected("missing request signature", 400)
        if not notification.event:
            return Rejected("missing event", 400)
        if not request.body:
            logger.warning(f"{TAG} Missing request body")
            return Rejected("missing body", 400)
        return None
