# gitpuller/github.py
# What GitHub sends us: header names, the push payload and a read-only
# view of the HTTP request the adapter hands to the engine.

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from werkzeug.datastructures import Headers

HOOK_USER_AGENT_PREFIX = "GitHub-Hookshot/"

HEADER_USER_AGENT = "User-Agent"
HEADER_EVENT = "X-GitHub-Event"
HEADER_SIGNATURE = "X-Hub-Signature"

TAG_REF_PREFIX = "refs/tags/"
BRANCH_REF_PREFIX = "refs/heads/"


@dataclass(frozen=True)
class User:
    name: Optional[str] = None
    email: Optional[str] = None

    @classmethod
    def from_payload(cls, data) -> Optional["User"]:
        if not isinstance(data, Mapping):
            return None
        return cls(name=_str_or_none(data.get("name")), email=_str_or_none(data.get("email")))


@dataclass(frozen=True)
class Commit:
    id: Optional[str] = None
    message: Optional[str] = None
    author: Optional[User] = None

    @classmethod
    def from_payload(cls, data) -> Optional["Commit"]:
        if not isinstance(data, Mapping):
            return None
        return cls(
            id=_str_or_none(data.get("id")),
            message=_str_or_none(data.get("message")),
            author=User.from_payload(data.get("author")),
        )


@dataclass(frozen=True)
class Notification:
    """Parsed push notification. Built per request, never mutated."""

    event: Optional[str] = None
    ref: Optional[str] = None
    base_ref: Optional[str] = None
    pusher: Optional[User] = None
    commits: Tuple[Commit, ...] = ()
    head_commit: Optional[Commit] = None
    created: bool = False
    deleted: bool = False
    signature: Optional[str] = None
    user_agent: Optional[str] = None
    token: Optional[str] = None

    @classmethod
    def from_request(cls, request: "WebhookRequest") -> "Notification":
        payload = request.payload if isinstance(request.payload, Mapping) else {}
        raw_commits = payload.get("commits")
        commits = ()
        if isinstance(raw_commits, (list, tuple)):
            commits = tuple(c for c in (Commit.from_payload(r) for r in raw_commits) if c is not None)
        return cls(
            event=request.headers.get(HEADER_EVENT),
            ref=_str_or_none(payload.get("ref")),
            base_ref=_str_or_none(payload.get("base_ref")),
            pusher=User.from_payload(payload.get("pusher")),
            commits=commits,
            head_commit=Commit.from_payload(payload.get("head_commit")),
            created=bool(payload.get("created", False)),
            deleted=bool(payload.get("deleted", False)),
            signature=request.headers.get(HEADER_SIGNATURE),
            user_agent=request.headers.get(HEADER_USER_AGENT),
            token=_str_or_none(request.query.get("token")),
        )

    @property
    def is_tag(self) -> bool:
        return bool(self.ref) and self.ref.startswith(TAG_REF_PREFIX)


@dataclass(frozen=True)
class WebhookRequest:
    """Everything the engine needs from the HTTP layer."""

    method: str
    headers: Headers = field(default_factory=Headers)
    query: Mapping[str, Any] = field(default_factory=dict)
    body: bytes = b""
    payload: Optional[Dict[str, Any]] = None

    @classmethod
    def build(cls, method="POST", headers=None, query=None, body=b"", payload=None):
        if not isinstance(headers, Headers):
            headers = Headers(headers)
        return cls(method=method, headers=headers, query=dict(query or {}), body=body, payload=payload)


def _str_or_none(value):
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)
