# tests/conftest.py
import hashlib
import hmac
import json
import os
import sys

import pytest

# path to the repo root (one level up from tests/)
REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

# ensure repo root is importable so `import gitpuller` works without installing
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from gitpuller.github import WebhookRequest  # noqa: E402

SECRET = "SuperSecretSecret"


def sign(body: bytes, secret: str = SECRET) -> str:
    return "sha1=" + hmac.new(secret.encode(), body, hashlib.sha1).hexdigest()


def push_payload(ref="refs/heads/main", pusher="me!", message="hi!", **extra):
    payload = {
        "ref": ref,
        "pusher": {"name": pusher, "email": "me@example.com"},
        "commits": [{"id": "abc123", "message": message, "author": {"name": pusher}}],
        "head_commit": {"id": "abc123", "message": message, "author": {"name": pusher}},
        "created": False,
        "deleted": False,
    }
    payload.update(extra)
    return payload


def push_request(payload=None, secret=SECRET, event="push", query=None, method="POST", **header_overrides):
    payload = push_payload() if payload is None else payload
    body = json.dumps(payload).encode()
    headers = {
        "User-Agent": "GitHub-Hookshot/abc",
        "X-GitHub-Event": event,
        "X-Hub-Signature": sign(body, secret),
    }
    headers.update(header_overrides)
    headers = {k: v for k, v in headers.items() if v is not None}
    return WebhookRequest.build(method=method, headers=headers, query=query, body=body, payload=payload)


@pytest.fixture
def fake_run_cmd(mocker):
    # never spawn real processes in tests
    return mocker.patch("gitpuller.commands.run_cmd", return_value=(0, "", ""))


@pytest.fixture
def no_sleep(mocker):
    return mocker.patch("gitpuller.commands.time.sleep")
