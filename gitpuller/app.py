# Flask glue only: turn a Flask request into a WebhookRequest, hand it to
# the Puller, turn (body, status) back into a response.

from flask import Flask, jsonify, request

from .github import WebhookRequest
from .puller import Puller

DEFAULT_HOOK_PATH = "/_git_hook"

# the method check lives in the validator, so the route accepts everything
ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


def request_view() -> WebhookRequest:
    return WebhookRequest.build(
        method=request.method,
        headers=request.headers,
        query=request.args.to_dict(),
        body=request.get_data(cache=True),
        payload=request.get_json(silent=True),
    )


def make_view(puller: Puller):
    def git_hook():
        body, status = puller.handle(request_view())
        return body, status, {"Content-Type": "text/plain; charset=utf-8"}
    return git_hook


def add_to(app: Flask, path: str, puller: Puller, endpoint: str = "git_hook") -> Flask:
    """Mount the puller on an existing app at path."""
    app.add_url_rule(path, endpoint=endpoint, view_func=make_view(puller), methods=ALL_METHODS)
    return app


def create_app(puller: Puller, path: str = DEFAULT_HOOK_PATH) -> Flask:
    app = Flask(__name__)
    add_to(app, path, puller)

    @app.route("/status", methods=["GET"])
    def status():
        opts = puller.options
        return jsonify({
            "ok": True,
            "events": list(opts.events),
            "branches": list(opts.branches),
            "command_order": list(opts.command_order),
            "dry_commands": opts.dry_commands,
        })

    return app
