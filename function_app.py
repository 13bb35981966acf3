"""Azure Functions entrypoint for the topic management proxy."""

import json
import os
import sys
from pathlib import Path

import azure.functions as func

_root = Path(__file__).resolve().parent
if str(_root) not in sys.path:
    sys.path.insert(0, str(_root))

from api.auth import token_matches
from scripts.keyvault_loader import load_env

app = func.FunctionApp(http_auth_level=func.AuthLevel.ANONYMOUS)
_initialized = False
_services = None


def _init() -> None:
    global _initialized, _services
    if _initialized:
        return
    from api.master import MasterService
    from api.topic import TopicServices

    load_env()
    if not os.environ.get("API_AUTH_TOKEN"):
        raise RuntimeError("API_AUTH_TOKEN is not set (Key Vault or local settings)")
    _services = TopicServices.from_master(MasterService.from_env())
    _initialized = True


def _json_response(payload: dict, status: int = 200) -> func.HttpResponse:
    return func.HttpResponse(
        body=json.dumps(payload, default=str),
        status_code=status,
        mimetype="application/json",
    )


def _unauthorized() -> func.HttpResponse:
    return _json_response({"detail": "Unauthorized"}, status=401)


def _validate_bearer(req: func.HttpRequest) -> bool:
    return token_matches(req.headers.get("authorization", ""), os.environ.get("API_AUTH_TOKEN"))


def _guard(req: func.HttpRequest):
    """Return an error response if the app cannot serve ``req``, else None."""
    try:
        _init()
    except Exception as exc:
        return _json_response({"detail": str(exc)}, status=503)
    if not _validate_bearer(req):
        return _unauthorized()
    return None


@app.route(route="v1/topic", methods=["POST"])
def topic_method_proxy(req: func.HttpRequest) -> func.HttpResponse:
    from api.topic import dispatch

    denied = _guard(req)
    if denied is not None:
        return denied
    body = req.get_body().decode("utf-8", errors="replace")
    result = dispatch(req.params.get("method"), body, _services)
    return _json_response(result.to_dict())


def _query_master(req: func.HttpRequest) -> func.HttpResponse:
    from api.topic import query_master_text

    denied = _guard(req)
    if denied is not None:
        return denied
    text = query_master_text(_services, dict(req.params))
    return func.HttpResponse(body=text, status_code=200, mimetype="application/json")


@app.route(route="v1/topic/consumerAuth", methods=["GET"])
def query_consumer_auth(req: func.HttpRequest) -> func.HttpResponse:
    return _query_master(req)


@app.route(route="v1/topic/topicConfig", methods=["GET"])
def query_topic_config(req: func.HttpRequest) -> func.HttpResponse:
    return _query_master(req)
