"""Topic management proxy: validates a method name and JSON body, then forwards to the master."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, Response

from api.auth import require_bearer_token
from api.master import (
    ADMIN_USER,
    OP_MODIFY,
    SET_AUTH_CONTROL,
    MasterError,
    MasterService,
    NodeService,
    TopicService,
)
from api.results import INVALID_JSON, INVALID_METHOD, NO_SUCH_METHOD, PARAM_ILLEGAL, TopicResult, error_result

logger = logging.getLogger(__name__)

ADD = "add"
CLONE = "clone"
AUTH_CONTROL = "authControl"
MODIFY = "modify"
DELETE = "delete"
REMOVE = "remove"
QUERY_CAN_WRITE = "queryCanWrite"
PUBLISH = "publish"
SUBSCRIBE = "subscribe"

ALLOWED_METHODS = (ADD, CLONE, AUTH_CONTROL, MODIFY, DELETE, REMOVE, QUERY_CAN_WRITE, PUBLISH, SUBSCRIBE)


@dataclass
class TopicServices:
    master: MasterService
    node: NodeService
    topic: TopicService

    @classmethod
    def from_master(cls, master: MasterService) -> TopicServices:
        return cls(master=master, node=NodeService(master), topic=TopicService(master))

    def close(self) -> None:
        self.master.close()


def _set_auth_control(services: TopicServices, req: dict) -> TopicResult:
    req = {**req, "method": SET_AUTH_CONTROL, "type": OP_MODIFY, "createUser": ADMIN_USER}
    return services.master.base_request_master(req)


def _query_can_write(services: TopicServices, req: dict) -> TopicResult:
    topic_name = req.get("topicName")
    cluster_id = req.get("clusterId")
    if not isinstance(topic_name, str) or not topic_name.strip() or cluster_id is None:
        return error_result(PARAM_ILLEGAL)
    return services.topic.query_can_write(topic_name.strip(), cluster_id)


def _forward(services: TopicServices, req: dict) -> TopicResult:
    return services.master.base_request_master(req)


def _clone(services: TopicServices, req: dict) -> TopicResult:
    return services.node.clone_topic_to_brokers(req)


_HANDLERS = {
    ADD: _forward,
    CLONE: _clone,
    AUTH_CONTROL: _set_auth_control,
    MODIFY: _forward,
    DELETE: _forward,
    REMOVE: _forward,
    QUERY_CAN_WRITE: _query_can_write,
    PUBLISH: _forward,
    SUBSCRIBE: _forward,
}


def dispatch(method: str | None, body: str | None, services: TopicServices) -> TopicResult:
    """Route one proxy call. Bad input becomes an error result, never an exception."""
    logger.info(f"Received method for topicMethodProxy: {method}")
    logger.info(f"Received req for topicMethodProxy: {body}")

    if method not in ALLOWED_METHODS:
        logger.warning(f"Invalid method value received: {method}")
        return error_result(INVALID_METHOD)

    try:
        req = json.loads(body or "")
    except (json.JSONDecodeError, TypeError):
        logger.warning(f"Invalid JSON format received: {body}")
        return error_result(INVALID_JSON)
    if not isinstance(req, dict):
        return error_result(PARAM_ILLEGAL)

    handler = _HANDLERS.get(method)
    if handler is None:
        return error_result(NO_SUCH_METHOD)
    return handler(services, req)


def query_master_text(services: TopicServices, params: dict) -> str:
    """Forward ``params`` to the master and return its body unchanged."""
    try:
        return services.master.query_master(services.master.get_query_url(params))
    except MasterError as e:
        return json.dumps(error_result(str(e)).to_dict())


def get_topic_services(request: Request) -> TopicServices:
    services = getattr(request.app.state, "topic_services", None)
    if services is None:
        raise HTTPException(status_code=503, detail="Topic services are not initialised")
    return services


router = APIRouter(prefix="/v1/topic", tags=["topic"], dependencies=[Depends(require_bearer_token)])


@router.post("")
async def topic_method_proxy(
    request: Request,
    method: str | None = Query(None, description="Topic operation, e.g. add, clone, queryCanWrite."),
    services: TopicServices = Depends(get_topic_services),
):
    """Broker method proxy: divides topic operations over the master, node and topic services."""
    body = (await request.body()).decode("utf-8", errors="replace")
    result = await run_in_threadpool(dispatch, method, body, services)
    return JSONResponse(result.to_dict())


@router.get("/consumerAuth")
async def query_consumer_auth(request: Request, services: TopicServices = Depends(get_topic_services)):
    """Consumer auth control, shows all consumer groups."""
    text = await run_in_threadpool(query_master_text, services, dict(request.query_params))
    return Response(content=text, media_type="application/json")


@router.get("/topicConfig")
async def query_topic_config(request: Request, services: TopicServices = Depends(get_topic_services)):
    """Topic config info."""
    text = await run_in_threadpool(query_master_text, services, dict(request.query_params))
    return Response(content=text, media_type="application/json")
