"""Client for the message-queue master web API, and the services built on it.

The master answers ``GET http://<host:port>/webapi.htm?method=...&...`` with a
JSON object ``{"result", "errCode", "errMsg", "data"}``. Masters are addressed
by cluster id through the ``MQ_MASTER_NODES`` mapping.
"""

from __future__ import annotations

import json
import logging
import os
from urllib.parse import urlencode

import requests

from api.results import (
    MASTER_UNREACHABLE,
    NO_SUCH_CLUSTER,
    PARAM_ILLEGAL,
    TOPIC_NOT_EXIST,
    TopicResult,
    error_result,
)

logger = logging.getLogger(__name__)

WEB_API_PATH = "/webapi.htm"
DEFAULT_MASTER_TIMEOUT = 10.0

QUERY_TOPIC_INFO = "admin_query_topic_info"
ADD_TOPIC_RECORD = "admin_add_new_topic_record"
SET_AUTH_CONTROL = "admin_set_topic_authorize_control"
OP_MODIFY = "op_modify"
ADMIN_USER = "admin"

# Per-broker settings carried over when a topic is cloned.
CLONED_TOPIC_SETTINGS = (
    "numPartitions",
    "unflushThreshold",
    "unflushInterval",
    "deleteWhen",
    "deletePolicy",
    "numTopicStores",
    "acceptPublish",
    "acceptSubscribe",
)


class MasterError(Exception):
    """The master could not be addressed or did not answer with JSON."""


def load_master_nodes() -> dict[str, str]:
    """Parse MQ_MASTER_NODES (``{"<clusterId>": "host:port"}``)."""
    raw = os.environ.get("MQ_MASTER_NODES", "").strip()
    if not raw:
        logger.warning("MQ_MASTER_NODES is not set; topic requests will fail with 'no such cluster'")
        return {}
    try:
        nodes = json.loads(raw)
    except json.JSONDecodeError as e:
        raise RuntimeError(f"MQ_MASTER_NODES is not valid JSON: {e}") from e
    if not isinstance(nodes, dict):
        raise RuntimeError("MQ_MASTER_NODES must be a JSON object of clusterId to host:port")
    return {str(k): str(v).strip() for k, v in nodes.items()}


def master_timeout() -> float:
    raw = os.environ.get("MQ_MASTER_TIMEOUT", "").strip()
    try:
        value = float(raw) if raw else DEFAULT_MASTER_TIMEOUT
    except ValueError:
        logger.warning(f"Ignoring non-numeric MQ_MASTER_TIMEOUT={raw!r}")
        return DEFAULT_MASTER_TIMEOUT
    return value if value > 0 else DEFAULT_MASTER_TIMEOUT


class MasterService:
    """Forwards requests to the master of a cluster."""

    def __init__(
        self,
        nodes: dict[str, str],
        timeout: float = DEFAULT_MASTER_TIMEOUT,
        session: requests.Session | None = None,
    ):
        self.nodes = dict(nodes)
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_env(cls) -> MasterService:
        return cls(load_master_nodes(), timeout=master_timeout())

    def close(self) -> None:
        self.session.close()

    def master_address(self, cluster_id) -> str:
        """Return ``host:port`` of the cluster's master.

        Without a cluster id the only configured master is used.
        """
        if cluster_id is None or str(cluster_id).strip() == "":
            if len(self.nodes) == 1:
                return next(iter(self.nodes.values()))
            raise MasterError(NO_SUCH_CLUSTER)
        address = self.nodes.get(str(cluster_id).strip())
        if not address:
            raise MasterError(f"{NO_SUCH_CLUSTER}: {cluster_id}")
        return address

    def get_query_url(self, params: dict) -> str:
        address = self.master_address(params.get("clusterId"))
        query = urlencode({k: _query_value(v) for k, v in params.items() if v is not None})
        return f"http://{address}{WEB_API_PATH}?{query}"

    def query_master(self, url: str) -> str:
        """GET ``url`` and return the body text as the master sent it."""
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f"request master {url} failed: {e}")
            raise MasterError(f"{MASTER_UNREACHABLE}: {e}") from e
        logger.info(f"request master {url} status={response.status_code}")
        return response.text

    def request_master(self, params: dict) -> dict:
        text = self.query_master(self.get_query_url(params))
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            raise MasterError(f"{MASTER_UNREACHABLE}: master answered with non-JSON body") from e
        if not isinstance(payload, dict):
            raise MasterError(f"{MASTER_UNREACHABLE}: unexpected master answer")
        return payload

    def base_request_master(self, payload: dict) -> TopicResult:
        """Send ``payload`` as the query string and return the master's answer."""
        try:
            answer = self.request_master(payload)
        except MasterError as e:
            return error_result(str(e))
        try:
            return TopicResult.from_master(answer)
        except ValueError as e:
            logger.warning(f"master answered {answer!r}: {e}")
            return error_result(f"{MASTER_UNREACHABLE}: unexpected master answer")


class NodeService:
    def __init__(self, master: MasterService):
        self.master = master

    def clone_topic_to_brokers(self, req: dict) -> TopicResult:
        """Create ``targetTopicNames`` on ``brokerId`` with the settings of ``sourceTopicName``."""
        source = str(req.get("sourceTopicName") or "").strip()
        targets = _as_list(req.get("targetTopicNames"))
        broker_ids = _as_list(req.get("brokerId"))
        if not source or not targets or not broker_ids:
            return error_result(PARAM_ILLEGAL)
        cluster_id = req.get("clusterId")

        try:
            info = self.master.request_master(
                {"method": QUERY_TOPIC_INFO, "topicName": source, "clusterId": cluster_id}
            )
        except MasterError as e:
            return error_result(str(e))
        entries = _topic_entries(info)
        if not entries:
            return error_result(f"{TOPIC_NOT_EXIST}: {source}")
        settings = {k: entries[0][k] for k in CLONED_TOPIC_SETTINGS if k in entries[0]}

        for target in targets:
            result = self.master.base_request_master(
                {
                    **settings,
                    "method": ADD_TOPIC_RECORD,
                    "type": OP_MODIFY,
                    "topicName": target,
                    "brokerId": ",".join(str(b) for b in broker_ids),
                    "clusterId": cluster_id,
                    "createUser": req.get("createUser") or req.get("modifyUser") or ADMIN_USER,
                }
            )
            if not result.result:
                logger.warning(f"clone topic {source} to {target} failed: {result.err_msg}")
                return result
            logger.info(f"clone topic {source} to {target} on brokers {broker_ids} success")
        return TopicResult.success()


class TopicService:
    def __init__(self, master: MasterService):
        self.master = master

    def query_can_write(self, topic_name: str, cluster_id) -> TopicResult:
        """True only when the topic exists and every broker holding it accepts publish."""
        try:
            info = self.master.request_master(
                {"method": QUERY_TOPIC_INFO, "topicName": topic_name, "clusterId": cluster_id}
            )
        except MasterError as e:
            return error_result(str(e))
        entries = _topic_entries(info)
        if not entries:
            return error_result(f"{TOPIC_NOT_EXIST}: {topic_name}")
        can_write = all(_accepts_publish(e) for e in entries)
        logger.info(f"query can write for topic={topic_name} cluster={cluster_id}, result={can_write}")
        return TopicResult(err_code=0, err_msg="", result=can_write)


def _query_value(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value)
    return str(value)


def _as_list(value) -> list:
    if value is None:
        return []
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    if isinstance(value, (list, tuple)):
        return [v for v in value if str(v).strip()]
    return [value]


def _topic_entries(payload: dict) -> list[dict]:
    """Per-broker entries of an admin_query_topic_info answer."""
    entries: list[dict] = []
    for topic in payload.get("data") or []:
        if not isinstance(topic, dict):
            continue
        entries.extend(e for e in topic.get("topicInfo") or [] if isinstance(e, dict))
    return entries


def _accepts_publish(entry: dict) -> bool:
    value = (entry.get("runInfo") or entry).get("acceptPublish")
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)
