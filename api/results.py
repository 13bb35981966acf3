"""Result envelope returned by the topic proxy."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

INVALID_METHOD = "Invalid method value."
INVALID_JSON = "Invalid JSON format."
NO_SUCH_METHOD = "no such method"
PARAM_ILLEGAL = "param illegal"
NO_SUCH_CLUSTER = "no such cluster"
TOPIC_NOT_EXIST = "topic not exist"
MASTER_UNREACHABLE = "request master failed"


@dataclass
class TopicResult:
    """Same shape as the master's JSON answer: errCode, errMsg, result, data."""

    err_code: int = 0
    err_msg: str = ""
    result: bool = True
    data: Any = None

    @classmethod
    def success(cls, data: Any = None) -> TopicResult:
        return cls(err_code=0, err_msg="", result=True, data=data)

    @classmethod
    def from_master(cls, payload: dict) -> TopicResult:
        """Raises ValueError when errCode is not an integer."""
        try:
            err_code = int(payload.get("errCode", -1))
        except (TypeError, ValueError) as e:
            raise ValueError(f"unexpected errCode {payload.get('errCode')!r}") from e
        return cls(
            err_code=err_code,
            err_msg=str(payload.get("errMsg") or ""),
            result=err_code == 0,
            data=payload.get("data"),
        )

    def to_dict(self) -> dict:
        return {
            "errCode": self.err_code,
            "errMsg": self.err_msg,
            "result": self.result,
            "data": self.data,
        }


def error_result(message: str) -> TopicResult:
    return TopicResult(err_code=-1, err_msg=message, result=False, data="")
