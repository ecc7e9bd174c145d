"""
JSON-RPC 2.0 envelopes exchanged over the newline-delimited transport.
"""
import json
from enum import Enum, IntEnum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, model_validator

JSONRPC_VERSION = "2.0"

# Strict, so an id such as 1.0 or true is rejected instead of coerced.
RequestId = Optional[Union[StrictInt, StrictStr]]


class ErrorCode(IntEnum):
    PARSE_ERROR = -32700
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603


class Method(str, Enum):
    INITIALIZE = "initialize"
    TOOLS_LIST = "tools/list"
    TOOLS_CALL = "tools/call"


class Request(BaseModel):
    model_config = ConfigDict(frozen=True)

    jsonrpc: str = JSONRPC_VERSION
    id: RequestId = None
    method: str
    params: Optional[Dict[str, Any]] = None


class ErrorObject(BaseModel):
    code: int
    message: str


class Response(BaseModel):
    """A response carries either a result or an error, never both."""

    jsonrpc: str = JSONRPC_VERSION
    id: RequestId = None
    result: Optional[Dict[str, Any]] = None
    error: Optional[ErrorObject] = None

    @model_validator(mode="after")
    def _exactly_one_outcome(self) -> "Response":
        if (self.result is None) == (self.error is None):
            raise ValueError("a response needs exactly one of result or error")
        return self

    @classmethod
    def success(cls, request_id: RequestId, result: Dict[str, Any]) -> "Response":
        return cls(id=request_id, result=result)

    @classmethod
    def failure(cls, request_id: RequestId, code: int, message: str) -> "Response":
        return cls(id=request_id, error=ErrorObject(code=int(code), message=message))

    def to_line(self) -> str:
        """Serializes the response as a single line of JSON (no trailing newline)."""
        payload: Dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            payload["error"] = self.error.model_dump()
        else:
            payload["result"] = self.result
        return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


def text_content(text: str) -> Dict[str, Any]:
    """Wraps text in the tool-call result shape."""
    return {"content": [{"type": "text", "text": text}]}


class ToolDescriptor(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str
    input_schema: Dict[str, Any] = Field(alias="inputSchema")

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
