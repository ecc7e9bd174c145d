import asyncio
import json
from typing import Any, TextIO

from pydantic import ValidationError

from server.dispatcher import RequestDispatcher
from server.protocol import ErrorCode, Request, RequestId, Response
from utils.errors import ParseError
from utils.logger import logger


def _recover_id(payload: Any) -> RequestId:
    """Returns the request id of a rejected payload when it is usable, else None."""
    if isinstance(payload, dict):
        request_id = payload.get("id")
        if isinstance(request_id, (str, int)) and not isinstance(request_id, bool):
            return request_id
    return None


class ProtocolLoop:
    """
    Reads one JSON-RPC request per line and writes exactly one response line for each.

    Requests are handled strictly one at a time. Blank lines are skipped and
    end-of-stream ends the loop; no input line can stop it otherwise.
    """

    def __init__(self, dispatcher: RequestDispatcher, in_stream: TextIO, out_stream: TextIO):
        self.dispatcher = dispatcher
        self.in_stream = in_stream
        self.out_stream = out_stream
        # Raw lines are decoded one at a time, so a line that is not UTF-8 fails alone.
        self._reader = getattr(in_stream, "buffer", in_stream)

    async def run(self) -> None:
        logger.info("Listening on stdin for JSON-RPC requests...")
        while True:
            raw = await asyncio.to_thread(self._reader.readline)
            if not raw:
                logger.info("EOF received, shutting down")
                return
            try:
                line = raw.decode("utf-8") if isinstance(raw, bytes) else raw
            except UnicodeDecodeError as e:
                logger.error(f"Request line is not valid UTF-8: {raw!r} ({e})")
                self._write(Response.failure(None, ParseError.code, "Parse error"))
                continue
            line = line.strip()
            if not line:
                continue
            response = await self.handle_line(line)
            self._write(response)

    async def handle_line(self, line: str) -> Response:
        """Parses and dispatches one non-blank line."""
        try:
            payload = json.loads(line)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse JSON from line: {line!r} ({e})")
            return Response.failure(None, ParseError.code, "Parse error")

        try:
            request = Request.model_validate(payload)
        except ValidationError as e:
            logger.error(f"Failed to decode request from JSON: {line!r} ({e.error_count()} errors)")
            return Response.failure(_recover_id(payload), ParseError.code, "Parse error")

        logger.debug(f"Request params: {request.params}")
        try:
            return await self.dispatcher.dispatch(request)
        except Exception as e:
            logger.opt(exception=e).error(f"Unhandled error while dispatching {request.method}")
            return Response.failure(request.id, ErrorCode.INTERNAL_ERROR, f"Processing failed: {e}")

    def _write(self, response: Response) -> None:
        self.out_stream.write(response.to_line() + "\n")
        self.out_stream.flush()
        logger.debug(f"Sent response for request {response.id}")
