import asyncio
from typing import Any, Awaitable, Callable, Dict

from config.models import Config
from core.contracts.vcs import VersionControlClient
from core.formatter.jinja_formatter import Jinja2Formatter
from core.pipeline import ChangeProcessingPipeline
from server.protocol import Method, Request, Response, text_content
from server.tools import (
    AutoCommitArguments,
    ShowDiffArguments,
    ToolName,
    as_arguments,
    tool_descriptors,
)
from utils.errors import InternalError, InvalidParamsError, MethodNotFoundError, ProtocolError
from utils.logger import logger

NO_CHANGES = "No changes found."

Handler = Callable[[Request], Awaitable[Dict[str, Any]]]


class RequestDispatcher:
    """
    Routes a parsed request to its handler and turns every outcome into a Response.
    """

    def __init__(
        self,
        config: Config,
        pipeline: ChangeProcessingPipeline,
        vcs: VersionControlClient,
        formatter: Jinja2Formatter,
    ):
        self.config = config
        self.pipeline = pipeline
        self.vcs = vcs
        self.formatter = formatter
        self._methods: Dict[Method, Handler] = {
            Method.INITIALIZE: self._initialize,
            Method.TOOLS_LIST: self._tools_list,
            Method.TOOLS_CALL: self._tools_call,
        }
        self._tools: Dict[ToolName, Handler] = {
            ToolName.GIT_AUTO_COMMIT: self._git_auto_commit,
            ToolName.GIT_SHOW_DIFF: self._git_show_diff,
        }

    async def dispatch(self, request: Request) -> Response:
        """Handles one request. Never raises: failures become error responses."""
        logger.info(f"Processing request: {request.method} (id: {request.id})")
        try:
            try:
                method = Method(request.method)
            except ValueError:
                raise MethodNotFoundError(f"Method not found: {request.method}") from None
            result = await self._methods[method](request)
        except ProtocolError as e:
            logger.error(f"Request {request.id} failed with {e.code}: {e.message}")
            return Response.failure(request.id, e.code, e.message)
        except Exception as e:
            logger.opt(exception=e).error(f"Request {request.id} failed unexpectedly: {e}")
            return Response.failure(request.id, InternalError.code, f"Processing failed: {e}")
        return Response.success(request.id, result)

    async def _initialize(self, request: Request) -> Dict[str, Any]:
        server = self.config.server
        return {
            "protocolVersion": server.protocol_version,
            "capabilities": {"tools": {}},
            "serverInfo": {"name": server.name, "version": server.version},
        }

    async def _tools_list(self, request: Request) -> Dict[str, Any]:
        tools = tool_descriptors(self.config.model.name)
        logger.debug(f"Tools: {', '.join(tool.name for tool in tools)}")
        return {"tools": [tool.to_wire() for tool in tools]}

    async def _tools_call(self, request: Request) -> Dict[str, Any]:
        name = (request.params or {}).get("name")
        if not isinstance(name, str):
            raise InvalidParamsError("Invalid tool call parameters: missing 'name'")
        try:
            tool = ToolName(name)
        except ValueError:
            raise InvalidParamsError(f"Unknown tool: {name}") from None
        logger.info(f"Calling tool {tool.value}")
        return await self._tools[tool](request)

    async def _git_auto_commit(self, request: Request) -> Dict[str, Any]:
        args = AutoCommitArguments.from_arguments(as_arguments(request.params), self.config.model.name)
        logger.info(
            f"Processing repository: {args.repository_path} with model: {args.model}, "
            f"individual commits: {args.commit_individually}"
        )
        result = await self.pipeline.process(args.repository_path, args.model, args.commit_individually)
        logger.debug(f"Processing result: {result.model_dump_json()}")
        return text_content(self.formatter.render_summary(result))

    async def _git_show_diff(self, request: Request) -> Dict[str, Any]:
        args = ShowDiffArguments.from_arguments(as_arguments(request.params))
        if not await asyncio.to_thread(self.vcs.is_valid_repository, args.repository_path):
            raise InternalError(f"Invalid git repository: {args.repository_path}")
        diff = await asyncio.to_thread(self.vcs.diff, args.repository_path, args.file_path, args.staged)
        logger.debug(f"Got diff output of length: {len(diff)}")
        return text_content(diff if diff.strip() else NO_CHANGES)
