from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict

from core.contracts.models import ModelName, RepoPath
from server.protocol import ToolDescriptor
from utils.errors import InvalidParamsError


class ToolName(str, Enum):
    GIT_AUTO_COMMIT = "git_auto_commit"
    GIT_SHOW_DIFF = "git_show_diff"


def tool_descriptors(default_model: str) -> List[ToolDescriptor]:
    """The static tool list advertised by `tools/list`."""
    return [
        ToolDescriptor(
            name=ToolName.GIT_AUTO_COMMIT.value,
            description="Analyze git changes and commit files with AI-generated messages",
            input_schema={
                "type": "object",
                "properties": {
                    "repository_path": {"type": "string", "description": "Path to the git repository"},
                    "model": {
                        "type": "string",
                        "description": "Model to generate commit messages with",
                        "default": default_model,
                    },
                    "commit_individually": {
                        "type": "boolean",
                        "description": "Commit each file separately",
                        "default": True,
                    },
                },
                "required": ["repository_path"],
            },
        ),
        ToolDescriptor(
            name=ToolName.GIT_SHOW_DIFF.value,
            description="Show git diff for changes in the repository",
            input_schema={
                "type": "object",
                "properties": {
                    "repository_path": {"type": "string", "description": "Path to the git repository"},
                    "file_path": {"type": "string", "description": "Specific file to show diff for (optional)"},
                    "staged": {"type": "boolean", "description": "Show staged changes only", "default": False},
                },
                "required": ["repository_path"],
            },
        ),
    ]


def _require_str(arguments: Mapping[str, Any], key: str) -> str:
    if key not in arguments or arguments[key] is None:
        raise InvalidParamsError(f"Missing required parameter: {key}")
    value = arguments[key]
    if not isinstance(value, str):
        raise InvalidParamsError(f"Parameter '{key}' must be a string")
    return value


def _optional_str(arguments: Mapping[str, Any], key: str, default: Optional[str]) -> Optional[str]:
    if arguments.get(key) is None:
        return default
    return _require_str(arguments, key)


def _optional_bool(arguments: Mapping[str, Any], key: str, default: bool) -> bool:
    value = arguments.get(key)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise InvalidParamsError(f"Parameter '{key}' must be a boolean")
    return value


def _repo_path(arguments: Mapping[str, Any]) -> RepoPath:
    raw = _require_str(arguments, "repository_path")
    try:
        return RepoPath.parse(raw)
    except ValueError as e:
        raise InvalidParamsError(str(e)) from e


class AutoCommitArguments(BaseModel):
    model_config = ConfigDict(frozen=True)

    repository_path: str
    model: str
    commit_individually: bool = True

    @classmethod
    def from_arguments(cls, arguments: Mapping[str, Any], default_model: str) -> "AutoCommitArguments":
        """
        Raises:
            InvalidParamsError: If a required field is missing or a value is invalid.
        """
        repo_path = _repo_path(arguments)
        raw_model = _optional_str(arguments, "model", default_model)
        try:
            model = ModelName.parse(raw_model)
        except ValueError as e:
            raise InvalidParamsError(str(e)) from e
        return cls(
            repository_path=repo_path,
            model=model,
            commit_individually=_optional_bool(arguments, "commit_individually", True),
        )


class ShowDiffArguments(BaseModel):
    model_config = ConfigDict(frozen=True)

    repository_path: str
    file_path: Optional[str] = None
    staged: bool = False

    @classmethod
    def from_arguments(cls, arguments: Mapping[str, Any]) -> "ShowDiffArguments":
        return cls(
            repository_path=_repo_path(arguments),
            file_path=_optional_str(arguments, "file_path", None),
            staged=_optional_bool(arguments, "staged", False),
        )


def as_arguments(params: Optional[Dict[str, Any]]) -> Mapping[str, Any]:
    """Extracts `params.arguments`, treating an absent value as no arguments."""
    arguments = (params or {}).get("arguments")
    if arguments is None:
        return {}
    if not isinstance(arguments, dict):
        raise InvalidParamsError("Tool arguments must be an object")
    return arguments
