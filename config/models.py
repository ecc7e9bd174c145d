from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any


class ModelConfig(BaseModel):
    provider: str = "ollama"
    name: str = Field("llama2", description="Default model when a request does not name one")
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    timeout_sec: int = Field(60, gt=0)
    max_retries: int = Field(2, ge=0, description="Retries after a timeout or network error")
    parameters: Dict[str, Any] = Field(default_factory=dict)


class GitConfig(BaseModel):
    max_diff_chars: int = Field(1000, gt=0, description="Diff characters included in a prompt")
    commit_prefix: str = ""
    exclude_patterns: List[str] = Field(default_factory=list)
    command_timeout_sec: int = Field(30, gt=0)


class ProcessingConfig(BaseModel):
    max_concurrent_files: int = Field(3, ge=1)
    commit_message_max_length: int = Field(72, ge=4)


class CacheConfig(BaseModel):
    enabled: bool = Field(True, description="Cache generated messages by prompt content")
    ttl_sec: int = Field(3600, description="Cache time-to-live in seconds")
    directory: str = Field("~/.cache/aicommit-server", description="Cache directory")


class LoggingConfig(BaseModel):
    level: str = "INFO"
    file: Optional[str] = None


class ServerConfig(BaseModel):
    name: str = "aicommit-server"
    version: str = "0.1.0"
    protocol_version: str = "2024-11-05"


class Config(BaseModel):
    model: ModelConfig = Field(default_factory=ModelConfig, description="Generation backend")
    git: GitConfig = Field(default_factory=GitConfig, description="Git operations")
    processing: ProcessingConfig = Field(default_factory=ProcessingConfig, description="Pipeline limits")
    cache: CacheConfig = Field(default_factory=CacheConfig, description="Message cache")
    logging: LoggingConfig = Field(default_factory=LoggingConfig, description="Log sinks")
    server: ServerConfig = Field(default_factory=ServerConfig, description="Protocol identity")
