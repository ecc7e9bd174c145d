"""
Defines custom exception classes for the application.
"""


class AICommitException(Exception):
    """Base exception class for aicommit-server."""
    pass


class ConfigError(AICommitException):
    """Raised when there is a configuration error."""
    pass


class GitError(AICommitException):
    """Raised when a git command fails or cannot be run."""
    pass


class ProviderError(AICommitException):
    """Raised when an error occurs with an LLM provider."""
    pass


class FormatterError(AICommitException):
    """Raised when an error occurs while rendering a template."""
    pass


class ProtocolError(AICommitException):
    """
    Base class for errors reported back to the client as a JSON-RPC error object.
    """

    code = -32603

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ParseError(ProtocolError):
    code = -32700


class MethodNotFoundError(ProtocolError):
    code = -32601


class InvalidParamsError(ProtocolError):
    code = -32602


class InternalError(ProtocolError):
    code = -32603
