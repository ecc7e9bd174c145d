import re

ELLIPSIS = "..."

_LEADING_QUOTE = re.compile(r"^[\"'`]+")
_TRAILING_QUOTE = re.compile(r"[\"'`]+$")
_PREFIXES = re.compile(
    r"^(commit message:|message:|here's the commit message:|the commit message is:)\s*",
    re.IGNORECASE,
)
_CONVENTIONAL = re.compile(r"^[a-z]+(\([^)]*\))?!?: ")


def clean_message(raw: str) -> str:
    """
    Normalizes a raw model reply into a one-line commit subject.

    Strips quotes and "Commit message:"-style preambles, keeps the first
    non-empty line, drops a trailing period and capitalizes the first letter
    unless the message starts with a conventional-commit type such as `fix:`.
    """
    lines = [line.strip() for line in raw.strip().splitlines() if line.strip()]
    if not lines:
        return ""
    message = _PREFIXES.sub("", lines[0])
    if not message and len(lines) > 1:
        message = lines[1]
    message = _TRAILING_QUOTE.sub("", _LEADING_QUOTE.sub("", message)).strip()

    if message.endswith("."):
        message = message[:-1]
    if message and message[0].islower() and not _CONVENTIONAL.match(message):
        message = message[0].upper() + message[1:]
    return message


def truncate_message(message: str, max_length: int) -> str:
    """Cuts messages longer than max_length to max_length - 3 characters plus '...'."""
    if len(message) <= max_length:
        return message
    return message[: max_length - len(ELLIPSIS)] + ELLIPSIS


def truncate_diff(diff: str, max_chars: int) -> str:
    if len(diff) <= max_chars:
        return diff
    return diff[:max_chars] + ELLIPSIS
