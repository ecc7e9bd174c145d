import pytest

from core.formatter.message import clean_message, truncate_diff, truncate_message


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Add login form", "Add login form"),
        ("  add login form.  ", "Add login form"),
        ('"Fix typo in README"', "Fix typo in README"),
        ("Commit message: update docs", "Update docs"),
        ("Here's the commit message:\nRemove dead code", "Remove dead code"),
        ("\n\nfeat: add parser\n\nLonger body text", "feat: add parser"),
        ("fix(api)!: drop v1 routes", "fix(api)!: drop v1 routes"),
        ("`Rename module`", "Rename module"),
        ("   \n  ", ""),
    ],
)
def test_clean_message(raw, expected):
    assert clean_message(raw) == expected


def test_short_message_untouched():
    assert truncate_message("Add file", 72) == "Add file"


def test_message_at_limit_untouched():
    message = "x" * 72
    assert truncate_message(message, 72) == message


def test_long_message_truncated_with_ellipsis():
    message = "y" * 80
    truncated = truncate_message(message, 72)
    assert len(truncated) == 72
    assert truncated == "y" * 69 + "..."


def test_truncate_diff():
    assert truncate_diff("abc", 10) == "abc"
    assert truncate_diff("abcdefghij", 4) == "abcd..."
