"""Tag domain logic: validation, canonical keys, and splitting."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

# ASCII unit separator. Never valid inside a tag.
TAG_KEY_SEPARATOR = "\x1f"


class InvalidTagError(ValueError):
    """Raised when a tag cannot be stored or sent to the external tool."""

    def __init__(self, tag: str, reason: str) -> None:
        super().__init__(f"Invalid tag {tag!r}: {reason}")
        self.tag = tag
        self.reason = reason


def validate_tags(tags: Iterable[str]) -> tuple[str, ...]:
    """Check every tag and return them as a tuple in the given order.

    Examples:
        >>> validate_tags(["work", "client-a"])
        ('work', 'client-a')
    """
    checked: list[str] = []
    for tag in tags:
        if not isinstance(tag, str):
            raise InvalidTagError(repr(tag), "not a string")
        if TAG_KEY_SEPARATOR in tag:
            raise InvalidTagError(tag, "contains the reserved separator character")
        if not tag.strip():
            raise InvalidTagError(tag, "empty")
        checked.append(tag)
    return tuple(checked)


def dedupe_tags(tags: Iterable[str]) -> tuple[str, ...]:
    """Drop repeated tags (case-sensitive), keeping first-seen order.

    Examples:
        >>> dedupe_tags(["a", "B", "a", "b"])
        ('a', 'B', 'b')
    """
    return tuple(dict.fromkeys(tags))


def canonical_key(tags: Sequence[str]) -> str:
    """Order-insensitive identity of a tag set.

    Examples:
        >>> canonical_key(["work", "project"]) == canonical_key(["project", "work"])
        True
    """
    return TAG_KEY_SEPARATOR.join(sorted(dedupe_tags(tags)))


def split_tags(text: str) -> tuple[str, ...]:
    """Split whitespace-delimited argument text into a tag sequence.

    Examples:
        >>> split_tags("  work   project ")
        ('work', 'project')
        >>> split_tags("")
        ()
    """
    return dedupe_tags(text.split())
