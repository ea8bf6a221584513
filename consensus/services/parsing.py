"""
Voter Reference Parsing

Turns free-text voter references into normalized identifier lists.

Users:
    - mention syntax: <@U123ABC> or <@U123ABC|label>
    - raw ids starting with U or W (e.g. U123ABC, W123ABC)
Groups:
    - subteam mention syntax: <!subteam^S123ABC|eng>
    - raw ids starting with S (e.g. S123ABC)
    - handles: @eng (returned separately, they need a directory lookup)

Tokens are separated by commas, whitespace or newlines. A list input is
taken as already parsed (backward compatibility) and only deduplicated.
Unrecognised tokens are ignored. Output preserves first-seen order.
"""

import re
from dataclasses import dataclass, field

TOKEN_SEPARATOR = re.compile(r"[\s,]+")

USER_MENTION = re.compile(r"^<@([UW][A-Z0-9]+)(?:\|[^>]*)?>$")
USER_ID = re.compile(r"^[UW][A-Z0-9]{5,}$")

GROUP_MENTION = re.compile(r"^<!subteam\^([A-Z0-9]+)(?:\|[^>]*)?>$")
GROUP_ID = re.compile(r"^S[A-Z0-9]{5,}$")


@dataclass
class ParsedGroupReferences:
    """Group ids ready for expansion, plus handles still needing resolution."""

    ids: list[str] = field(default_factory=list)
    handles: list[str] = field(default_factory=list)


def _dedupe(items: list[str]) -> list[str]:
    return list(dict.fromkeys(item for item in items if item))


def _tokens(text: str) -> list[str]:
    return [t for t in TOKEN_SEPARATOR.split(text.strip()) if t]


def parse_user_ids(value: str | list[str] | None) -> list[str]:
    """Parse user references into deduplicated user ids."""
    if value is None:
        return []
    if isinstance(value, list):
        return _dedupe([str(item).strip() for item in value])

    ids: list[str] = []
    for token in _tokens(value):
        mention = USER_MENTION.match(token)
        if mention:
            ids.append(mention.group(1))
        elif USER_ID.match(token):
            ids.append(token)
    return _dedupe(ids)


def parse_group_references(value: str | list[str] | None) -> ParsedGroupReferences:
    """Parse group references into deduplicated group ids and handles."""
    if value is None:
        return ParsedGroupReferences()
    if isinstance(value, list):
        return ParsedGroupReferences(ids=_dedupe([str(item).strip() for item in value]))

    ids: list[str] = []
    handles: list[str] = []
    for token in _tokens(value):
        mention = GROUP_MENTION.match(token)
        if mention:
            ids.append(mention.group(1))
        elif GROUP_ID.match(token):
            ids.append(token)
        elif token.startswith("@") and len(token) > 1:
            handles.append(token[1:])
    return ParsedGroupReferences(ids=_dedupe(ids), handles=_dedupe(handles))
