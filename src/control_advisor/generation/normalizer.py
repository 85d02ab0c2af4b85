"""Normalization of generated implementation text.

Turns raw provider output into a descriptive sentence:
1. Strip code fences, inline code, bold and italic markers
2. Strip leading labels ("Implementation Description:", ...)
3. Rewrite an imperative opener ("Implement X by Y" -> "X is implemented by Y");
   only the first matching rule of ``REWRITE_RULES`` is applied
4. Collapse whitespace and add terminal punctuation

The result is idempotent: ``normalize(normalize(s)) == normalize(s)``.
Length is not bounded here.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Optional

_CODE_FENCE = re.compile(r"```[\s\S]*?```")
_INLINE_CODE = re.compile(r"`([^`]+)`")
_BOLD = re.compile(r"\*\*([^*]+)\*\*")
_ITALIC = re.compile(r"\*([^*]+)\*")
_WHITESPACE = re.compile(r"\s+")
_LEADING_LABEL = re.compile(
    r"^(Implementation Description:|Description:|Implementation:)\s*",
    re.IGNORECASE,
)
_FIRST_WORD = re.compile(r"^\W*(\w+)")

TERMINAL_PUNCTUATION = (".", "!", "?")

IMPERATIVE_VERBS = (
    "implement", "create", "ensure", "configure", "establish", "maintain",
    "monitor", "protect", "manage", "enforce",
)


@dataclass(frozen=True)
class RewriteRule:
    """One entry of the imperative-to-descriptive rewrite table."""
    name: str
    predicate: Callable[[str], bool]
    transform: Callable[[str], str]


def _is_rewritable_subject(subject: str) -> bool:
    """A subject must not itself open with a verb or a label."""
    first = _FIRST_WORD.match(subject)
    if not first:
        return False
    if first.group(1).lower() in IMPERATIVE_VERBS:
        return False
    return not _LEADING_LABEL.match(subject)


def _capitalize(text: str) -> str:
    return text[:1].upper() + text[1:]


def _by_rule(verb: str, participle: str) -> RewriteRule:
    pattern = re.compile(rf"^{verb}\s+(.+?)\s+by\s+(.+)$", re.IGNORECASE)

    def predicate(text: str) -> bool:
        match = pattern.match(text)
        return bool(match) and _is_rewritable_subject(match.group(1))

    def transform(text: str) -> str:
        match = pattern.match(text)
        return f"{_capitalize(match.group(1))} is {participle} by {match.group(2)}"

    return RewriteRule(f"{verb}_by", predicate, transform)


def _plain_rule(verb: str, participle: str) -> RewriteRule:
    pattern = re.compile(rf"^{verb}\s+(.+?)([.!?]*)$", re.IGNORECASE)

    def predicate(text: str) -> bool:
        match = pattern.match(text)
        return bool(match) and _is_rewritable_subject(match.group(1))

    def transform(text: str) -> str:
        match = pattern.match(text)
        return f"{_capitalize(match.group(1))} is {participle}{match.group(2)}"

    return RewriteRule(verb, predicate, transform)


# Evaluated in order; the first rule whose predicate holds is the only one applied
REWRITE_RULES: list[RewriteRule] = [
    _by_rule("implement", "implemented"),
    _plain_rule("implement", "implemented"),
    _by_rule("create", "created"),
    _plain_rule("create", "created"),
    _plain_rule("ensure", "ensured"),
    _plain_rule("configure", "configured"),
    _plain_rule("establish", "established"),
    _plain_rule("maintain", "maintained"),
    _plain_rule("monitor", "monitored"),
    _plain_rule("protect", "protected"),
    _plain_rule("manage", "managed"),
    _plain_rule("enforce", "enforced"),
]


def strip_markdown(text: str) -> str:
    """Remove markdown markers until none are left."""
    previous = None
    while previous != text:
        previous = text
        text = _CODE_FENCE.sub("", text)
        text = _INLINE_CODE.sub(r"\1", text)
        text = _BOLD.sub(r"\1", text)
        text = _ITALIC.sub(r"\1", text)
    return text


def strip_leading_labels(text: str) -> str:
    previous = None
    while previous != text:
        previous = text
        text = _LEADING_LABEL.sub("", text, count=1)
    return text


def apply_rewrite_rules(text: str, rules: list[RewriteRule] = REWRITE_RULES) -> str:
    """Apply the first matching rewrite rule, if any."""
    for rule in rules:
        if rule.predicate(text):
            return rule.transform(text)
    return text


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def normalize_response(raw: Optional[str]) -> Optional[str]:
    """Clean raw generated text into a final descriptive sentence.

    Returns ``None`` when nothing usable remains.
    """
    if not raw:
        return None

    text = collapse_whitespace(strip_markdown(raw))
    text = strip_leading_labels(text)
    text = apply_rewrite_rules(text)
    text = collapse_whitespace(text)

    if not text:
        return None
    if not text.endswith(TERMINAL_PUNCTUATION):
        text += "."
    return text
