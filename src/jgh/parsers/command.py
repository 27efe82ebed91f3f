"""Parser for inline command tokens in issue titles and update strings.

Supported tokens, anywhere in the text and in any order:
```
@me          assign the issue to yourself
@unassign    remove the assignee
+label       add a label (repeatable)
-label       remove a label (repeatable)
(Status)     transition to a workflow status (first group only)
!asap|!high|!medium|!low   set the priority (first match only)
```
Rules run in the order of ``EXTRACTION_RULES``; each one sees the text left
over by the previous rules. Whatever no rule claims becomes the clean title.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass

from jgh.core.models import ParsedCommand, Priority

PRIORITY_TOKENS: dict[str, Priority] = {
    "asap": Priority.EXPRESS,
    "high": Priority.HIGH,
    "medium": Priority.MEDIUM,
    "low": Priority.LOW,
}


def _set_assign_me(result: ParsedCommand, matches: list[re.Match[str]]) -> None:
    result.assign_me = True


def _set_unassign(result: ParsedCommand, matches: list[re.Match[str]]) -> None:
    result.unassign = True


def _add_labels(result: ParsedCommand, matches: list[re.Match[str]]) -> None:
    result.add_labels.extend(m.group(1) for m in matches)


def _remove_labels(result: ParsedCommand, matches: list[re.Match[str]]) -> None:
    result.remove_labels.extend(m.group(1) for m in matches)


def _set_status(result: ParsedCommand, matches: list[re.Match[str]]) -> None:
    result.status = matches[0].group(1)


def _set_priority(result: ParsedCommand, matches: list[re.Match[str]]) -> None:
    result.priority = PRIORITY_TOKENS[matches[0].group(1).lower()]


@dataclass(frozen=True)
class ExtractionRule:
    """One token class: what to match, how to record it, how many to strip."""

    name: str
    pattern: re.Pattern[str]
    apply: Callable[[ParsedCommand, list[re.Match[str]]], None]
    first_only: bool = False


# Order matters: status runs before priority so "!high" inside "(...)" stays
# part of the status text.
EXTRACTION_RULES: tuple[ExtractionRule, ...] = (
    ExtractionRule("assign", re.compile(r"@me"), _set_assign_me),
    ExtractionRule("unassign", re.compile(r"@unassign"), _set_unassign),
    ExtractionRule("add_label", re.compile(r"\+(\w+)", re.ASCII), _add_labels),
    ExtractionRule("remove_label", re.compile(r"-(\w+)", re.ASCII), _remove_labels),
    ExtractionRule("status", re.compile(r"\(([^)]+)\)"), _set_status, first_only=True),
    ExtractionRule(
        "priority",
        re.compile(r"!(asap|high|medium|low)", re.IGNORECASE),
        _set_priority,
        first_only=True,
    ),
)


def parse_command(text: str, rules: tuple[ExtractionRule, ...] = EXTRACTION_RULES) -> ParsedCommand:
    """Extract assignment, label, status and priority intents from text.

    Never fails: unrecognized text is returned untouched in ``clean_title``.

    Args:
        text: Issue title or update string.
        rules: Ordered extraction rules (defaults to the built-in grammar).

    Returns:
        ParsedCommand with the recognized tokens removed from the title.
    """
    result = ParsedCommand(clean_title=text)
    residual = text

    for rule in rules:
        matches = list(rule.pattern.finditer(residual))
        if not matches:
            continue
        if rule.first_only:
            matches = matches[:1]
        rule.apply(result, matches)
        residual = rule.pattern.sub("", residual, count=1 if rule.first_only else 0).strip()

    result.clean_title = residual.strip()
    return result


def parse_title(title: str) -> ParsedCommand:
    """Parse an issue title for the create command.

    Same grammar as ``parse_command``; create ignores ``unassign`` and
    ``remove_labels``.
    """
    return parse_command(title)
