"""Text-level class injection into matching opening tags."""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Final

from blockbuild.config import MixinRule

_OPENING_TAG: Final[re.Pattern[str]] = re.compile(
    r"""<\s*([a-z][a-z0-9-]*)\b((?:"[^"]*"|'[^']*'|[^'"<>])*?)(\s*/?)>""",
    re.IGNORECASE,
)
_CLASS_ATTRIBUTE: Final[re.Pattern[str]] = re.compile(
    r"""(?<![\w-])class\s*=\s*(?:"([^"]*)"|'([^']*)')""", re.IGNORECASE
)
_ID_ATTRIBUTE: Final[re.Pattern[str]] = re.compile(
    r"""(?<![\w-])id\s*=\s*(?:"([^"]*)"|'([^']*)')""", re.IGNORECASE
)
_DEFAULT_TAG: Final[re.Pattern[str]] = re.compile(r"^[a-z0-9]+$", re.IGNORECASE)


def apply_mixins(
    template: str, rules: Iterable[MixinRule]
) -> tuple[str, tuple[MixinRule, ...]]:
    """Inject each rule's class token into matching elements.

    Returns the rewritten template and the rules that modified at least one element.
    Elements whose class attribute already holds the token are left untouched, so
    applying the same rules twice changes nothing the second time.
    """
    used: list[MixinRule] = []
    for rule in rules:
        template, changed = _apply_rule(template, rule)
        if changed and rule not in used:
            used.append(rule)
    return template, tuple(used)


def _apply_rule(template: str, rule: MixinRule) -> tuple[str, bool]:
    changed = False

    def rewrite(match: re.Match[str]) -> str:
        nonlocal changed
        tag, attributes, closing = match.group(1), match.group(2), match.group(3)
        if not _matches(rule, tag, attributes):
            return match.group(0)
        class_match = _CLASS_ATTRIBUTE.search(attributes)
        if class_match is None:
            attributes = f'{attributes} class="{rule.mixin}"'
        else:
            group = 1 if class_match.group(1) is not None else 2
            tokens = class_match.group(group).split()
            if rule.mixin in tokens:
                return match.group(0)
            value = " ".join([*tokens, rule.mixin])
            start, end = class_match.span(group)
            attributes = f"{attributes[:start]}{value}{attributes[end:]}"
        changed = True
        return f"<{tag}{attributes}{closing}>"

    return _OPENING_TAG.sub(rewrite, template), changed


def _matches(rule: MixinRule, tag: str, attributes: str) -> bool:
    if rule.tag:
        if tag.lower() != rule.tag.lower():
            return False
    elif not _DEFAULT_TAG.match(tag):
        return False
    if rule.id and _attribute_value(_ID_ATTRIBUTE, attributes).strip() != rule.id:
        return False
    if rule.class_name and rule.class_name not in _attribute_value(
        _CLASS_ATTRIBUTE, attributes
    ).split():
        return False
    return True


def _attribute_value(pattern: re.Pattern[str], attributes: str) -> str:
    match = pattern.search(attributes)
    if match is None:
        return ""
    return match.group(1) if match.group(1) is not None else match.group(2)
