"""Prompt template helpers — ``{variable}`` placeholders and the dedup hash."""

from __future__ import annotations

import hashlib
import json
import re

# ASCII word characters only: {café} is literal text, not a placeholder
_VARIABLE_RE = re.compile(r"\{(\w+)\}", re.ASCII)


def extract_variables(template: str) -> list[str]:
    """Return the unique placeholder names in ``template``, in first-seen order."""
    return list(dict.fromkeys(_VARIABLE_RE.findall(template)))


def sync_variables(template: str, variables: dict[str, str]) -> dict[str, str]:
    """Align a variable map with the placeholders present in ``template``.

    Variables no longer referenced are dropped; new placeholders are added
    with an empty value.
    """
    names = extract_variables(template)
    return {name: variables.get(name, "") for name in names}


def replace_variables(template: str, variables: dict[str, str]) -> str:
    """Substitute ``{name}`` placeholders; unknown names are left as-is."""
    return _VARIABLE_RE.sub(lambda m: variables.get(m.group(1), m.group(0)), template)


def canonical_variables(variables: dict[str, str]) -> str:
    """Serialise a variable map with sorted keys and compact separators."""
    return json.dumps(variables, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def prompt_hash(template: str, variables: dict[str, str]) -> str:
    """SHA-256 hex digest identifying a (template, variables) pair.

    Key insertion order never affects the result.
    """
    payload = f"{template}:{canonical_variables(variables)}"
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
