"""
Variable references between tool calls of one batch.

- ``extract_variables``: collect ``{{ path }}`` references anywhere in an argument tree
- ``resolve_path``: walk a dotted path through the execution context
- ``resolve_arguments``: substitute references once upstream results are known

Semantics:
- A string that is exactly one reference is replaced by the referenced value
  as-is (type preserved). Unresolvable references leave the literal untouched.
- References inside larger strings are rendered through Jinja2 and always
  produce text. Unresolved inline references render as the empty string.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Mapping

from jinja2 import ChainableUndefined
from jinja2.sandbox import SandboxedEnvironment

from ..core.Exceptions import TemplateResolutionError
from ..core.sentinels import NO_VAL

logger = logging.getLogger(__name__)

__all__ = [
    "VARIABLE_TOKEN",
    "extract_variables",
    "render_inline",
    "resolve_arguments",
    "resolve_path",
]

# Everything between "{{" and the first following "}}".
VARIABLE_TOKEN: re.Pattern[str] = re.compile(r"\{\{\s*([^}]+?)\s*\}\}")


def _finalize(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        try:
            return json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError):
            return str(value)
    return value


class _ResultEnvironment(SandboxedEnvironment):
    """
    Sandboxed environment whose dotted lookups prefer mapping keys, so a
    result key like ``items`` wins over dict.items. Anything else goes through
    the sandbox, which refuses unsafe attributes such as ``__class__``.
    """

    def getattr(self, obj: Any, attribute: str) -> Any:
        if isinstance(obj, Mapping) and attribute in obj:
            return obj[attribute]
        return super().getattr(obj, attribute)


_ENV = _ResultEnvironment(
    autoescape=False,
    keep_trailing_newline=True,
    undefined=ChainableUndefined,
    finalize=_finalize,
)


def extract_variables(obj: Any) -> list[str]:
    """
    Return the distinct variable paths referenced anywhere in obj, in order
    of first appearance.

    Only string values are scanned; mapping keys are left alone because they
    are never substituted.
    """
    seen: dict[str, None] = {}

    def walk(x: Any) -> None:
        if isinstance(x, str):
            for m in VARIABLE_TOKEN.finditer(x):
                seen.setdefault(m.group(1).strip(), None)
            return
        if isinstance(x, Mapping):
            for v in x.values():
                walk(v)
            return
        if isinstance(x, (list, tuple)):
            for v in x:
                walk(v)

    walk(obj)
    return list(seen)


def resolve_path(path: str, context: Mapping[str, Any]) -> Any:
    """
    Descend `context` along the dot-separated `path`.

    Returns NO_VAL as soon as a step cannot be taken (missing key, or the
    current value is not a container). List elements can be addressed with
    decimal segments, e.g. ``t1.files.0.name``.
    """
    current: Any = context
    for part in path.split("."):
        if isinstance(current, Mapping):
            if part not in current:
                return NO_VAL
            current = current[part]
        elif isinstance(current, (list, tuple)) and part.isdigit():
            idx = int(part)
            if idx >= len(current):
                return NO_VAL
            current = current[idx]
        else:
            return NO_VAL
    return current


def render_inline(text: str, context: Mapping[str, Any]) -> str:
    """Render every reference inside `text` as a string."""
    try:
        return _ENV.from_string(text).render(dict(context))
    except Exception as exc:
        raise TemplateResolutionError(f"Could not render template {text!r}: {exc}") from exc


def resolve_arguments(arguments: Any, context: Mapping[str, Any]) -> Any:
    """
    Resolve references recursively, preserving container shape and key order.
    """

    def resolve_str(s: str) -> Any:
        # Exact reference -> preserve type
        m = VARIABLE_TOKEN.fullmatch(s.strip())
        if m:
            value = resolve_path(m.group(1).strip(), context)
            if value is NO_VAL:
                logger.debug("Unresolved reference %r left as literal", s)
                return s
            return value

        if not VARIABLE_TOKEN.search(s):
            return s
        return render_inline(s, context)

    def resolve(x: Any) -> Any:
        if isinstance(x, str):
            return resolve_str(x)
        if isinstance(x, list):
            return [resolve(v) for v in x]
        if isinstance(x, tuple):
            return tuple(resolve(v) for v in x)
        if isinstance(x, Mapping):
            return {k: resolve(v) for k, v in x.items()}
        return x

    return resolve(arguments)
