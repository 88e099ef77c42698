"""Human-readable one-line summaries of completed tool calls."""

from __future__ import annotations

import os
from typing import Any, Callable, Mapping
from urllib.parse import urlparse

__all__ = ["summarize_call", "summarize_failure"]

PREFIX = "AIM"


def _get(obj: Any, key: str, default: Any = None) -> Any:
    if isinstance(obj, Mapping):
        value = obj.get(key, default)
        return default if value is None else value
    return default


def _base(path: Any) -> str:
    text = str(path)
    return os.path.basename(text.rstrip("/\\")) or text


def _host(url: Any) -> str:
    try:
        return urlparse(str(url)).hostname or str(url)
    except ValueError:
        return str(url)


def _shell(args, result) -> str:
    cmd = str(_get(args, "command", "unknown command"))
    if len(cmd) > 50:
        cmd = cmd[:47] + "..."
    return f"executed: {cmd}"


def _read(args, result) -> str:
    path = _get(args, "file_path", "unknown file")
    return f"read {_base(path)} ({path})"


def _write(args, result) -> str:
    path = _get(args, "file_path", "unknown file")
    return f"created {_base(path)} ({path}) - {_get(result, 'bytesWritten', 0)} bytes"


def _append(args, result) -> str:
    path = _get(args, "file_path", "unknown file")
    return f"appended to {_base(path)} ({path}) - {_get(result, 'bytesAppended', 0)} bytes"


def _list_dir(args, result) -> str:
    path = _get(args, "directory_path", "unknown directory")
    return f"listed {_base(path)}/ ({_get(result, 'count', 0)} items)"


def _create_dir(args, result) -> str:
    path = _get(args, "directory_path", "unknown directory")
    return f"created directory {_base(path)}/ ({path})"


def _copy(args, result) -> str:
    return f"copied {_base(_get(args, 'source', 'unknown'))} → {_base(_get(args, 'destination', 'unknown'))}"


def _move(args, result) -> str:
    return f"moved {_base(_get(args, 'source', 'unknown'))} → {_base(_get(args, 'destination', 'unknown'))}"


def _delete(args, result) -> str:
    path = _get(args, "file_path", "unknown file")
    return f"deleted {_base(path)} ({path})"


def _info(args, result) -> str:
    path = _get(args, "file_path", "unknown file")
    return f"inspected {_base(path)} ({_get(result, 'type', 'unknown')}, {_get(result, 'size', 0)} bytes)"


def _search(args, result) -> str:
    path = _get(args, "search_path", "unknown path")
    pattern = _get(args, "pattern", "*")
    return f'searched for "{pattern}" in {_base(path)}/ ({_get(result, "count", 0)} matches)'


def _replace(args, result) -> str:
    return (
        f'replaced "{_get(args, "search_text", "unknown")}" → "{_get(args, "replace_text", "unknown")}" '
        f"in {_get(result, 'filesModified', 0)} files ({_get(result, 'totalReplacements', 0)} changes)"
    )


def _ripgrep(args, result) -> str:
    file_type = _get(_get(args, "options", {}), "fileType")
    suffix = f" ({file_type} files)" if file_type else ""
    return (
        f'searched "{_get(args, "pattern", "unknown")}" in {_base(_get(args, "search_path", "."))}/{suffix} '
        f"→ {_get(result, 'totalMatches', 0)} matches in {_get(result, 'filesWithMatches', 0)} files"
    )


def _todo_read(args, result) -> str:
    todos = _get(result, "todos", [])
    pending = sum(1 for t in todos if _get(t, "status") == "pending") if isinstance(todos, list) else 0
    return f"checked todos ({_get(result, 'count', 0)} total, {pending} pending)"


def _todo_write(args, result) -> str:
    todos = _get(args, "todos", [])
    changes = len(todos) if isinstance(todos, list) else 0
    return f"updated todos ({_get(result, 'count', 0)} items, {changes} changes)"


def _navigate(args, result) -> str:
    extracted = _get(result, "extractedData", {})
    fields = len(extracted) if isinstance(extracted, Mapping) else 0
    return f"navigated to {_host(_get(args, 'url', 'unknown URL'))} (extracted {fields} data fields)"


def _interact(args, result) -> str:
    actions = _get(args, "actions", [])
    total = len(actions) if isinstance(actions, list) else 0
    return f"performed {_get(result, 'successfulActions', 0)}/{total} browser actions"


def _fetch(args, result) -> str:
    return (
        f"fetched {_host(_get(args, 'url', 'unknown URL'))} "
        f"({_get(result, 'status', 0)}, {_get(result, 'size', 0)} bytes)"
    )


_SUMMARIES: dict[str, Callable[[Any, Any], str]] = {
    "execute_shell_command": _shell,
    "read_file": _read,
    "write_file": _write,
    "append_to_file": _append,
    "list_directory": _list_dir,
    "create_directory": _create_dir,
    "copy_files": _copy,
    "move_files": _move,
    "delete_file": _delete,
    "get_file_info": _info,
    "search_files": _search,
    "find_and_replace": _replace,
    "ripgrep_search": _ripgrep,
    "todo_read": _todo_read,
    "todo_write": _todo_write,
    "browser_navigate": _navigate,
    "browser_interact": _interact,
    "http_fetch": _fetch,
}


def summarize_call(name: str, arguments: Any, result: Any) -> str:
    """Summary line for a successful call, e.g. ``AIM read app.py (./src/app.py)``."""
    formatter = _SUMMARIES.get(name)
    if formatter is None:
        return f"{PREFIX} used {name}"
    return f"{PREFIX} {formatter(arguments, result)}"


def summarize_failure(name: str, error: str) -> str:
    return f"{PREFIX} failed {name or 'unknown tool'}: {error}"
