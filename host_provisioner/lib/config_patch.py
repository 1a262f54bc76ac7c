from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from ..errors import ConfigPatchFailed
from ..models import ConfigPatch, PatchMode
from .fsutil import atomic_write_text

logger = logging.getLogger(__name__)

_INDENT_RE = re.compile(r"^\{\s*\n([ \t]+)\S", re.MULTILINE)


def _read(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigPatchFailed(f"Cannot read {path}: {e}") from e


def detect_indent(text: str) -> str | int:
    """Indentation unit used by a JSON document (tabs or N spaces)."""

    m = _INDENT_RE.search(text)
    if not m:
        return 4
    ws = m.group(1)
    return "\t" if ws.startswith("\t") else len(ws)


def get_key(doc: Dict[str, Any], key_path: tuple[str, ...]) -> Any:
    node: Any = doc
    for key in key_path:
        if not isinstance(node, dict) or key not in node:
            return None
        node = node[key]
    return node


_WS = " \t\r\n"


def _skip_ws(text: str, i: int) -> int:
    while i < len(text) and text[i] in _WS:
        i += 1
    return i


def _member_span(text: str, start: int, key: str) -> Optional[Tuple[int, int]]:
    """Offsets of ``key``'s value inside the object opening at ``start``.

    The text must already be valid JSON. The last duplicate wins, as in json.loads.
    """

    decoder = json.JSONDecoder()
    span = None
    i = _skip_ws(text, start + 1)
    if text[i] == "}":
        return None
    while True:
        name, i = decoder.raw_decode(text, i)
        i = _skip_ws(text, _skip_ws(text, i) + 1)
        _, end = decoder.raw_decode(text, i)
        if name == key:
            span = (i, end)
        i = _skip_ws(text, end)
        if text[i] == "}":
            return span
        i = _skip_ws(text, i + 1)


def _locate(text: str, key_path: tuple[str, ...]) -> Optional[Tuple[int, int]]:
    pos = _skip_ws(text, 0)
    span = None
    for key in key_path:
        if text[pos] != "{":
            return None
        span = _member_span(text, pos, key)
        if span is None:
            return None
        pos = span[0]
    return span


def _apply_structured(patch: ConfigPatch, text: str) -> Optional[str]:
    try:
        doc = json.loads(text)
    except ValueError as e:
        raise ConfigPatchFailed(f"{patch.path} is not valid JSON: {e}") from e
    if not isinstance(doc, dict):
        raise ConfigPatchFailed(f"{patch.path} must contain a JSON object")

    # Existing key: swap only the value's characters so the rest of the file is untouched.
    span = _locate(text, patch.key_path)
    if span is not None:
        start, end = span
        if json.loads(text[start:end]) == patch.value:
            return None
        return text[:start] + json.dumps(patch.value, ensure_ascii=False) + text[end:]

    node = doc
    for key in patch.key_path[:-1]:
        child = node.setdefault(key, {})
        if not isinstance(child, dict):
            raise ConfigPatchFailed(f"{patch.path}: {key!r} is not an object")
        node = child
    node[patch.key] = patch.value

    trailing = "\n" if text.endswith("\n") else ""
    return json.dumps(doc, indent=detect_indent(text), ensure_ascii=False) + trailing


def _apply_textual(patch: ConfigPatch, text: str) -> Optional[str]:
    if not isinstance(patch.value, str):
        raise ConfigPatchFailed("Textual patching only supports string values")

    pattern = re.compile(r'("%s"\s*:\s*)"(?:[^"\\]|\\.)*"' % re.escape(patch.key))
    matches = pattern.findall(text)
    if len(matches) != 1:
        raise ConfigPatchFailed(
            f"{patch.path}: expected exactly one \"{patch.key}\" string entry, found {len(matches)}",
            remediation="Edit the file by hand or use structured patching.",
        )

    # json.dumps escapes quotes/backslashes; the callable keeps & and \N literal.
    encoded = json.dumps(patch.value, ensure_ascii=False)
    new_text = pattern.sub(lambda m: m.group(1) + encoded, text)
    return None if new_text == text else new_text


def apply_config_patch(
    patch: ConfigPatch,
    *,
    mode: PatchMode = PatchMode.STRUCTURED,
    dry_run: bool = False,
) -> bool:
    """Set one key in a JSON config file, leaving every other key intact.

    Returns True if the file changed. The write is temp-file + rename, so
    a failure leaves the original untouched.
    """

    if not patch.key_path:
        raise ConfigPatchFailed("Empty key path")

    text = _read(patch.path)
    if mode is PatchMode.TEXTUAL:
        new_text = _apply_textual(patch, text)
    else:
        new_text = _apply_structured(patch, text)

    if new_text is None:
        logger.info("%s already has the requested %s", str(patch.path), ".".join(patch.key_path))
        return False
    if dry_run:
        logger.info("Would update %s in %s", ".".join(patch.key_path), str(patch.path))
        return True

    atomic_write_text(patch.path, new_text)
    logger.info("Updated %s with %s (%s mode)", str(patch.path), ".".join(patch.key_path), mode.value)
    return True


def read_json_key(path: Path, key_path: tuple[str, ...]) -> Any:
    text = _read(path)
    try:
        doc = json.loads(text)
    except ValueError as e:
        raise ConfigPatchFailed(f"{path} is not valid JSON: {e}") from e
    if not isinstance(doc, dict):
        raise ConfigPatchFailed(f"{path} must contain a JSON object")
    return get_key(doc, key_path)
