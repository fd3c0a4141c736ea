"""
String normalizers for doc comment tag text.

Turns raw tag strings into display names, bare parameter names, escaped
or hyperlinked type strings, and URL-safe anchor IDs.
"""

from __future__ import annotations

import re

FUNCTION_MARKER = "{Function} "

_NAME_STRIP_RE = re.compile(r"module\.exports\.|\.prototype|\(\)")
_BRACKETS_RE = re.compile(r"\[|\]")
_ESCAPE_RE = re.compile("[\u00a0-\u9999<>&]")
_UID_RUN_RE = re.compile(r"[^\w.]+", re.ASCII)
_UID_EDGE_RE = re.compile(r"^-|-$")
_TYPE_MARKER_RE = re.compile(r"^\{[a-z]*\} ", re.IGNORECASE)


def format_name(content, kind=""):
    """Strip ``module.exports.``, ``.prototype`` and ``()`` from *content*.

    Callbacks get a ``{Function} `` prefix so they read like a typed value.
    """
    name = _NAME_STRIP_RE.sub("", str(content))
    if kind == "callback":
        name = FUNCTION_MARKER + name
    return name


def strip_type_marker(name):
    return _TYPE_MARKER_RE.sub("", name, count=1)


def format_param(content):
    return _BRACKETS_RE.sub("", str(content))


def _escape_char(m):
    return f"&#{ord(m.group(0))};"


def format_linkable(content, linkable=None):
    """Link *content* to a callback/typedef on the same page, or escape it.

    The two outcomes never mix: a linked name is emitted verbatim inside the
    anchor, anything else goes through numeric character references.
    """
    text = format_param(content)
    if linkable and text in linkable:
        return f'<a href="#{linkable[text]}">{text}</a>'
    return _ESCAPE_RE.sub(_escape_char, text)


def format_uid(content):
    text = _UID_RUN_RE.sub("-", str(content).lower())
    return _UID_EDGE_RE.sub("", text)
