"""
Doc comment extraction for JavaScript sources.

A small regex-based reader for ``/** ... */`` blocks in the style of the
``dox`` parser: it splits each block into a description and ``@tags`` and
sniffs the line of code that follows to find out what the comment
documents (a function, a method, a plain declaration, ...).

Records can also be built from ``dox`` JSON output with
:meth:`ParsedComment.from_dict`.
"""

from __future__ import annotations

import html
import re
from collections.abc import Mapping
from dataclasses import dataclass, field


class CommentSyntaxError(ValueError):
    """A tag in a doc comment could not be parsed."""


class MalformedCommentError(ValueError):
    """A comment record does not have the shape the pipeline expects."""


@dataclass
class Description:
    full: str = ""


@dataclass
class Tag:
    type: str
    string: str = ""
    name: str = ""
    optional: bool = False
    types: list[str] = field(default_factory=list)
    description: str = ""
    visibility: str = ""

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, Mapping) or not isinstance(data.get("type"), str):
            raise MalformedCommentError(f"tag must be a mapping with a 'type': {data!r}")
        types = data.get("types") or []
        if not isinstance(types, list):
            raise MalformedCommentError(f"@{data['type']} types must be a list: {types!r}")
        return cls(
            type=data["type"],
            string=str(data.get("string") or ""),
            name=str(data.get("name") or ""),
            optional=bool(data.get("optional", False)),
            types=[str(t) for t in types],
            description=str(data.get("description") or ""),
            visibility=str(data.get("visibility") or ""),
        )


@dataclass
class Context:
    type: str
    string: str

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, Mapping) or "type" not in data or "string" not in data:
            raise MalformedCommentError(f"ctx must have 'type' and 'string': {data!r}")
        return cls(type=str(data["type"]), string=str(data["string"]))


@dataclass
class ParsedComment:
    description: Description
    tags: list[Tag] = field(default_factory=list)
    ctx: Context | None = None
    is_private: bool = False
    ignore: bool = False
    line: int = 0

    @classmethod
    def from_dict(cls, data):
        """Build a record from one element of ``dox`` JSON output."""
        if not isinstance(data, Mapping):
            raise MalformedCommentError(f"comment must be a mapping: {data!r}")

        desc = data.get("description", "")
        if isinstance(desc, Mapping):
            description = Description(full=str(desc.get("full") or ""))
        elif isinstance(desc, str):
            description = Description(full=desc.strip())
        else:
            raise MalformedCommentError(f"description must be text or a mapping: {desc!r}")

        tags = data.get("tags", [])
        if not isinstance(tags, list):
            raise MalformedCommentError(f"tags must be a list: {tags!r}")

        ctx = data.get("ctx")
        return cls(
            description=description,
            tags=[Tag.from_dict(t) for t in tags],
            ctx=Context.from_dict(ctx) if ctx else None,
            is_private=bool(data.get("isPrivate", False)),
            ignore=bool(data.get("ignore", False)),
            line=int(data.get("line") or 0),
        )


# ── comment blocks ──

_BLOCK_RE = re.compile(r"/\*([*!])?(.*?)\*/", re.DOTALL)
_DECORATION_RE = re.compile(r"^[ \t]*\*[ \t]?", re.MULTILINE)
_TAG_START_RE = re.compile(r"^\s*@(\w+)\s?(.*)$")
_CODE_LINE_RE = re.compile(r"\s*([^\n]*)")


def _code_after(source, pos):
    code = _CODE_LINE_RE.match(source, pos).group(1).strip()
    if code.startswith(("/*", "//")):
        return ""
    return code


def _split_tags(text):
    """Return ``(description_lines, [(tag_type, raw_text), ...])``."""
    desc_lines = []
    raw_tags = []
    for line in text.split("\n"):
        m = _TAG_START_RE.match(line)
        if m:
            raw_tags.append((m.group(1), [m.group(2)]))
        elif raw_tags:
            raw_tags[-1][1].append(line)
        else:
            desc_lines.append(line)
    return desc_lines, [(t, "\n".join(lines).strip()) for t, lines in raw_tags]


# ── tags ──

_PARAM_ALIASES = {"arg": "param", "argument": "param", "prop": "property"}
_DASH_RE = re.compile(r"^-\s+")


def _matching_close(text, open_ch, close_ch):
    depth = 0
    for i, ch in enumerate(text):
        if ch == open_ch:
            depth += 1
        elif ch == close_ch:
            depth -= 1
            if depth == 0:
                return i
    return -1


def parse_types(text):
    """Split a JSDoc type expression on top-level ``|``."""
    text = text.strip()
    if text.startswith("(") and _matching_close(text, "(", ")") == len(text) - 1:
        text = text[1:-1]
    types = []
    depth = 0
    cur = []
    for ch in text:
        if ch in "<({[":
            depth += 1
        elif ch in ">)}]":
            depth -= 1
        if ch == "|" and depth == 0:
            types.append("".join(cur).strip())
            cur = []
            continue
        cur.append(ch)
    types.append("".join(cur).strip())
    return [t for t in types if t]


def parse_tag(tag_type, text):
    tag = Tag(type=_PARAM_ALIASES.get(tag_type, tag_type), string=text)

    rest = text
    type_expr = ""
    if rest.startswith("{"):
        close = _matching_close(rest, "{", "}")
        if close < 0:
            raise CommentSyntaxError(f"unbalanced braces in @{tag_type} {text!r}")
        type_expr = rest[1:close]
        tag.types = parse_types(type_expr)
        rest = rest[close + 1 :].lstrip()

    if tag.type in ("param", "property"):
        if rest.startswith("["):
            close = _matching_close(rest, "[", "]")
            if close < 0:
                raise CommentSyntaxError(f"unbalanced brackets in @{tag_type} {text!r}")
            name, desc = rest[: close + 1], rest[close + 1 :]
        else:
            parts = rest.split(None, 1)
            name = parts[0] if parts else ""
            desc = parts[1] if len(parts) > 1 else ""
        if not name:
            raise CommentSyntaxError(f"@{tag_type} without a name: {text!r}")
        tag.name = name
        tag.description = _DASH_RE.sub("", desc.strip())
        tag.optional = name.startswith("[") or type_expr.rstrip().endswith("=")
    elif tag.type in ("return", "returns"):
        tag.description = rest.strip()
    elif tag.type == "api":
        tag.visibility = rest.split()[0] if rest.split() else ""
    return tag


# ── code context ──

_ID = r"[\w$]+"
_FUNC = r"(?:async\s+)?(?:function\b|\([^)]*\)\s*=>|[\w$]+\s*=>)"
_NOT_METHODS = frozenset({"if", "for", "while", "switch", "catch", "function", "return", "with"})

_CTX_PATTERNS = [
    (
        re.compile(rf"^(?:export\s+)?(?:default\s+)?(?:async\s+)?function\s*\*?\s*({_ID})\s*\("),
        lambda m: Context("function", f"{m[1]}()"),
    ),
    (
        re.compile(rf"^(?:export\s+)?(?:default\s+)?class\s+({_ID})"),
        lambda m: Context("class", m[1]),
    ),
    (
        re.compile(rf"^({_ID}(?:\.{_ID})*)\.prototype\.({_ID})\s*=\s*{_FUNC}"),
        lambda m: Context("method", f"{m[1]}.prototype.{m[2]}()"),
    ),
    (
        re.compile(rf"^({_ID}(?:\.{_ID})*)\.prototype\.({_ID})\s*=(?!=)"),
        lambda m: Context("property", f"{m[1]}.prototype.{m[2]}"),
    ),
    (
        re.compile(rf"^({_ID})\.prototype\s*=(?!=)"),
        lambda m: Context("prototype", f"{m[1]}.prototype"),
    ),
    (
        re.compile(rf"^({_ID}(?:\.{_ID})*)\.({_ID})\s*=\s*{_FUNC}"),
        lambda m: Context("method", f"{m[1]}.{m[2]}()"),
    ),
    (
        re.compile(rf"^({_ID}(?:\.{_ID})*)\.({_ID})\s*=(?!=)"),
        lambda m: Context("property", f"{m[1]}.{m[2]}"),
    ),
    (
        re.compile(rf"^(?:export\s+)?(?:var|let|const)\s+({_ID})\s*=\s*{_FUNC}"),
        lambda m: Context("function", f"{m[1]}()"),
    ),
    (
        re.compile(rf"^(?:export\s+)?(?:var|let|const)\s+({_ID})"),
        lambda m: Context("declaration", m[1]),
    ),
    (
        re.compile(rf"^({_ID})\s*=\s*{_FUNC}"),
        lambda m: Context("function", f"{m[1]}()"),
    ),
    (
        re.compile(rf"^(?:async\s+)?({_ID})\s*:\s*{_FUNC}"),
        lambda m: Context("method", f"{m[1]}()"),
    ),
    (
        re.compile(rf"^({_ID})\s*:"),
        lambda m: Context("property", m[1]),
    ),
    (
        re.compile(rf"^(?:static\s+)?(?:async\s+)?(?:[gs]et\s+)?\*?({_ID})\s*\([^)]*\)\s*\{{"),
        lambda m: None if m[1] in _NOT_METHODS else Context("method", f"{m[1]}()"),
    ),
]


def parse_code_context(code):
    """Work out what the line of *code* declares, or ``None``."""
    code = code.strip()
    for pat, build in _CTX_PATTERNS:
        m = pat.match(code)
        if m:
            return build(m)
    return None


# ── public entry point ──


def parse_comment(body, *, line=0, code="", raw=True):
    text = _DECORATION_RE.sub("", body).strip()
    desc_lines, raw_tags = _split_tags(text)

    full = "\n".join(desc_lines).strip()
    if not raw:
        full = html.escape(full, quote=False)

    tags = [parse_tag(t, s) for t, s in raw_tags]
    return ParsedComment(
        description=Description(full=full),
        tags=tags,
        ctx=parse_code_context(code) if code else None,
        is_private=any(
            t.type == "private" or (t.type == "api" and t.visibility == "private")
            for t in tags
        ),
        line=line,
    )


def parse_comments(source, raw=True, skip_single_star=True):
    """Collect every doc comment in *source*, in file order.

    ``/*! ... */`` blocks are returned bare with ``ignore`` set; their text
    is never parsed. Plain ``/* */`` blocks are skipped unless
    *skip_single_star* is false.
    """
    source = source.replace("\r\n", "\n")
    out = []
    for m in _BLOCK_RE.finditer(source):
        marker = m.group(1)
        if marker is None and skip_single_star:
            continue
        line = source.count("\n", 0, m.start()) + 1
        if marker == "!":
            out.append(ParsedComment(description=Description(), ignore=True, line=line))
            continue
        out.append(
            parse_comment(m.group(2), line=line, code=_code_after(source, m.end()), raw=raw)
        )
    return out
