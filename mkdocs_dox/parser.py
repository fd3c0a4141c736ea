"""
Doc comment to entity pipeline.

Takes the comment records of one source file and produces the ordered list
of documented entities a page is rendered from:

  1. build the linkable index (callbacks and typedefs, keyed by display name)
  2. classify each comment and build its entity, linking type names against
     the index
  3. drop empty entities and sort the rest

The index is local to a single call, so files can be transformed in
parallel; see :func:`transform_files`.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum, auto

from .comments import MalformedCommentError, ParsedComment, parse_comments
from .formatters import (
    format_linkable,
    format_name,
    format_param,
    format_uid,
    strip_type_marker,
)

log = logging.getLogger("mkdocs.plugins.dox")

LINKABLE_TAGS = ("typedef", "callback")


class EntityKind(Enum):
    NORMAL = auto()
    CALLBACK_OR_TYPEDEF = auto()
    EMPTY = auto()


@dataclass(frozen=True)
class ParamDoc:
    name: str
    is_optional: bool
    types: tuple[str, ...] = ()
    description: str = ""

    def to_dict(self):
        return {
            "name": self.name,
            "isOptional": self.is_optional,
            "types": list(self.types),
            "description": self.description,
        }


@dataclass(frozen=True)
class ReturnDoc:
    types: tuple[str, ...] = ()
    description: str = ""

    def to_dict(self):
        return {"types": list(self.types), "description": self.description}


@dataclass(frozen=True)
class EntityTags:
    example: tuple[str, ...] = ()
    param: tuple[ParamDoc, ...] = ()
    property: tuple[ParamDoc, ...] = ()
    return_: tuple[ReturnDoc, ...] = ()

    def to_dict(self):
        return {
            "example": list(self.example),
            "param": [p.to_dict() for p in self.param],
            "property": [p.to_dict() for p in self.property],
            "return": [r.to_dict() for r in self.return_],
        }


@dataclass(frozen=True)
class Entity:
    uid: str
    name: str
    type: str
    description: str = ""
    is_private: bool = False
    line: int = 0
    params: str = ""
    not_function: bool = False
    to_bottom: bool = False
    tags: EntityTags = field(default_factory=EntityTags)

    def to_dict(self):
        """Serialize with the key names templates expect."""
        return {
            "uid": self.uid,
            "name": self.name,
            "type": self.type,
            "description": self.description,
            "isPrivate": self.is_private,
            "line": self.line,
            "params": self.params,
            "notFunction": self.not_function,
            "toBottom": self.to_bottom,
            "tags": self.tags.to_dict(),
        }


# ── boundary checks ──


def validate_comment(comment):
    """Raise :class:`MalformedCommentError` unless *comment* is well formed."""
    if not isinstance(comment, ParsedComment):
        raise MalformedCommentError(f"expected ParsedComment, got {type(comment).__name__}")
    if comment.description is None or not isinstance(comment.description.full, str):
        raise MalformedCommentError(f"comment at line {comment.line} has no description")
    if not isinstance(comment.tags, list):
        raise MalformedCommentError(f"comment at line {comment.line}: tags must be a list")
    for tag in comment.tags:
        if not isinstance(tag.types, list):
            raise MalformedCommentError(
                f"comment at line {comment.line}: @{tag.type} types must be a list"
            )
        if tag.type in ("param", "property") and not tag.name:
            raise MalformedCommentError(
                f"comment at line {comment.line}: @{tag.type} has no name"
            )
    if comment.ctx is not None and not comment.ctx.string:
        raise MalformedCommentError(f"comment at line {comment.line}: empty ctx string")


def _is_ignored(record):
    if isinstance(record, Mapping):
        return bool(record.get("ignore", False))
    return isinstance(record, ParsedComment) and record.ignore


def _coerce(record):
    if isinstance(record, Mapping):
        return ParsedComment.from_dict(record)
    return record


# ── pass 1: linkable index ──


def is_callback_or_typedef(comment):
    return bool(comment.tags) and comment.tags[0].type in LINKABLE_TAGS


def build_linkable_index(comments, filename):
    """Map callback/typedef display names to their anchor IDs.

    A later declaration with the same display name replaces an earlier one.
    """
    index = {}
    for comment in comments:
        if not is_callback_or_typedef(comment):
            continue
        first = comment.tags[0]
        name = strip_type_marker(format_name(first.string, first.type))
        index[name] = format_uid(f"{filename}-{first.string}")
    log.debug("dox: %s: %d linkable objects", filename, len(index))
    return index


# ── pass 2: entities ──


def classify(comment):
    if comment.ctx is not None:
        return EntityKind.NORMAL
    if is_callback_or_typedef(comment):
        return EntityKind.CALLBACK_OR_TYPEDEF
    return EntityKind.EMPTY


def _param_doc(tag, index):
    return ParamDoc(
        name=format_param(tag.name),
        is_optional=tag.optional,
        types=tuple(format_linkable(t, index) for t in tag.types),
        description=tag.description,
    )


def build_tags(tags, index):
    return EntityTags(
        example=tuple(t.string for t in tags if t.type == "example"),
        param=tuple(_param_doc(t, index) for t in tags if t.type == "param"),
        property=tuple(_param_doc(t, index) for t in tags if t.type == "property"),
        return_=tuple(
            ReturnDoc(
                types=tuple(format_linkable(ty, index) for ty in t.types),
                description=t.description,
            )
            for t in tags
            if t.type in ("return", "returns")
        ),
    )


def format_params(tags):
    """Build the ``a, b[, c, d]`` signature string from ``@param`` tags.

    Dotted names document members of another parameter and are left out.
    """
    names = []
    for tag in tags:
        if tag.type != "param" or "." in tag.name:
            continue
        name = format_param(tag.name)
        names.append(f"[{name}]" if tag.optional else name)
    return ", ".join(names).replace("], [", ", ").replace(", [", "[, ", 1)


def _member_name(comment):
    name = comment.ctx.string
    tags = comment.tags
    if tags and tags[0].type == "memberof":
        name = f"{tags[0].string.replace('#', '', 1)}.{name}"
    return format_name(name)


def build_entity(comment, filename, index):
    """Return the entity for *comment*, or ``None`` when it is empty."""
    kind = classify(comment)
    if kind is EntityKind.EMPTY:
        return None
    if not comment.description.full and not comment.tags:
        return None

    common = {
        "description": comment.description.full,
        "is_private": comment.is_private,
        "line": comment.line,
        "tags": build_tags(comment.tags, index),
    }

    if kind is EntityKind.NORMAL:
        ctx = comment.ctx
        return Entity(
            uid=format_uid(f"{filename}-{ctx.string}"),
            name=_member_name(comment),
            type=ctx.type,
            params=format_params(comment.tags),
            not_function=ctx.type == "declaration",
            **common,
        )

    first = comment.tags[0]
    is_typedef = first.type == "typedef"
    return Entity(
        uid=format_uid(f"{filename}-{first.string}"),
        name=format_name(first.string, first.type),
        type=first.type,
        params="" if is_typedef else format_params(comment.tags),
        not_function=is_typedef,
        to_bottom=True,
        **common,
    )


# ── ordering ──


def _compare(a, b):
    if a.to_bottom and b.to_bottom:
        return (a.type > b.type) - (a.type < b.type)
    if a.to_bottom:
        return 1
    if b.to_bottom:
        return -1
    return a.line - b.line


def assemble(entities):
    """Drop empty entries and order the rest for output.

    Ordinary entities come first by source line. Callbacks and typedefs
    follow, grouped by type name.
    """
    return sorted(
        (e for e in entities if e is not None), key=functools.cmp_to_key(_compare)
    )


# ── entry points ──


def transform_comments(comments, filename):
    """Run the pipeline over already-parsed comment records.

    Records may be :class:`ParsedComment` objects or ``dox`` JSON mappings.
    Records marked ``ignore`` are dropped unread.
    """
    records = []
    for record in comments:
        if _is_ignored(record):
            continue
        record = _coerce(record)
        validate_comment(record)
        records.append(record)

    index = build_linkable_index(records, filename)
    entities = assemble(build_entity(c, filename, index) for c in records)
    log.debug("dox: %s: %d of %d comments documented", filename, len(entities), len(records))
    return entities


def transform(content, filename, *, parse=parse_comments, raw=True, skip_single_star=True):
    """Parse *content* and return its entities.

    *filename* only namespaces the generated anchor IDs; it is never opened.
    """
    comments = parse(content, raw=raw, skip_single_star=skip_single_star)
    return transform_comments(comments, filename)


def submit_transform(executor, content, filename, **kwargs):
    """Schedule :func:`transform` on *executor* and return its future."""
    return executor.submit(transform, content, filename, **kwargs)


def transform_files(paths, *, max_workers=None, names=None, **kwargs):
    """Transform several files in parallel.

    Returns ``{path: future}``; each future yields that file's entities or
    raises that file's error. *names* optionally maps a path to the
    filename used for its anchor IDs.
    """
    names = names or {}
    futures = {}
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        for path in paths:
            futures[path] = pool.submit(_transform_named, path, names.get(path, path), kwargs)
    return futures


def _transform_named(path, name, kwargs):
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        content = f.read()
    return transform(content, name, **kwargs)
