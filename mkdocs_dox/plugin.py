"""
MkDocs plugin exposing JavaScript API entities to pages.

Pages pull a source file in with a directive:

    ::: js:autodoc
        :file: lib/index.js

The file is run through the entity pipeline and the result is attached to
``page.meta`` (under ``meta_key``) for the theme's templates to render. The
directive itself is replaced by an HTML comment marking where it stood.
"""

from __future__ import annotations

import logging
import os
import re
from mkdocs.config import config_options
from mkdocs.config.base import Config as MkDocsConfig
from mkdocs.plugins import BasePlugin

from .comments import CommentSyntaxError, MalformedCommentError
from .parser import transform, transform_files

log = logging.getLogger("mkdocs.plugins.dox")

_DIRECTIVE_RE = re.compile(
    r"^(?P<indent>[ \t]*):::[ \t]+js:(?P<directive>autodoc)\s*\n"
    r"(?P<body>(?:(?P=indent)[ \t]+:\w+:.*\n)*)",
    re.MULTILINE,
)
_OPTION_RE = re.compile(r"^\s+:(\w+):\s*(.+)$", re.MULTILINE)

_TRUTHY = ("true", "yes", "1")


class DoxConfig(MkDocsConfig):
    source_root = config_options.Type(str, default="")
    sources = config_options.Type(list, default=[])
    raw = config_options.Type(bool, default=True)
    skip_single_star = config_options.Type(bool, default=True)
    max_workers = config_options.Type(int, default=4)
    meta_key = config_options.Type(str, default="dox")
    include_private = config_options.Type(bool, default=True)


class DoxPlugin(BasePlugin[DoxConfig]):

    def __init__(self):
        super().__init__()
        self._cache = {}
        self._root = ""

    def _parse_opts(self):
        return {
            "raw": self.config["raw"],
            "skip_single_star": self.config["skip_single_star"],
        }

    def _resolve_file(self, path):
        if os.path.isabs(path):
            return os.path.normpath(path)
        return os.path.normpath(os.path.join(self._root, path))

    def _name_for(self, abspath):
        # anchor IDs are namespaced by the path relative to the source root
        return os.path.relpath(abspath, self._root).replace(os.sep, "/")

    def _parse(self, abspath):
        if abspath in self._cache:
            return self._cache[abspath]
        if not os.path.isfile(abspath):
            log.error("dox: file not found: %s", abspath)
            return []
        with open(abspath, "r", encoding="utf-8", errors="replace") as f:
            content = f.read()
        try:
            entities = transform(content, self._name_for(abspath), **self._parse_opts())
        except (CommentSyntaxError, MalformedCommentError) as exc:
            log.error("dox: parse error %s: %s", abspath, exc)
            entities = []
        self._cache[abspath] = entities
        return entities

    def _warm_cache(self):
        paths = []
        for src in self.config["sources"]:
            abspath = self._resolve_file(str(src))
            if not os.path.isfile(abspath):
                log.error("dox: file not found: %s", abspath)
                continue
            paths.append(abspath)
        if not paths:
            return

        futures = transform_files(
            paths,
            max_workers=self.config["max_workers"],
            names={p: self._name_for(p) for p in paths},
            **self._parse_opts(),
        )
        for path, future in futures.items():
            try:
                self._cache[path] = future.result()
            except (CommentSyntaxError, MalformedCommentError) as exc:
                log.error("dox: parse error %s: %s", path, exc)
                self._cache[path] = []
        nent = sum(len(v) for v in self._cache.values())
        log.info("dox: %d files parsed, %d entities", len(paths), nent)

    # ── MkDocs lifecycle hooks ──

    def on_config(self, config, **kwargs):
        config_dir = os.path.dirname(config.get("config_file_path", "")) or os.getcwd()
        root = self.config["source_root"]
        if root and not os.path.isabs(root):
            root = os.path.normpath(os.path.join(config_dir, root))
        self._root = root or config_dir

        self._cache.clear()
        self._warm_cache()
        return config

    def on_page_markdown(self, markdown, *, page, config, files, **kwargs):
        return _DIRECTIVE_RE.sub(lambda m: self._handle_directive(m, page), markdown)

    def _handle_directive(self, match, page):
        directive = match.group("directive")
        opts = {}
        for m in _OPTION_RE.finditer(match.group("body")):
            opts[m.group(1)] = m.group(2).strip()
        fpath = opts.get("file", "")
        if not fpath:
            return f"<!-- dox: missing :file: for js:{directive} -->\n"

        abspath = self._resolve_file(fpath)
        entities = self._parse(abspath)
        include_private = self.config["include_private"]
        if "private" in opts:
            include_private = opts["private"].lower() in _TRUTHY
        if not include_private:
            entities = [e for e in entities if not e.is_private]

        key = self.config["meta_key"]
        page.meta.setdefault(key, []).append(
            {"file": fpath, "entities": [e.to_dict() for e in entities]}
        )
        return f"<!-- dox: {fpath} ({len(entities)} entities) -->\n"
