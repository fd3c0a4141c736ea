"""
mkdocs-dox — JavaScript API documentation for MkDocs.

Reads JSDoc-style comments from JavaScript sources, links type references
to the callbacks and typedefs declared alongside them, and hands the
ordered entity list to MkDocs pages for rendering.
"""

__version__ = "0.1.0"
