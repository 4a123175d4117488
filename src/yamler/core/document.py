#!/usr/bin/env python3
"""
YAMLER DOCUMENT - The Formatting-Preserving Editor
--------------------------------------------------
The Document ties the node tree, the raw text and the formatting pipeline
together. It holds exactly one root node, the last known raw text and
the number of trailing newlines of the input, and exposes Load / Get /
Set / ToBytes as its public contract.

Every successful mutation re-renders the document and stores the result
as the new raw text: later edits derive their relative formatting (comment
gaps, indentation) from the freshest text. A Document is not safe for
concurrent mutation; serialize access to one instance per owner.
"""

import dataclasses
import logging
import os
from pathlib import Path
from typing import Any, Optional, Union

from ruamel.yaml import YAMLError
from ruamel.yaml.comments import CommentedMap

from yamler.core.errors import FileError, IndexOutOfBounds, ParseError, TypeMismatch
from yamler.core.models import CommentMode, FormatOptions
from yamler.core.nodes import carry_comments, carry_flow_style, carry_scalar_style, to_node, to_value
from yamler.core.paths import ArrayIndex, find_key, resolve, resolve_or_create
from yamler.edits.arrays import ArrayOpsMixin
from yamler.edits.merge import MergeMixin
from yamler.edits.typed import TypedAccessMixin
from yamler.edits.wildcards import WildcardMixin
from yamler.formatting.pipeline import FormattingPipeline
from yamler.formatting.renderer import make_yaml
from yamler.validator.validator import SchemaValidator, ValidationRule

logger = logging.getLogger("yamler.document")

BOM = "\ufeff"


def _trailing_newlines(text: str) -> int:
    count = 0
    for char in reversed(text):
        if char == "\n":
            count += 1
        elif char != "\r":
            break
    return count


def _only_comments(text: str) -> bool:
    return all(not line.strip() or line.lstrip().startswith("#") for line in text.split("\n"))


class Document(ArrayOpsMixin, TypedAccessMixin, WildcardMixin, MergeMixin):
    """
    A YAML document that remembers how it was written.

    A new Document is unloaded; use `Document.load(text)` or
    `Document.load_file(path)` to obtain a loaded one.
    """

    def __init__(self, options: Optional[FormatOptions] = None):
        self.options = dataclasses.replace(options) if options else FormatOptions()
        self.raw = ""
        self.trailing_newlines = 0
        self.line_ending = "\n"
        self.preserve_markers = True
        self.header = ""
        self._root: Any = None
        self._loaded = False
        self._pipeline = FormattingPipeline()

    # --- LOADING ---

    @classmethod
    def load(cls, text: str, options: Optional[FormatOptions] = None) -> "Document":
        """Parses `text`; raises ParseError on malformed YAML."""
        doc = cls(options)
        doc._parse(text)
        return doc

    @classmethod
    def load_file(cls, path: Union[str, Path], options: Optional[FormatOptions] = None) -> "Document":
        target = Path(path)
        try:
            data = target.read_bytes()
        except OSError as exc:
            raise FileError(f"failed to read {target}: {exc}") from exc
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise FileError(f"{target} is not valid UTF-8: {exc}") from exc
        return cls.load(text, options)

    def _parse(self, text: str):
        if text.startswith(BOM):
            text = text[len(BOM):]
        if "\r\n" in text:
            self.line_ending = "\r\n"
            text = text.replace("\r\n", "\n")

        try:
            root = make_yaml().load(text)
        except YAMLError as exc:
            mark = getattr(exc, "problem_mark", None)
            problem = getattr(exc, "problem", None) or str(exc)
            if mark is not None:
                raise ParseError(problem, mark.line + 1, mark.column + 1) from exc
            raise ParseError(problem) from exc

        if root is None and _only_comments(text):
            # comments only: kept verbatim as a header above whatever is added
            root = CommentedMap()
            self.header = text.rstrip("\n") + "\n" if text.strip() else ""
        self._root = root
        self.raw = text
        self.trailing_newlines = _trailing_newlines(text)
        self._loaded = True
        logger.debug("document: loaded %d lines", text.count("\n") + 1)

    # --- STATE ---

    def _require_root(self) -> Any:
        if not self._loaded:
            raise RuntimeError("document is not loaded")
        return self._root

    @property
    def root(self) -> Any:
        return self._require_root()

    def is_array_root(self) -> bool:
        return isinstance(self._require_root(), list)

    def _root_path(self, path: str) -> str:
        """Paths of array-root documents default to the first element."""
        if path and not path.startswith("[") and self.is_array_root():
            return "[0]." + path
        return path

    def _refresh(self):
        self.raw = self._render()
        self._pipeline.invalidate()

    # --- READ / WRITE ---

    def get(self, path: str) -> Any:
        """Value at `path` as plain dict / list / scalar data."""
        root = self._require_root()
        return to_value(resolve(root, self._root_path(path)))

    def set(self, path: str, value: Any):
        """
        Sets `path` to `value`, creating missing intermediate mappings.

        Existing keys keep their position, comments and scalar style; new
        keys are appended after the existing ones.
        """
        self._set(self._root_path(path), value, preserve_markers=True)

    def _set(self, path: str, value: Any, preserve_markers: bool):
        root = self._require_root()
        node = to_node(value, path)

        if path == "":
            carry_comments(root, node)
            carry_flow_style(root, node)
            self._root = node
            self.preserve_markers = preserve_markers
            self._refresh()
            return

        if not isinstance(root, (dict, list)):
            raise TypeMismatch(path, "cannot set a path on a scalar document")
        parent, step = resolve_or_create(root, path)
        self._store(parent, step, node)
        logger.debug("document: set %s", path)
        self.preserve_markers = preserve_markers
        self._refresh()

    def _store(self, parent: Any, step: Any, node: Any):
        if isinstance(step, ArrayIndex):
            if step.index == len(parent):
                parent.append(node)
            else:
                parent[step.index] = self._replacement(parent[step.index], node)
            return

        key = find_key(parent, step.name)
        if key is None:
            parent[step.name] = node
        else:
            parent[key] = self._replacement(parent[key], node)

    @staticmethod
    def _replacement(old: Any, new: Any) -> Any:
        new = carry_scalar_style(old, new)
        carry_comments(old, new)
        carry_flow_style(old, new)
        return new

    # --- ARRAY-ROOT DOCUMENTS ---

    def _root_sequence(self, index: int) -> list:
        root = self._require_root()
        if not isinstance(root, list):
            raise TypeMismatch("", "document root is not a sequence")
        if index < 0 or index >= len(root):
            raise IndexOutOfBounds(f"[{index}]", index, len(root))
        return root

    @staticmethod
    def _element_path(index: int, path: str) -> str:
        if not path:
            return f"[{index}]"
        return f"[{index}]{path}" if path.startswith("[") else f"[{index}].{path}"

    def set_array_element(self, index: int, path: str, value: Any):
        """
        Sets `path` inside the element `index` of an array-root document.
        Document markers are not re-emitted for element edits.
        """
        root = self._root_sequence(index)
        if path and not isinstance(root[index], (dict, list)):
            raise TypeMismatch(self._element_path(index, ""), "array element is not a collection")
        self._set(self._element_path(index, path), value, preserve_markers=False)

    def get_array_document_element(self, index: int, path: str = "") -> Any:
        self._root_sequence(index)
        return self.get(self._element_path(index, path))

    def add_array_element(self, value: Any):
        """Appends an element to an array-root document."""
        root = self._require_root()
        if not isinstance(root, list):
            raise TypeMismatch("", "document root is not a sequence")
        root.append(to_node(value, self._element_path(len(root), "")))
        self.preserve_markers = False
        self._refresh()

    # --- VALIDATION ---

    def validate(self, rule: ValidationRule):
        """Raises ValidationError when the document data breaks `rule`."""
        SchemaValidator().validate(to_value(self._require_root()), rule)

    # --- COMMENT ALIGNMENT ---

    def set_comment_alignment(self, mode: Union[CommentMode, str]):
        self.options.comment_mode = CommentMode(mode)

    def set_absolute_comment_alignment(self, column: int):
        self.options.comment_mode = CommentMode.ABSOLUTE
        self.options.comment_column = column

    def enable_relative_comment_alignment(self):
        self.options.comment_mode = CommentMode.RELATIVE

    def disable_comment_alignment(self):
        self.options.comment_mode = CommentMode.DISABLED

    # --- OUTPUT ---

    def _render(self) -> str:
        root = self._require_root()
        if self.header and isinstance(root, dict) and not root:
            return self.raw
        body = self.raw[len(self.header):]
        text = self._pipeline.run(root, body, self.options, self.preserve_markers)
        return self.header + text.rstrip("\n") + "\n" * self.trailing_newlines

    def to_string(self) -> str:
        """The document text; raises SerializationError if rendering fails."""
        text = self._render()
        if self.line_ending != "\n":
            text = text.replace("\n", self.line_ending)
        return text

    def to_bytes(self) -> bytes:
        return self.to_string().encode("utf-8")

    def __str__(self) -> str:
        return self.to_string()

    def save(self, path: Union[str, Path]):
        """Writes the document atomically: temp file, then rename."""
        target = Path(path)
        content = self.to_bytes()
        temp_file = target.with_name(target.name + ".yamler.tmp")
        try:
            temp_file.write_bytes(content)
            os.replace(temp_file, target)
        except OSError as exc:
            if temp_file.exists():
                temp_file.unlink()
            raise FileError(f"atomic write to {target} failed: {exc}") from exc
        logger.info("document: saved %s (%d bytes)", target, len(content))


def load(text: str, options: Optional[FormatOptions] = None) -> Document:
    """Parses `text` into a Document."""
    return Document.load(text, options)


def load_file(path: Union[str, Path], options: Optional[FormatOptions] = None) -> Document:
    return Document.load_file(path, options)
