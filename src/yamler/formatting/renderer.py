#!/usr/bin/env python3
"""
YAMLER NAIVE RENDERER
---------------------
Serializes the round-trip node tree with one fixed canonical layout.
Flow and block-scalar styles remembered by the fingerprint are pushed
onto the nodes first, so the encoder starts from the intended baseline.
"""

import io
import logging
from typing import Any

from ruamel.yaml import YAML, YAMLError
from ruamel.yaml.comments import CommentedMap, CommentedSeq
from ruamel.yaml.scalarstring import FoldedScalarString, LiteralScalarString

from yamler.core.errors import SerializationError
from yamler.core.models import ScalarStyle
from yamler.core.paths import index_path, join_path
from yamler.formatting.fingerprint import Fingerprint

logger = logging.getLogger("yamler.renderer")


def make_yaml() -> YAML:
    """The round-trip loader/dumper shared by the document and the renderer."""
    yaml = YAML(typ='rt')
    yaml.preserve_quotes = True
    # 2-space mappings, sequences indented 4 with the dash at offset 2
    yaml.indent(mapping=2, sequence=4, offset=2)
    yaml.width = 4096
    return yaml


class NaiveRenderer:
    """
    The Reconstructor: converts the node tree back to a YAML string.
    """

    def __init__(self):
        self.yaml = make_yaml()

    def render(self, root: Any, fingerprint: Fingerprint = None) -> str:
        if fingerprint is not None:
            self.apply_styles(root, fingerprint)

        if isinstance(root, dict) and not root and not root.fa.flow_style():
            return ""

        stream = io.StringIO()
        try:
            self.yaml.dump(root, stream)
        except (YAMLError, TypeError, ValueError) as exc:
            raise SerializationError(f"failed to render document: {exc}") from exc
        text = stream.getvalue()

        # plain top-level scalars are closed with an explicit end marker
        if not isinstance(root, (dict, list)) and text.endswith("\n...\n"):
            text = text[:-len("...\n")]
        return text

    def apply_styles(self, node: Any, fingerprint: Fingerprint, path: str = ""):
        """Pushes remembered flow and block-scalar styles onto the tree."""
        if isinstance(node, (CommentedMap, CommentedSeq)) and fingerprint.flow_styles.get(path):
            node.fa.set_flow_style()

        if isinstance(node, dict):
            for key in list(node.keys()):
                child_path = join_path(path, key)
                styled = self._styled_scalar(node[key], fingerprint, child_path)
                if styled is not node[key]:
                    node[key] = styled
                self.apply_styles(styled, fingerprint, child_path)
        elif isinstance(node, list):
            for position, child in enumerate(node):
                child_path = index_path(path, position)
                styled = self._styled_scalar(child, fingerprint, child_path)
                if styled is not child:
                    node[position] = styled
                self.apply_styles(styled, fingerprint, child_path)

    def _styled_scalar(self, value: Any, fingerprint: Fingerprint, path: str) -> Any:
        if type(value) is not str:
            return value
        style = fingerprint.scalar_styles.get(path)
        if style == ScalarStyle.LITERAL:
            logger.debug("renderer: literal style pushed onto %s", path)
            return LiteralScalarString(value)
        if style == ScalarStyle.FOLDED:
            return FoldedScalarString(value)
        return value
