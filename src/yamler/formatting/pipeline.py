#!/usr/bin/env python3
"""
YAMLER FORMATTING PIPELINE - The Chief Surgeon
----------------------------------------------
Coordinates the re-serialization of a document: fingerprint the latest
raw text, render the node tree naively, then reconcile the rendering
with the fingerprint. The fingerprint of a given raw text is computed
once and reused until the raw text changes.
"""

import logging
from typing import Any, Optional

from yamler.core.models import FormatOptions
from yamler.formatting.fingerprint import Fingerprint, FingerprintExtractor
from yamler.formatting.reconciler import FormatReconciler
from yamler.formatting.renderer import NaiveRenderer

logger = logging.getLogger("yamler.pipeline")


class FormattingPipeline:
    """
    The Orchestrator: ensures fingerprinting, rendering and reconciliation
    happen in a strictly defined order.
    """

    def __init__(self):
        self.extractor = FingerprintExtractor()
        self.renderer = NaiveRenderer()
        self._fingerprint: Optional[Fingerprint] = None
        self._fingerprint_source: Optional[str] = None

    def fingerprint(self, raw_text: str) -> Fingerprint:
        """Fingerprint of `raw_text`, cached per distinct text."""
        if self._fingerprint is None or self._fingerprint_source != raw_text:
            self._fingerprint = self.extractor.extract(raw_text)
            self._fingerprint_source = raw_text
        return self._fingerprint

    def invalidate(self):
        self._fingerprint = None
        self._fingerprint_source = None

    def run(self, root: Any, raw_text: str, options: FormatOptions,
            preserve_markers: bool = True) -> str:
        # --- PHASE 1: FINGERPRINT ---
        # Formatting ground truth of the freshest raw text.
        fingerprint = self.fingerprint(raw_text)

        # --- PHASE 2: NAIVE RENDER ---
        # Remembered flow and block-scalar styles are pushed onto the
        # nodes so the encoder starts from the intended baseline.
        naive = self.renderer.render(root, fingerprint)

        # --- PHASE 3: RECONCILIATION ---
        reconciler = FormatReconciler(fingerprint, options)
        text = reconciler.reconcile(naive, raw_text, preserve_markers)
        logger.debug("pipeline: rendered %d lines", text.count('\n') + 1)
        return text
