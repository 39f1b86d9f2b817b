"""
Mind Map Session - Owns the displayed mind map and sequences mutations.

This module implements:
- Single mind map state (one map displayed at a time)
- Dispatch of mutations through the core interface table
- Two-phase commit: apply the new model, then settle the viewport focus
- Atomic import: a failed conversion leaves the current map untouched

The commit protocol works like this:
- ``dispatch`` runs a mutation and commits the result; ``on_commit``
  listeners see the new model (a renderer applies positions here)
- The focus request is parked until ``settle`` is called, after the
  renderer has drawn the committed model
- ``settle`` runs ``after_layout_settles`` callbacks with the focus
- While a focus is parked, further mutations are refused
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from mindmap_core import (
    MUTATION_OPS,
    ConversionError,
    MindMap,
    MutationResult,
    SourceFormat,
    convert,
    export_mind_map,
)

from .responder import QuestionResponder

logger = logging.getLogger(__name__)


class UnknownOperationError(KeyError):
    """Raised when dispatch is asked for an operation not in the interface table."""


@dataclass
class FocusRequest:
    """Where the viewport should go once the committed layout is drawn."""
    node_id: Optional[str] = None
    fit_view: bool = False
    x: Optional[float] = None
    y: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "node_id": self.node_id,
            "fit_view": self.fit_view,
            "x": self.x,
            "y": self.y,
        }


@dataclass
class ImportOutcome:
    """Result of an import attempt."""
    ok: bool
    source_format: Optional[SourceFormat] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "success": self.ok,
            "source_format": self.source_format.value if self.source_format else None,
            "error": self.error,
        }


class MindMapSession:
    """
    Holds the current mind map and applies one mutation at a time.

    Features:
    - Mutations looked up by name in the core interface table
    - Commit listeners for renderers, settle callbacks for the viewport
    - Refuses new mutations while a focus from the previous one is pending
    """

    def __init__(self, model: Optional[MindMap] = None):
        self._model: MindMap = model or MindMap.blank()
        self._pending_focus: Optional[FocusRequest] = None
        self._on_commit_callbacks: list[Callable[[MindMap], None]] = []
        self._after_settle_callbacks: list[Callable[[FocusRequest], None]] = []

    # --- Properties ---

    @property
    def model(self) -> MindMap:
        """Get the current mind map."""
        return self._model

    @property
    def has_pending_focus(self) -> bool:
        """True between a commit and the matching settle."""
        return self._pending_focus is not None

    # --- Callbacks ---

    def on_commit(self, callback: Callable[[MindMap], None]):
        """Register a callback receiving every committed model."""
        self._on_commit_callbacks.append(callback)

    def after_layout_settles(self, callback: Callable[[FocusRequest], None]):
        """Register a callback run by settle() with the parked focus request."""
        self._after_settle_callbacks.append(callback)

    def _notify_commit(self):
        for callback in self._on_commit_callbacks:
            callback(self._model)

    # --- Commit protocol ---

    def _commit(self, model: MindMap, focus: Optional[FocusRequest]):
        """Phase one: replace the model, tell the renderer, park the focus."""
        self._model = model
        self._notify_commit()
        self._pending_focus = focus

    def settle(self) -> Optional[FocusRequest]:
        """
        Phase two: resolve the parked focus against the committed model.

        Call this once the renderer has applied the committed positions.
        Returns the focus request, or None when nothing was pending.
        """
        focus = self._pending_focus
        if focus is None:
            return None
        self._pending_focus = None

        if focus.node_id is not None:
            node = self._model.get_node(focus.node_id)
            if node is None:
                focus = FocusRequest(fit_view=True)
            else:
                focus.x, focus.y = node.position.x, node.position.y

        for callback in self._after_settle_callbacks:
            callback(focus)
        return focus

    # --- Mutations ---

    def dispatch(self, op_name: str, **params: Any) -> Optional[MutationResult]:
        """
        Run one mutation from the interface table and commit its result.

        Returns None (and changes nothing) while a focus is still pending.

        Raises:
            UnknownOperationError: op_name is not in the interface table
        """
        operation = MUTATION_OPS.get(op_name)
        if operation is None:
            raise UnknownOperationError(op_name)

        if self.has_pending_focus:
            logger.warning("Refusing %s: previous focus has not settled", op_name)
            return None

        result = operation(self._model, **params)
        if not result.changed:
            return result

        focus = None
        if result.focus_id is not None or result.fit_view:
            focus = FocusRequest(node_id=result.focus_id, fit_view=result.fit_view)
        self._commit(result.model, focus)
        logger.debug("Committed %s (%d nodes)", op_name, len(result.model.nodes))
        return result

    async def dispatch_async(self, op_name: str, **params: Any) -> Optional[MutationResult]:
        """Dispatch, yield once to the event loop so the renderer can draw, then settle."""
        result = self.dispatch(op_name, **params)
        if result is not None and result.changed:
            await asyncio.sleep(0)
            self.settle()
        return result

    async def ask(self, responder: QuestionResponder, node_id: str, question: str) -> Optional[MutationResult]:
        """
        Ask the responder about a node and attach the answer as a new child.

        Returns a no-op result when the node no longer exists, and None
        while a focus is still pending.
        """
        if self.has_pending_focus:
            logger.warning("Refusing question on %s: previous focus has not settled", node_id)
            return None
        if self._model.get_node(node_id) is None:
            logger.debug("Question on missing node %s ignored", node_id)
            return MutationResult(model=self._model, changed=False)

        answer = await responder.answer(node_id, question)
        # The map may have changed while waiting; dispatch re-checks the focus
        # and add_child ignores a parent that has been deleted meanwhile
        return self.dispatch(
            "add_answer_child",
            parent_id=node_id,
            question=question,
            answer=answer.answer_text,
        )

    # --- Import / Export ---

    def import_json(self, data: Any, relayout: bool = False, lossy: Optional[bool] = None) -> ImportOutcome:
        """
        Replace the current map with converted data, or change nothing.

        Conversion failures are reported in the outcome, never raised.
        """
        if self.has_pending_focus:
            return ImportOutcome(ok=False, error="Previous change has not settled yet")

        try:
            result = convert(data, relayout=relayout, lossy=lossy)
        except ConversionError as e:
            logger.warning("Import rejected: %s", e)
            return ImportOutcome(ok=False, error=str(e))

        self._commit(result.model, FocusRequest(fit_view=True))
        logger.info("Imported %s mind map with %d nodes", result.source_format.value, len(result.model.nodes))
        return ImportOutcome(ok=True, source_format=result.source_format)

    def export_json(self) -> dict:
        """Canonical export of the current map."""
        return export_mind_map(self._model)

    def reset(self, label: Optional[str] = None) -> MindMap:
        """Start over from a blank map holding only the root."""
        model = MindMap.blank(label) if label else MindMap.blank()
        self._pending_focus = None
        self._commit(model, FocusRequest(fit_view=True))
        return self._model

    def get_state(self) -> dict:
        """Get the full current state for API responses."""
        return {
            "mindmap": self._model.to_json_dict(),
            "pending_focus": self.has_pending_focus,
        }
