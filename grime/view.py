"""
Tree view over the annotation store.

Two levels: one root per annotation type, and one leaf per record of that
type in store order. Nothing is cached; every request re-reads the store.
"""

from dataclasses import dataclass
from typing import Callable, Optional

from .events import ChangeNotifier
from .record_store import RecordStore
from .types import AnnotationRecord, AnnotationType


@dataclass(frozen=True)
class TreeNode:
    """A type group (record is None) or a single annotation."""
    label: str
    annotation_type: AnnotationType
    record: Optional[AnnotationRecord] = None

    @property
    def is_root(self) -> bool:
        return self.record is None

    @property
    def collapsible(self) -> bool:
        return self.is_root

    @property
    def detail(self) -> str:
        """Secondary text shown next to the label: file:line for leaves."""
        if self.record is None:
            return ""
        return self.record.location_label

    @property
    def tooltip(self) -> str:
        if self.record is None:
            return self.label
        if self.record.file:
            return f"{self.record.description} - {self.record.file}:{self.record.line or ''}"
        return self.record.description


class AnnotationTreeView:
    """
    Read-only hierarchy for presentation layers.

    Subscribers registered with on_did_change() are called after every
    successful mutation made through the engine sharing the notifier.
    """

    def __init__(self, store: RecordStore, notifier: ChangeNotifier) -> None:
        self._store = store
        self._notifier = notifier

    def get_children(self, node: Optional[TreeNode] = None) -> list[TreeNode]:
        """Roots when node is None, records for a root, nothing for a leaf."""
        if node is None:
            return [TreeNode(label=t.label, annotation_type=t) for t in AnnotationType]
        if not node.is_root:
            return []
        return [
            TreeNode(label=entry.description, annotation_type=node.annotation_type, record=entry)
            for entry in self._store.load_entries(node.annotation_type)
        ]

    def get_tree_item(self, node: TreeNode) -> TreeNode:
        return node

    def on_did_change(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Subscribe to change notifications. Returns the unsubscribe function."""
        return self._notifier.subscribe(listener)

    def refresh(self) -> None:
        """Notify subscribers that the tree should be re-read."""
        self._notifier.fire()

    def render_text(self, types: Optional[list[AnnotationType]] = None, show_ids: bool = True) -> str:
        """Indented text rendering of the tree, for terminals."""
        lines = []
        for root in self.get_children():
            if types and root.annotation_type not in types:
                continue
            children = self.get_children(root)
            lines.append(f"{root.label} ({len(children)})")
            for leaf in children:
                parts = ["  -"]
                if show_ids:
                    parts.append(leaf.record.id[:8])
                parts.append(leaf.label)
                if leaf.detail:
                    parts.append(f"[{leaf.detail}]")
                lines.append(" ".join(parts))
        return "\n".join(lines)
