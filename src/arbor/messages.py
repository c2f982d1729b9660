"""Textual message objects for panel/app coordination."""

from __future__ import annotations

from textual.message import Message

from arbor.tree.loader import TreeUpdate


class TreeUpdated(Message):
    def __init__(self, update: TreeUpdate) -> None:
        self.update = update
        super().__init__()
