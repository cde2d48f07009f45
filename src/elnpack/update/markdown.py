"""Main text transitions."""

from __future__ import annotations

from typing import Any, Callable

from elnpack.state.models import AppModel
from elnpack.update import messages as m
from elnpack.update.commands import Command


def _changed(model: AppModel, msg: m.MarkdownChanged) -> list[Command]:
    model.markdown = msg.text
    return []


def _snippet(model: AppModel, msg: m.MarkdownSnippetInserted) -> list[Command]:
    if model.markdown and not model.markdown.endswith("\n"):
        model.markdown += "\n"
    model.markdown += msg.snippet
    return []


HANDLERS: dict[type, Callable[[AppModel, Any], list[Command]]] = {
    m.MarkdownChanged: _changed,
    m.MarkdownSnippetInserted: _snippet,
}
