"""Keyword list transitions."""

from __future__ import annotations

from typing import Any, Callable

from elnpack.state.models import AppModel, EventKind
from elnpack.update import messages as m
from elnpack.update.commands import Command


def _added(model: AppModel, msg: m.KeywordsAdded) -> list[Command]:
    result = model.keywords.add_many(msg.raw)
    model.record(EventKind.INFO, result.message, added=list(result.added))
    return []


def _edited(model: AppModel, msg: m.KeywordEdited) -> list[Command]:
    problem = model.keywords.replace(msg.index, msg.value)
    if problem:
        model.record(EventKind.VALIDATION_ERROR, problem, index=msg.index)
    else:
        model.record(EventKind.INFO, "Keyword updated.")
    return []


def _removed(model: AppModel, msg: m.KeywordRemoved) -> list[Command]:
    if model.keywords.remove(msg.index):
        model.record(EventKind.INFO, "Keyword removed.")
    return []


HANDLERS: dict[type, Callable[[AppModel, Any], list[Command]]] = {
    m.KeywordsAdded: _added,
    m.KeywordEdited: _edited,
    m.KeywordRemoved: _removed,
}
