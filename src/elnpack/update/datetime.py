"""Entry date/time transitions; the reducer never reads the clock itself."""

from __future__ import annotations

from typing import Any, Callable

from elnpack.state.models import AppModel
from elnpack.update import messages as m
from elnpack.update.commands import Command


def _date(model: AppModel, msg: m.DateSet) -> list[Command]:
    model.performed_at.set_date(msg.date)
    return []


def _hour(model: AppModel, msg: m.HourSet) -> list[Command]:
    model.performed_at.set_hour(msg.hour)
    return []


def _minute(model: AppModel, msg: m.MinuteSet) -> list[Command]:
    model.performed_at.set_minute(msg.minute)
    return []


def _offset(model: AppModel, msg: m.OffsetSet) -> list[Command]:
    model.performed_at.set_offset(msg.minutes)
    return []


def _now(model: AppModel, msg: m.NowSet) -> list[Command]:
    model.performed_at.set_now(msg.now)
    return []


HANDLERS: dict[type, Callable[[AppModel, Any], list[Command]]] = {
    m.DateSet: _date,
    m.HourSet: _hour,
    m.MinuteSet: _minute,
    m.OffsetSet: _offset,
    m.NowSet: _now,
}
