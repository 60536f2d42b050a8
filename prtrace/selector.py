"""
Interactive disambiguation between pull requests that share a head commit.

The selector is a small state machine (SelectionState) fed with discrete
events by a driver. The terminal driver lives in prtrace.tui; `drive`
feeds a scripted sequence of events.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Protocol

from .errors import NotFoundError, ProcessAbort

logger = logging.getLogger(__name__)

ACTIVE = "active"
CONFIRMED = "confirmed"
ABORTED = "aborted"

HEADER = "Multiple pull requests found. Select one:"
FOOTER = "Press 'q' to quit, 'enter' to select."


class SelectorEvent(Enum):
    DOWN = "down"
    UP = "up"
    CONFIRM = "confirm"
    CANCEL = "cancel"


KEY_BINDINGS: dict[str, SelectorEvent] = {
    "j": SelectorEvent.DOWN,
    "down": SelectorEvent.DOWN,
    "k": SelectorEvent.UP,
    "up": SelectorEvent.UP,
    "enter": SelectorEvent.CONFIRM,
    "q": SelectorEvent.CANCEL,
    "escape": SelectorEvent.CANCEL,
    "ctrl+c": SelectorEvent.CANCEL,
}


@dataclass
class SelectionState:
    """Cursor and outcome of one selection prompt."""
    choices: tuple[str, ...]
    cursor: int = 0
    selected: int = -1
    status: str = ACTIVE

    @property
    def done(self) -> bool:
        return self.status != ACTIVE

    def apply(self, event: SelectorEvent) -> None:
        """Advance the state machine. Terminal states ignore further events."""
        if self.done:
            return
        if event is SelectorEvent.DOWN:
            if self.cursor < len(self.choices) - 1:
                self.cursor += 1
        elif event is SelectorEvent.UP:
            if self.cursor > 0:
                self.cursor -= 1
        elif event is SelectorEvent.CONFIRM:
            self.selected = self.cursor
            self.status = CONFIRMED
        elif event is SelectorEvent.CANCEL:
            self.status = ABORTED

    def press(self, key: str) -> None:
        """Apply the event bound to a key name; unbound keys are ignored."""
        event = KEY_BINDINGS.get(key)
        if event is not None:
            self.apply(event)


def render_selection(state: SelectionState, label: str = "") -> list[str]:
    """Frame for the current state: header, one row per choice, footer hint."""
    prefix = f"{label} " if label else ""
    lines = [HEADER, ""]
    for i, choice in enumerate(state.choices):
        cursor = ">" if state.cursor == i else " "
        lines.append(f"{cursor} {prefix}#{choice}")
    lines.extend(["", FOOTER])
    return lines


class SelectorDriver(Protocol):
    """Feeds events into a SelectionState until it is done."""

    def run(self, state: SelectionState, label: str = "") -> None:
        ...


def drive(state: SelectionState, events: Iterable[SelectorEvent]) -> SelectionState:
    """Apply scripted events; running out of events cancels the prompt."""
    for event in events:
        state.apply(event)
        if state.done:
            return state
    state.apply(SelectorEvent.CANCEL)
    return state


def select(candidates: list[str], driver: SelectorDriver | None = None, label: str = "") -> str:
    """
    Pick one pull request id out of `candidates`.

    A single candidate is returned without prompting. Otherwise `driver`
    (the textual terminal UI by default) blocks until the user confirms or
    cancels; cancelling raises ProcessAbort, which exits with status 0.
    """
    if not candidates:
        raise NotFoundError("no pull request to select from")
    if len(candidates) == 1:
        return candidates[0]

    if driver is None:
        from .tui import TextualSelectorDriver
        driver = TextualSelectorDriver()

    state = SelectionState(choices=tuple(candidates))
    driver.run(state, label)
    if not state.done:
        state.apply(SelectorEvent.CANCEL)

    if state.status == ABORTED:
        logger.debug("Pull request selection cancelled")
        raise ProcessAbort()
    return candidates[state.selected]
