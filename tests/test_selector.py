from __future__ import annotations

import asyncio

import pytest

from prtrace.errors import NotFoundError, ProcessAbort
from prtrace.selector import (
    ABORTED,
    ACTIVE,
    CONFIRMED,
    SelectionState,
    SelectorEvent,
    drive,
    render_selection,
    select,
)
from prtrace.tui import SelectorApp

DOWN, UP, CONFIRM, CANCEL = (
    SelectorEvent.DOWN,
    SelectorEvent.UP,
    SelectorEvent.CONFIRM,
    SelectorEvent.CANCEL,
)


class ScriptedDriver:
    def __init__(self, events):
        self.events = list(events)
        self.calls = 0
        self.frames = []

    def run(self, state, label=""):
        self.calls += 1
        self.frames.append(render_selection(state, label))
        drive(state, self.events)


class IdleDriver:
    """Returns without touching the state."""
    def run(self, state, label=""):
        pass


def test_initial_state():
    state = SelectionState(choices=("3", "2", "1"))
    assert state.cursor == 0
    assert state.selected == -1
    assert state.status == ACTIVE
    assert not state.done


def test_cursor_moves_within_bounds():
    state = SelectionState(choices=("3", "2", "1"))

    state.apply(UP)
    assert state.cursor == 0

    state.apply(DOWN)
    state.apply(DOWN)
    state.apply(DOWN)
    assert state.cursor == 2

    state.apply(UP)
    assert state.cursor == 1
    assert state.status == ACTIVE


def test_confirm_selects_cursor():
    state = SelectionState(choices=("3", "2", "1"))
    state.apply(DOWN)
    state.apply(CONFIRM)

    assert state.status == CONFIRMED
    assert state.selected == 1


def test_cancel_keeps_selection_unset():
    state = SelectionState(choices=("3", "2"))
    state.apply(DOWN)
    state.apply(CANCEL)

    assert state.status == ABORTED
    assert state.selected == -1


def test_terminal_state_ignores_events():
    state = SelectionState(choices=("3", "2"))
    state.apply(CONFIRM)
    state.apply(DOWN)
    state.apply(CANCEL)

    assert state.status == CONFIRMED
    assert state.cursor == 0
    assert state.selected == 0


def test_press_maps_keys():
    state = SelectionState(choices=("3", "2", "1"))
    state.press("j")
    state.press("down")
    state.press("k")
    state.press("x")
    assert state.cursor == 1

    state.press("enter")
    assert state.selected == 1


@pytest.mark.parametrize("key", ["q", "escape", "ctrl+c"])
def test_quit_keys_abort(key):
    state = SelectionState(choices=("3", "2"))
    state.press(key)
    assert state.status == ABORTED


def test_render_marks_cursor_row():
    state = SelectionState(choices=("12", "11"), cursor=1)

    assert render_selection(state, "PROJ/repo") == [
        "Multiple pull requests found. Select one:",
        "",
        "  PROJ/repo #12",
        "> PROJ/repo #11",
        "",
        "Press 'q' to quit, 'enter' to select.",
    ]


def test_render_is_pure():
    state = SelectionState(choices=("2", "1"))
    render_selection(state)
    assert state == SelectionState(choices=("2", "1"))


def test_drive_cancels_when_events_run_out():
    state = drive(SelectionState(choices=("2", "1")), [DOWN])
    assert state.status == ABORTED


def test_select_single_candidate_never_prompts():
    driver = ScriptedDriver([CANCEL])

    assert select(["42"], driver=driver) == "42"
    assert driver.calls == 0


def test_select_empty_candidates():
    with pytest.raises(NotFoundError):
        select([], driver=ScriptedDriver([]))


def test_select_returns_confirmed_choice():
    driver = ScriptedDriver([DOWN, DOWN, CONFIRM])

    assert select(["9", "31", "2"], driver=driver, label="PROJ/repo") == "2"
    assert driver.calls == 1
    assert driver.frames[0][2] == "> PROJ/repo #9"


def test_select_abort_exits_successfully():
    with pytest.raises(ProcessAbort) as exc_info:
        select(["2", "1"], driver=ScriptedDriver([DOWN, CANCEL]))

    assert isinstance(exc_info.value, SystemExit)
    assert exc_info.value.code == 0


def test_select_driver_returning_early_counts_as_abort():
    with pytest.raises(ProcessAbort):
        select(["2", "1"], driver=IdleDriver())


def test_selector_app_confirms_with_keys():
    state = SelectionState(choices=("3", "2", "1"))

    async def scenario():
        app = SelectorApp(state, "PROJ/repo")
        async with app.run_test() as pilot:
            await pilot.press("j", "j", "k", "enter")

    asyncio.run(scenario())

    assert state.status == CONFIRMED
    assert state.selected == 1


def test_selector_app_quits_with_q():
    state = SelectionState(choices=("3", "2"))

    async def scenario():
        app = SelectorApp(state)
        async with app.run_test() as pilot:
            await pilot.press("down", "q")

    asyncio.run(scenario())

    assert state.status == ABORTED
    assert state.selected == -1
