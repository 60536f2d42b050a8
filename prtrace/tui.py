"""
Textual terminal driver for the pull request selector.
"""

from __future__ import annotations

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Static

from .selector import KEY_BINDINGS, SelectionState, render_selection


class SelectorApp(App):
    """Shows the selection frame and forwards key presses to the state."""

    BINDINGS = [
        Binding(key, f"handle_key('{key}')", show=False, priority=True)
        for key in KEY_BINDINGS
    ]

    CSS = """
    Screen {
      height: auto;
    }
    #choices {
      height: auto;
    }
    """

    def __init__(self, state: SelectionState, label: str = ""):
        super().__init__()
        self.state = state
        self.label = label

    def compose(self) -> ComposeResult:
        yield Static(self._frame(), id="choices", markup=False)

    def _frame(self) -> str:
        return "\n".join(render_selection(self.state, self.label))

    def action_handle_key(self, key: str) -> None:
        self.state.press(key)
        if self.state.done:
            self.exit()
            return
        self.query_one("#choices", Static).update(self._frame())


class TextualSelectorDriver:
    """Blocks on a textual app until the user confirms or cancels."""

    def __init__(self, inline: bool = True):
        self.inline = inline

    def run(self, state: SelectionState, label: str = "") -> None:
        SelectorApp(state, label).run(inline=self.inline)
