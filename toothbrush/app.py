"""
Full-screen prompt_toolkit application for toothbrush.

The screen is a search bar, the list of matches, the preview of the
selected match and a status line. Key bindings go through
``InputDispatcher``; drawing reads a fresh ``SessionSnapshot`` each frame.
"""

from typing import List, Optional, Tuple

from prompt_toolkit import Application
from prompt_toolkit.buffer import Buffer
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.layout.containers import HSplit, Window
from prompt_toolkit.layout.controls import BufferControl, FormattedTextControl
from prompt_toolkit.layout.dimension import Dimension
from prompt_toolkit.layout.layout import Layout
from prompt_toolkit.styles import Style

from toothbrush.client import QueryClient
from toothbrush.config import Settings
from toothbrush.dispatcher import InputDispatcher
from toothbrush.editor import NoteEditFlow
from toothbrush.selection import SessionSnapshot, SessionState
from toothbrush.session import SearchSession


HEADER = "Search Notes (Enter: open, Ctrl-K: delete, Ctrl-X: copy, Ctrl-D or :q: quit):"


def format_rows(snapshot: SessionSnapshot) -> List[Tuple[str, str]]:
    """
    Create formatted text for the match list.

    Returns:
        List of (style, text) tuples for display
    """
    result = []
    last = len(snapshot.rows) - 1
    for i, row in enumerate(snapshot.rows):
        if i == snapshot.selected_index:
            style = "class:selected"
        elif i == last and snapshot.has_create_entry:
            style = "class:create"
        else:
            style = ""
        result.append((style, f" {row}"))
        result.append(("", "\n"))

    if snapshot.is_more:
        result.append(("class:more", " ..."))
    elif not snapshot.rows and snapshot.state is SessionState.DISPLAYING:
        result.append(("class:more", " No notes found."))
    return result


def format_status(snapshot: SessionSnapshot) -> List[Tuple[str, str]]:
    if snapshot.status:
        return [("class:error", snapshot.status)]
    if snapshot.state is SessionState.SEARCHING:
        return [("class:status", "searching...")]
    return [("class:status", "")]


class SearchApp:
    """Main application class for the toothbrush client."""

    def __init__(self, settings: Settings, client: Optional[QueryClient] = None):
        """Wire the session, dispatcher and layout together."""
        self.settings = settings
        self.client = client or QueryClient(settings.base_url, timeout=settings.timeout)
        self.session = SearchSession(
            self.client,
            on_render=self._invalidate,
            spawn=self._spawn,
        )
        self.dispatcher = InputDispatcher(
            self.session,
            NoteEditFlow(settings.meta_dir),
            on_quit=self._exit,
            spawn=self._spawn,
        )
        self.kb = KeyBindings()
        self._setup_key_bindings()
        self.application = Application(
            layout=self._create_layout(),
            key_bindings=self.kb,
            full_screen=True,
            style=self._create_style(),
        )

    def _spawn(self, coro):
        return self.application.create_background_task(coro)

    def _invalidate(self, snapshot: SessionSnapshot) -> None:
        self.application.invalidate()

    def _exit(self) -> None:
        if self.application.is_running:
            self.application.exit()

    def _setup_key_bindings(self) -> None:
        """Set up all key bindings for the application."""
        dispatcher = self.dispatcher

        @self.kb.add("down")
        def move_down(event):
            dispatcher.on_down()

        @self.kb.add("up")
        def move_up(event):
            dispatcher.on_up()

        @self.kb.add("enter", eager=True)
        def open_selected(event):
            """Open the selected note, or quit on ':q'."""
            dispatcher.on_enter()

        @self.kb.add("c-d", eager=True)
        def quit_app(event):
            dispatcher.on_ctrl_d()

        @self.kb.add("c-k")
        def delete_selected(event):
            dispatcher.on_ctrl_k()

        @self.kb.add("c-x", eager=True)
        def copy_selected(event):
            dispatcher.on_ctrl_x()

    def _on_text_changed(self, buff: Buffer) -> None:
        self.dispatcher.on_text_changed(buff.text)

    def _create_layout(self) -> Layout:
        """Create the application layout."""
        search_buffer = Buffer(multiline=False, on_text_changed=self._on_text_changed)
        search_window = Window(
            content=BufferControl(buffer=search_buffer),
            height=1,
            style="class:search-bar",
        )

        matches_window = Window(
            content=FormattedTextControl(lambda: format_rows(self.session.snapshot())),
            height=Dimension(weight=1),
        )
        preview_window = Window(
            content=FormattedTextControl(lambda: self.session.snapshot().selected_content),
            wrap_lines=True,
            height=Dimension(weight=1),
        )
        status_window = Window(
            content=FormattedTextControl(lambda: format_status(self.session.snapshot())),
            height=1,
        )

        root_container = HSplit([
            Window(FormattedTextControl(HEADER), height=1),
            search_window,
            Window(height=1, char="─"),
            matches_window,
            Window(height=1, char="─"),
            preview_window,
            status_window,
        ])
        return Layout(root_container, focused_element=search_window)

    def _create_style(self) -> Style:
        """Create the application styling."""
        return Style.from_dict({
            "search-bar": "bg:#000000 #ffffff",
            "selected": "bg:#0055aa #ffffff bold",
            "create": "fg:#00aa00 italic",
            "more": "fg:#888888",
            "status": "fg:#888888",
            "error": "fg:#ff5555 bold",
        })

    async def run_async(self) -> None:
        """Run until the user quits, then close the server connection."""
        try:
            await self.application.run_async(pre_run=self.session.search)
        finally:
            await self.client.aclose()
