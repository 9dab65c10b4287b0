"""Key handling for the search screen."""

import asyncio
import logging
from typing import Callable, Optional

import pyperclip

from toothbrush.editor import NoteEditFlow
from toothbrush.errors import ClipboardError, EditorLaunchError
from toothbrush.selection import QUIT_COMMAND
from toothbrush.session import SearchSession, Spawn

logger = logging.getLogger(__name__)


def copy_to_clipboard(text: str) -> None:
    try:
        pyperclip.copy(text)
    except pyperclip.PyperclipException as e:
        raise ClipboardError(f"Clipboard unavailable: {e}") from e


class InputDispatcher:
    """
    Maps key events to session, edit flow and clipboard calls.

    Holds no state of its own; every handler reads the session's model and
    ends by redrawing so the highlighted row matches the model's index.
    """

    def __init__(
        self,
        session: SearchSession,
        edit_flow: NoteEditFlow,
        on_quit: Callable[[], None],
        copy: Callable[[str], None] = copy_to_clipboard,
        spawn: Optional[Spawn] = None,
    ):
        self.session = session
        self.edit_flow = edit_flow
        self._quit = on_quit
        self._copy = copy
        self._spawn = spawn or asyncio.ensure_future

    def on_text_changed(self, text: str) -> None:
        self.session.set_query(text)
        self.session.render()

    def on_down(self) -> None:
        self.session.move(1)
        self.session.render()

    def on_up(self) -> None:
        self.session.move(-1)
        self.session.render()

    def on_enter(self) -> Optional["asyncio.Future[None]"]:
        """Quit on ``:q``, otherwise open the selected note."""
        model = self.session.model
        if model.query == QUIT_COMMAND:
            logger.info("quit command")
            self._quit()
            return None
        note_name = model.selected_name or model.query
        task = self._spawn(self._open_note(note_name, model.selected_content))
        self.session.render()
        return task

    def on_ctrl_d(self) -> None:
        self._quit()

    def on_ctrl_k(self) -> None:
        self.session.delete_selected()
        self.session.render()

    def on_ctrl_x(self) -> None:
        try:
            self._copy(self.session.model.selected_content)
        except ClipboardError as e:
            logger.warning("%s", e)
            self.session.notify(str(e))
        self.session.render()

    async def _open_note(self, note_name: str, content: str) -> None:
        try:
            await self.edit_flow.open(note_name, content)
        except EditorLaunchError as e:
            logger.error("Could not open %r: %s", note_name, e)
            self.session.notify(f"Could not open note: {e}")
        self.session.render()
