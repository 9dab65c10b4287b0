"""
Search session state machine.

Every keystroke dispatches a search without waiting for the previous one,
so replies can come back out of order. Each dispatch takes a new generation
number and a reply is only applied if its generation is still the latest;
older replies are dropped when they arrive. Nothing is cancelled.

All state lives in one ``SelectionModel`` and is only written from the
event loop: synchronously by the input handlers, and by the reconciliation
step at the end of each search task. The renderer only ever sees frozen
``SessionSnapshot`` copies.
"""

import asyncio
import logging
from typing import Any, Callable, Coroutine, Optional, Set

from toothbrush.client import QueryClient, SearchResult
from toothbrush.errors import DecodeError, TransportError
from toothbrush.selection import SelectionModel, SessionSnapshot, SessionState, is_command

RenderCallback = Callable[[SessionSnapshot], None]
Spawn = Callable[[Coroutine[Any, Any, None]], "asyncio.Future[None]"]


class SearchSession:
    """Turns input events into searches and applies their replies in order."""

    def __init__(
        self,
        client: QueryClient,
        model: Optional[SelectionModel] = None,
        on_render: Optional[RenderCallback] = None,
        spawn: Optional[Spawn] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the session.

        Args:
            client: Search server client
            model: Selection state, a fresh one by default
            on_render: Called with a snapshot whenever the screen should redraw
            spawn: Schedules a coroutine on the UI event loop and returns its
                task; defaults to ``asyncio.ensure_future``
            logger: Where to log, defaults to this module's logger
        """
        self.client = client
        self.model = model or SelectionModel()
        self._on_render = on_render
        self._spawn = spawn or asyncio.ensure_future
        self.logger = logger or logging.getLogger(__name__)

        self.state = SessionState.IDLE
        self.status = ""
        self._generation = 0
        self._pending: Set["asyncio.Future[None]"] = set()

    @property
    def generation(self) -> int:
        return self._generation

    def snapshot(self) -> SessionSnapshot:
        return self.model.snapshot(self.state, self.status)

    def render(self) -> None:
        if self._on_render is not None:
            self._on_render(self.snapshot())

    def notify(self, message: str) -> None:
        """Show *message* in the status line."""
        self.status = message
        self.render()

    # --- Input operations ---

    def set_query(self, query: str) -> Optional["asyncio.Future[None]"]:
        self.status = ""
        self.model.reset(query)
        return self.search()

    def move(self, delta: int) -> Optional["asyncio.Future[None]"]:
        self.status = ""
        self.model.adjust_index(delta)
        return self.search()

    def search(self) -> Optional["asyncio.Future[None]"]:
        """
        Dispatch a search for the current query and selection.

        A query starting with ``:`` is a local command: no request is sent,
        the results are cleared and the screen redraws at once.

        Returns:
            The task running the search, or None for a command query
        """
        self._generation += 1
        generation = self._generation
        query = self.model.query
        index = self.model.index

        if is_command(query):
            self.model.clear_results()
            self.state = SessionState.DISPLAYING
            self.render()
            return None

        self.model.clear_content()
        self.state = SessionState.SEARCHING
        self.render()
        return self._track(self._run_search(generation, query, index))

    def delete_selected(self) -> Optional["asyncio.Future[None]"]:
        """
        Delete the selected note, then search again.

        The preview and selected name are blanked right away so nothing can
        act on the deleted note while the follow-up search is in flight.
        The create row names no existing note, so it is never deleted.

        Returns:
            The task running the delete, or None if no note is selected
        """
        note_name = self.model.selected_name
        if not note_name or not self.model.selection_is_match:
            return None
        self.model.selected_name = ""
        self.model.clear_content()
        self.render()
        return self._track(self._run_delete(note_name))

    async def wait_pending(self) -> None:
        """Wait for every in-flight search and delete to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # --- Tasks ---

    def _track(self, coro: Coroutine[Any, Any, None]) -> "asyncio.Future[None]":
        task = self._spawn(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    def _is_stale(self, generation: int) -> bool:
        return generation != self._generation

    async def _run_search(self, generation: int, query: str, index: int) -> None:
        try:
            result = await self.client.search(query, index)
        except (TransportError, DecodeError) as e:
            if self._is_stale(generation):
                self.logger.debug("Dropping failed stale search #%d: %s", generation, e)
                return
            self.logger.warning("Search for %r failed: %s", query, e)
            self.status = f"Search failed: {e}"
            result = SearchResult()

        if self._is_stale(generation):
            self.logger.debug(
                "Dropping stale reply #%d for %r (latest is #%d)",
                generation, query, self._generation,
            )
            return

        self.model.apply_results(
            result.matched_basenames,
            result.scores,
            result.selected_content,
            result.is_more,
        )
        self.state = SessionState.DISPLAYING
        self.render()

    async def _run_delete(self, note_name: str) -> None:
        try:
            await self.client.delete(note_name)
        except TransportError as e:
            self.logger.warning("Delete of %r failed: %s", note_name, e)
            self.status = f"Delete failed: {e}"
        else:
            self.logger.info("Deleted note %r", note_name)
        self.search()
