"""Tests for SearchSession: dispatch, reconciliation and stale-reply handling."""

from __future__ import annotations

import pytest

from toothbrush.errors import DecodeError, TransportError
from toothbrush.selection import SessionState
from toothbrush.session import SearchSession

from tests.fakes import FakeClient, Recorder, settle

pytestmark = pytest.mark.asyncio


@pytest.fixture
def client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def frames() -> Recorder:
    return Recorder()


@pytest.fixture
def session(client, frames) -> SearchSession:
    return SearchSession(client, on_render=frames)


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


async def test_exact_match_scenario(session, client):
    task = session.set_query("todo")
    await settle()
    client.answer(0, "todo", "todolist", content="- buy milk")
    await task

    snap = session.snapshot()
    assert snap.rows == ("todo", "todolist")
    assert snap.selected_name == "todo"
    assert snap.selected_index == 0
    assert snap.selected_content == "- buy milk"
    assert snap.state is SessionState.DISPLAYING


async def test_no_match_scenario(session, client):
    task = session.set_query("zzz")
    await settle()
    client.answer(0)
    await task

    snap = session.snapshot()
    assert snap.rows == ("zzz [[Create New Note]]",)
    assert snap.selected_name == "zzz"


async def test_command_prefix_skips_network(session, client, frames):
    assert session.set_query(":") is None
    assert session.set_query(":q") is None
    assert client.searches == []
    snap = session.snapshot()
    assert snap.rows == ()
    assert snap.selected_name == ""
    assert snap.state is SessionState.DISPLAYING
    assert frames.frames


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


async def test_dispatch_blanks_preview_immediately(session, client, frames):
    task = session.set_query("a")
    await settle()
    client.answer(0, "a", content="old preview")
    await task
    assert session.snapshot().selected_content == "old preview"

    session.set_query("ab")
    assert session.snapshot().selected_content == ""
    assert session.state is SessionState.SEARCHING
    assert frames.frames[-1].selected_content == ""
    await settle()
    client.answer(1, "ab")
    await session.wait_pending()


async def test_dispatch_captures_query_and_index(session, client):
    task = session.set_query("n")
    await settle()
    client.answer(0, "n1", "n2", "n3")
    await task

    session.move(1)
    session.move(1)
    await settle()
    assert client.searches == [("n", 0), ("n", 1), ("n", 2)]
    for n in (1, 2):
        client.answer(n, "n1", "n2", "n3")
    await session.wait_pending()
    assert session.snapshot().selected_name == "n3"


async def test_moving_past_the_end_clamps_to_list_length(session, client):
    task = session.set_query("x")
    await settle()
    client.answer(0, "x1", "x2")
    await task
    session.move(1)
    session.move(1)
    session.move(1)
    assert session.model.index == 3
    await settle()
    for n in range(1, 4):
        client.answer(n, "x1", "x2")
    await session.wait_pending()


# ---------------------------------------------------------------------------
# Stale replies
# ---------------------------------------------------------------------------


async def test_older_reply_arriving_late_is_dropped(session, client):
    first = session.set_query("t")
    second = session.set_query("to")
    await settle()
    assert client.searches == [("t", 0), ("to", 0)]

    client.answer(1, "todo", content="newest")
    await second
    client.answer(0, "tea", "tram", content="stale")
    await first

    snap = session.snapshot()
    assert snap.query == "to"
    assert snap.rows == ("todo", "to [[Create New Note]]")
    assert snap.selected_content == "newest"


async def test_older_reply_arriving_first_is_dropped(session, client):
    first = session.set_query("t")
    session.set_query("to")
    await settle()

    client.answer(0, "tea", content="stale")
    await first
    snap = session.snapshot()
    assert snap.rows == ("to [[Create New Note]]",)
    assert snap.selected_content == ""
    assert snap.state is SessionState.SEARCHING

    client.answer(1, "todo", content="fresh")
    await session.wait_pending()
    assert session.snapshot().selected_content == "fresh"


async def test_command_makes_in_flight_replies_stale(session, client):
    pending = session.set_query("q")
    session.set_query(":q")
    await settle()
    client.answer(0, "quarterly", content="stale")
    await pending
    snap = session.snapshot()
    assert snap.rows == ()
    assert snap.selected_content == ""


async def test_repeating_a_search_is_idempotent(session, client):
    task = session.set_query("todo")
    await settle()
    client.answer(0, "todo", "todolist", content="body")
    await task
    before = session.snapshot()

    task = session.search()
    await settle()
    client.answer(1, "todo", "todolist", content="body")
    await task
    assert session.snapshot() == before


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("error", [TransportError("refused"), DecodeError("bad json")])
async def test_failed_search_degrades_to_no_results(session, client, error):
    task = session.set_query("zzz")
    await settle()
    client.fail(0, error)
    await task

    snap = session.snapshot()
    assert snap.rows == ("zzz [[Create New Note]]",)
    assert snap.state is SessionState.DISPLAYING
    assert "Search failed" in snap.status


async def test_failed_stale_search_is_ignored(session, client):
    first = session.set_query("a")
    second = session.set_query("ab")
    await settle()
    client.answer(1, "ab")
    await second
    client.fail(0, TransportError("late failure"))
    await first
    assert session.snapshot().status == ""
    assert session.snapshot().rows == ("ab",)


async def test_next_keystroke_clears_status(session, client):
    task = session.set_query("a")
    await settle()
    client.fail(0, TransportError("refused"))
    await task
    session.set_query("ab")
    assert session.status == ""
    await settle()
    client.answer(1)
    await session.wait_pending()


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------


async def test_delete_blanks_selection_then_searches_again(session, client):
    task = session.set_query("todo")
    await settle()
    client.answer(0, "todo", content="body")
    await task

    session.delete_selected()
    assert session.model.selected_name == ""
    assert session.model.selected_content == ""
    await settle()
    assert client.deleted == ["todo"]
    assert client.searches[-1] == ("todo", 0)

    client.answer(1, content="")
    await session.wait_pending()
    assert session.snapshot().rows == ("todo [[Create New Note]]",)


async def test_delete_without_selection_is_noop(session, client):
    assert session.delete_selected() is None
    assert client.deleted == []


async def test_delete_failure_is_reported_and_search_still_runs(session, client):
    task = session.set_query("todo")
    await settle()
    client.answer(0, "todo")
    await task

    client.delete_error = TransportError("refused")
    session.delete_selected()
    await settle()
    assert "Delete failed" in session.status
    client.answer(1, "todo")
    await session.wait_pending()
    assert session.snapshot().selected_name == "todo"


async def test_delete_after_move_targets_highlighted_row(session, client):
    task = session.set_query("n")
    await settle()
    client.answer(0, "n1", "n2", "n3")
    await task

    session.move(1)
    assert session.model.selected_name == "n2"
    session.delete_selected()
    await settle()
    assert client.deleted == ["n2"]

    for reply in client.replies:
        if not reply.done():
            reply.set_result(client.replies[0].result())
    await session.wait_pending()


async def test_delete_after_typing_targets_highlighted_row(session, client):
    task = session.set_query("n")
    await settle()
    client.answer(0, "n1", "n2")
    await task
    session.move(1)

    session.set_query("n2")
    assert session.model.index == 1
    assert session.model.selected_name == "n2"
    session.delete_selected()
    await settle()
    assert client.deleted == ["n2"]

    for reply in client.replies:
        if not reply.done():
            reply.set_result(client.replies[0].result())
    await session.wait_pending()


async def test_create_row_is_never_deleted(session, client):
    task = session.set_query("todo")
    await settle()
    client.answer(0, "todolist")
    await task
    session.move(1)
    assert session.model.selected_name == "todo"

    assert session.delete_selected() is None
    await settle()
    assert client.deleted == []
    client.answer(1, "todolist")
    await session.wait_pending()
