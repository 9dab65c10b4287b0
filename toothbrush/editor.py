"""
Open the selected note in an editor.

The note's content is written to a scratch file in the metadata directory
and handed to ``$EDITOR``, or to the platform's file opener when no editor
is configured. A terminal editor shares the screen with the UI, so the UI is
suspended while it runs; the platform opener starts a separate window and
does not suspend anything.
"""

import asyncio
import contextlib
import logging
import os
import shlex
import subprocess
import sys
from pathlib import Path
from typing import AsyncContextManager, Awaitable, Callable, List, Mapping, Optional, Sequence, Tuple

from prompt_toolkit.application import in_terminal

from toothbrush.errors import EditorLaunchError, ScratchFileError

logger = logging.getLogger(__name__)

SCRATCH_SUFFIX = ".txt"

# (open, open with editor) per platform
PLATFORM_OPENERS = {
    "darwin": (["open"], ["open", "-e"]),
    "win32": (["cmd", "/c", "start", ""], ["notepad"]),
}
DEFAULT_OPENERS = (["xdg-open"], ["gedit"])

Runner = Callable[[List[str]], None]
Launcher = Callable[[List[str]], Awaitable[None]]
Suspend = Callable[[], AsyncContextManager[None]]


def is_safe_path(base_path: Path, user_path: str) -> bool:
    """
    Validate that user path doesn't escape base directory.

    Args:
        base_path: The base directory that should contain the user path
        user_path: The user-provided path to validate

    Returns:
        True if the path is safe, False otherwise
    """
    try:
        base = base_path.resolve()
        full_path = (base / user_path).resolve()
        return base in full_path.parents
    except (ValueError, RuntimeError):
        return False


def get_editor(environ: Optional[Mapping[str, str]] = None) -> Optional[List[str]]:
    """
    Get the preferred text editor.

    Returns:
        ``$EDITOR`` split like a shell would split it, or None when unset

    Raises:
        EditorLaunchError: If ``$EDITOR`` cannot be split, e.g. an unclosed quote
    """
    environ = os.environ if environ is None else environ
    editor = environ.get("EDITOR", "").strip()
    if not editor:
        return None
    try:
        return shlex.split(editor)
    except ValueError as e:
        raise EditorLaunchError(f"Cannot parse $EDITOR {editor!r}: {e}") from e


def platform_openers(platform: str = sys.platform) -> Tuple[List[str], List[str]]:
    return PLATFORM_OPENERS.get(platform, DEFAULT_OPENERS)


def run_command(command: List[str]) -> None:
    """Run *command* attached to this terminal, raising on failure."""
    logger.info("running: %s", command)
    subprocess.run(command, check=True)


async def launch_command(command: List[str]) -> None:
    """
    Start *command* detached from this terminal and wait for it on the loop.

    Openers such as ``gedit`` or ``notepad`` only return once their window
    closes; awaiting the process keeps input and redraws going meanwhile.
    """
    logger.info("launching: %s", command)
    process = await asyncio.create_subprocess_exec(
        *command,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.DEVNULL,
        stderr=asyncio.subprocess.DEVNULL,
    )
    returncode = await process.wait()
    if returncode != 0:
        raise subprocess.CalledProcessError(returncode, command)


class NoteEditFlow:
    """Materializes a note to a scratch file and opens it."""

    def __init__(
        self,
        scratch_dir: Path,
        runner: Runner = run_command,
        launcher: Launcher = launch_command,
        suspend: Suspend = in_terminal,
        environ: Optional[Mapping[str, str]] = None,
        platform: str = sys.platform,
    ):
        self.scratch_dir = scratch_dir
        self._run = runner
        self._launch = launcher
        self._suspend = suspend
        self._environ = environ
        self._platform = platform

    def scratch_path(self, note_name: str) -> Path:
        if not note_name or not is_safe_path(self.scratch_dir, note_name + SCRATCH_SUFFIX):
            raise ScratchFileError(f"Invalid note name '{note_name}'")
        return self.scratch_dir / (note_name + SCRATCH_SUFFIX)

    def write_scratch(self, note_name: str, content: str) -> Path:
        """
        Write *content* to the scratch file for *note_name*.

        Raises:
            ScratchFileError: If the name escapes the scratch directory or
                the file cannot be written
        """
        path = self.scratch_path(note_name)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise ScratchFileError(f"Cannot write scratch file '{path}': {e}") from e
        return path

    async def open(self, note_name: str, content: str) -> Path:
        """
        Open a note for editing.

        Args:
            note_name: Name of the note, also the scratch file's stem
            content: Current note content to seed the scratch file with

        Returns:
            The scratch file that was opened

        Raises:
            EditorLaunchError: If the editor, or both platform commands, fail
        """
        path = self.write_scratch(note_name, content)

        editor = get_editor(self._environ)
        if editor is not None:
            command = editor + [str(path)]
            async with self._suspend():
                self._try_run(command)
            return path

        primary, fallback = platform_openers(self._platform)
        try:
            await self._try_launch(primary + [str(path)])
        except EditorLaunchError as e:
            logger.warning("%s; falling back to %s", e, fallback)
            await self._try_launch(fallback + [str(path)])
        return path

    def _try_run(self, command: Sequence[str]) -> None:
        try:
            self._run(list(command))
        except (OSError, subprocess.CalledProcessError) as e:
            raise EditorLaunchError(f"Error running {command[0]}: {e}") from e

    async def _try_launch(self, command: Sequence[str]) -> None:
        try:
            await self._launch(list(command))
        except (OSError, subprocess.CalledProcessError) as e:
            raise EditorLaunchError(f"Error running {command[0]}: {e}") from e


@contextlib.asynccontextmanager
async def no_suspend():
    """Stand-in for ``in_terminal`` when there is no running UI."""
    yield
