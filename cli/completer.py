"""Custom completer for the Chunkferry CLI with local path autocompletion."""

from pathlib import Path
from typing import Iterable

from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from cli.constants import COMMANDS

PATH_COMMANDS = ("upload", "status")


class ChunkferryCompleter(Completer):
    """
    Custom completer that provides:
    - Command name completion for the first token
    - Local file path completion for 'upload' and 'status' arguments
    """

    def get_completions(
        self, document: Document, complete_event
    ) -> Iterable[Completion]:
        """
        Generate completions based on cursor position and context.

        For the first token, completes command names.
        For 'upload' arguments and the single 'status' argument, completes
        paths relative to the current directory.
        """
        text = document.text_before_cursor
        tokens = text.split()

        is_typing_new_token = text.endswith(" ") or not tokens

        if not tokens or (len(tokens) == 1 and not is_typing_new_token):
            yield from self._complete_commands(tokens[0] if tokens else "")
            return

        command = tokens[0].lower()
        if command not in PATH_COMMANDS:
            return

        args = tokens[1:]
        current_word = "" if is_typing_new_token else args[-1]
        already_typed = set(args if is_typing_new_token else args[:-1])

        if command == "status" and already_typed:
            return

        yield from self._complete_paths(current_word, already_typed)

    def _complete_commands(self, partial: str) -> Iterable[Completion]:
        """Complete command names matching the partial input."""
        partial_lower = partial.lower()
        for cmd in COMMANDS:
            if cmd.startswith(partial_lower):
                yield Completion(cmd, start_position=-len(partial))

    def _complete_paths(self, partial: str, exclude: set) -> Iterable[Completion]:
        """
        Complete entries of the directory named by the partial path.

        Directories are suggested with a trailing '/' so completion can
        continue into them. Hidden entries appear only once a '.' is typed.
        """
        if "/" in partial:
            directory_part, prefix = partial.rsplit("/", 1)
            directory_part += "/"
        else:
            directory_part, prefix = "", partial

        base = Path.cwd() / Path(directory_part).expanduser()

        if not base.is_dir():
            return

        try:
            entries = sorted(base.iterdir(), key=lambda p: p.name.lower())
        except OSError:
            return

        for entry in entries:
            name = entry.name
            if name.startswith(".") and not prefix.startswith("."):
                continue
            if not name.lower().startswith(prefix.lower()):
                continue
            candidate = f"{directory_part}{name}"
            if entry.is_dir():
                candidate += "/"
            elif candidate in exclude:
                continue
            yield Completion(candidate, start_position=-len(partial))
