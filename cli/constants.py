"""CLI constants and configuration."""

from prompt_toolkit.styles import Style

COMMANDS = ["upload", "retry", "status", "list", "clear", "exit", "help"]

STYLE = Style.from_dict(
    {
        "prompt": "#2BB673 bold",
        "command": "#0088ff bold",
    }
)

GREEN = "\033[38;2;43;182;115m"
RESET = "\033[0m"

LOGO = f"""{GREEN}
  ___ _              _     __
 / __| |_ _  _ _ _  | |__ / _|___ _ _ _ _ _  _
| (__| ' \\ || | ' \\ | / /|  _/ -_) '_| '_| || |
 \\___|_||_\\_,_|_||_||_\\_\\|_| \\___|_| |_|  \\_, |
                                          |__/
{RESET}"""

WELCOME_TITLE = "Chunkferry CLI - Resumable Chunked Uploads"
WELCOME_HELP = "Type 'help' for commands or 'exit' to quit.\n"

PROMPT_TEXT = "chunkferry> "

HELP_TEXT = """Available commands:
  upload <path> [path ...]            Upload files (large files are sent in resumable chunks)
  retry                               Retry the last upload; chunks already on the server are skipped
  status <path>                       Show which chunks of a local file the server already holds
  list                                List files stored on the server
  clear                               Clear screen and redisplay welcome message
  help                                Show this help
  exit                                Exit REPL

Press Ctrl+C during an upload to cancel it; stored chunks are kept for 'retry'.
Examples:
  upload videos/talk.mp4
  upload notes.txt report.pdf
  status videos/talk.mp4
  retry"""
