"""
ui - Terminal helpers shared by every git-toolkit command.
"""

from gittoolkit.errors import UserCancelled


# ANSI color codes
class Colors:
    RESET = '\033[0m'
    BOLD = '\033[1m'
    DIM = '\033[2m'

    RED = '\033[31m'
    GREEN = '\033[32m'
    YELLOW = '\033[33m'
    MAGENTA = '\033[35m'
    CYAN = '\033[36m'

    BRIGHT_GREEN = '\033[92m'


def safe_input(prompt: str = "") -> str:
    """
    Drop-in replacement for input() that raises UserCancelled on Ctrl+C
    instead of letting KeyboardInterrupt propagate up as a traceback.
    """
    try:
        return input(prompt)
    except (KeyboardInterrupt, EOFError):
        print()
        raise UserCancelled()


def confirm_action(prompt: str) -> bool:
    """Ask a y/N question. Anything but y/yes is a no."""
    response = safe_input(f"{Colors.YELLOW}{prompt} (y/N):{Colors.RESET} ").strip().lower()
    return response in ("y", "yes")


def header(title: str):
    print(f"\n{Colors.BOLD}{'=' * 60}{Colors.RESET}")
    print(f"{Colors.BOLD}{title}{Colors.RESET}")
    print(f"{Colors.BOLD}{'=' * 60}{Colors.RESET}")


def success(message: str):
    print(f"{Colors.GREEN}✓ {message}{Colors.RESET}")


def error(message: str):
    print(f"{Colors.RED}✗ {message}{Colors.RESET}")


def warn(message: str):
    print(f"{Colors.YELLOW}⚠️  {message}{Colors.RESET}")


def hint(message: str):
    print(f"{Colors.DIM}   {message}{Colors.RESET}")


def plural(count: int, word: str) -> str:
    if count == 1:
        return f"{count} {word}"
    suffix = "es" if word.endswith(("s", "x", "ch", "sh")) else "s"
    return f"{count} {word}{suffix}"
