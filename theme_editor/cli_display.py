import logging
import os
import shutil
import sys
from datetime import datetime


class TokenTracker:
    """Tracker for token usage across chat calls in this process."""

    def __init__(self):
        self.total_prompt_tokens = 0
        self.total_completion_tokens = 0
        self.call_count = 0
        self.last_model: str | None = None

    def record(self, prompt_tokens: int, completion_tokens: int, model_name: str | None = None):
        self.total_prompt_tokens += prompt_tokens
        self.total_completion_tokens += completion_tokens
        self.call_count += 1
        if model_name:
            self.last_model = model_name

    @property
    def total_tokens(self):
        return self.total_prompt_tokens + self.total_completion_tokens


token_tracker = TokenTracker()

# Package logger; handlers are attached by setup_logger() from the CLI.
log = logging.getLogger("theme_editor")


def setup_logger(log_dir: str = ".theme_editor/logs") -> logging.Logger:
    """Attach a file handler to the package logger.  All verbose output goes here."""
    os.makedirs(log_dir, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = os.path.join(log_dir, f"editor_{timestamp}.log")

    log.setLevel(logging.DEBUG)

    # File handler captures everything
    fh = logging.FileHandler(log_file, encoding="utf-8")
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(logging.Formatter(
        "%(asctime)s [%(levelname)s] %(message)s", datefmt="%H:%M:%S"
    ))
    log.addHandler(fh)
    log.propagate = False

    return log


def rule(char: str = "─") -> str:
    width = min(shutil.get_terminal_size((80, 24)).columns, 100)
    return char * width


def print_stream_fragment(text: str) -> None:
    sys.stdout.write(text)
    sys.stdout.flush()


def print_error(message: str) -> None:
    print(f"\n  \033[31m[ERROR]\033[0m {message}\n")


def print_info(message: str) -> None:
    print(f"  {message}")
