"""
CLI entry point — argument parsing and the interactive chat loop.
"""

import argparse
import sys
import threading

from .cli_display import (
    log, print_error, print_info, print_stream_fragment, rule, setup_logger, token_tracker,
)
from .config import Config
from .diff_engine import format_colored_diff
from .errors import ThemeEditorError
from .llm import PROVIDERS, create_transport
from .models import ChatMessage
from .review import review_changes
from .session import EditorSession

_HELP = """
  Commands:
    /open <file>      open a file (adds it to the prompt context)
    /attach <file>    always include a file as context
    /files [prefix]   list theme files
    /diff [file]      show pending diffs
    /review           approve or reject pending changes
    /approve <file>   approve one change (or 'all')
    /reject <file>    discard one change
    /push             push approved changes to the store
    /status           pending/approved counts and token usage
    /quit             leave
"""


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="theme-editor",
        description="Theme Editor — chat with an AI about your Shopify theme and "
                    "review its edits before they go live")
    parser.add_argument("--config", default=None,
                        help="Path to .theme_editor.yaml config file")
    parser.add_argument("--provider", choices=list(PROVIDERS), default=None,
                        help="AI provider (default: from config)")
    parser.add_argument("--model", default=None,
                        help="Model name override (default: from config)")
    parser.add_argument("--theme", default=None,
                        help="Theme id or name (default: config, then the first theme)")
    parser.add_argument("--no-tui", action="store_true",
                        help="Use console prompts instead of the Textual review screen")

    sub = parser.add_subparsers(dest="command")
    sub.add_parser("themes", help="List themes in the connected store")
    files_p = sub.add_parser("files", help="List files in the selected theme")
    files_p.add_argument("prefix", nargs="?", default="",
                         help="Only list files starting with this prefix")
    chat_p = sub.add_parser("chat", help="Start an interactive editing session")
    chat_p.add_argument("prompt", nargs="?", default=None,
                        help="Optional first message")
    return parser


def _select_theme(session: EditorSession, wanted: str | None) -> None:
    themes = session.load_themes()
    if not themes:
        raise ThemeEditorError("No themes found in this store")
    theme = session.find_theme(wanted) if wanted else None
    if wanted and theme is None:
        raise ThemeEditorError(f"Theme not found: {wanted}")
    theme = theme or themes[0]
    files = session.select_theme(theme)
    print_info(f"Theme: {theme.display_name()} — {len(files)} files")


def _stream_reply(session: EditorSession, text: str) -> ChatMessage | None:
    """Run the chat call on a worker thread so Ctrl-C can cancel it."""
    result: dict = {}
    printed = {"n": 0}

    def on_update(msg: ChatMessage) -> None:
        print_stream_fragment(msg.content[printed["n"]:])
        printed["n"] = len(msg.content)

    def worker() -> None:
        try:
            result["message"] = session.send_message(text, on_update=on_update)
        except ThemeEditorError as e:
            result["error"] = e
        except Exception as e:
            log.exception(f"Chat worker failed: {e}")
            result["error"] = e

    print(f"\n{rule()}")
    thread = threading.Thread(target=worker, daemon=True)
    thread.start()
    cancelled = False
    while thread.is_alive():
        try:
            thread.join(timeout=0.1)
        except KeyboardInterrupt:
            if not cancelled:
                cancelled = True
                session.cancel_stream()
                print("\n  (cancelling...)")
    if cancelled:
        print("\n  (cancelled)")
    print(f"\n{rule()}")

    if "error" in result:
        print_error(str(result["error"]))
        return None
    message = result.get("message")
    if message is not None and printed["n"] == 0 and message.content:
        print_error(message.content)
    if message is not None and message.file_changes:
        names = ", ".join(c.filename for c in message.file_changes)
        print_info(f"Proposed changes: {names}")
        print_info(f"{session.pending_count()} pending — /review to approve or reject")
    return message


def _show_diffs(session: EditorSession, filename: str | None) -> None:
    names = [filename] if filename else session.changes.filenames()
    for name in names:
        if name not in session.changes:
            print_error(f"No pending change for {name}")
            continue
        stats = session.get_stats(name)
        print(f"\n{rule()}\n  {name}  (+{stats.added} -{stats.removed})")
        print(format_colored_diff(session.get_context_diff(name)))


def _push(session: EditorSession) -> None:
    outcome = session.apply_approved()
    for result in outcome.results:
        mark = "✔" if result.success else "✘"
        print_info(f"{mark} {result.filename}" + (f" — {result.error}" if result.error else ""))
    print_info(outcome.summary())


def _handle_command(session: EditorSession, line: str, use_tui: bool) -> bool:
    """Dispatch a slash command.  Returns False when the loop should end."""
    cmd, _, arg = line[1:].partition(" ")
    arg = arg.strip()

    if cmd in ("quit", "exit", "q"):
        return False
    if cmd == "help":
        print(_HELP)
    elif cmd == "open":
        if session.open_file(arg) is None:
            print_error(f"Could not load {arg}")
        else:
            print_info(f"Opened {arg}")
    elif cmd == "attach":
        session.attach_file(arg)
        print_info(f"Attached {arg}")
    elif cmd == "files":
        for f in session.theme_files:
            if f.filename.startswith(arg):
                print_info(f"{f.filename}  ({f.size} bytes)")
    elif cmd == "diff":
        _show_diffs(session, arg or None)
    elif cmd == "review":
        review_changes(session, use_tui=use_tui)
    elif cmd == "approve":
        if arg == "all":
            session.changes.approve_all()
        else:
            session.approve(arg)
        print_info(f"{session.approved_count()} approved")
    elif cmd == "reject":
        session.reject(arg)
        print_info(f"{session.pending_count()} pending")
    elif cmd == "push":
        _push(session)
    elif cmd == "status":
        print_info(f"{session.pending_count()} pending, {session.approved_count()} approved; "
                   f"{token_tracker.total_tokens} tokens over {token_tracker.call_count} call(s)")
    else:
        print_error(f"Unknown command: /{cmd} (try /help)")
    return True


def _chat_loop(session: EditorSession, first_prompt: str | None, use_tui: bool) -> None:
    print(_HELP)
    pending_prompt = first_prompt
    while True:
        if pending_prompt is not None:
            line, pending_prompt = pending_prompt, None
        else:
            try:
                line = input("\n  you › ").strip()
            except (EOFError, KeyboardInterrupt):
                print()
                return
        if not line:
            continue
        try:
            if line.startswith("/"):
                if not _handle_command(session, line, use_tui):
                    return
            else:
                _stream_reply(session, line)
        except ThemeEditorError as e:
            print_error(str(e))


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1

    cfg = Config.load(args.config)
    setup_logger(cfg.LOG_DIR)
    log.info(f"Command: {args.command}")

    if not cfg.credentials.is_authenticated:
        print_error("Not authenticated. Set SHOPIFY_SHOP_DOMAIN and SHOPIFY_ACCESS_TOKEN "
                    "or add them to .theme_editor.yaml.")
        return 1

    try:
        transport = None
        if args.command == "chat":
            provider = args.provider or cfg.PROVIDER
            if not cfg.api_key_for(provider):
                print_error(f"The {provider} provider requires an API key.")
                return 1
            transport = create_transport(cfg, provider=provider, model=args.model)
        session = EditorSession.from_config(cfg, transport=transport, model=args.model)

        if args.command == "themes":
            for theme in session.load_themes():
                print_info(f"{theme.numeric_id:>14}  {theme.display_name()}")
            return 0

        _select_theme(session, args.theme or cfg.THEME)
        if args.command == "files":
            for f in session.theme_files:
                if f.filename.startswith(args.prefix):
                    print_info(f.filename)
            return 0

        _chat_loop(session, args.prompt, use_tui=not args.no_tui)
        return 0
    except ThemeEditorError as e:
        log.error(f"Fatal: {e}")
        print_error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
