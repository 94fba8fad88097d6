"""CLI entry point for sovereign-stream.

Terminal front-end over the same session/assembly engine the editor and
browser surfaces use.

Entry point:
    sovereign-stream models [--json]
    sovereign-stream status
    sovereign-stream ask "<prompt>" [--system S] [--no-stream] [--code]
    sovereign-stream chat
"""

import argparse
import asyncio
import json
import logging
import signal
import sys
from typing import Optional

from sovereign_stream.adapters import BridgeAdapter, OllamaAdapter, RequestPayload, StreamTransport
from sovereign_stream.config import DEFAULT_SYSTEM_PROMPT, get_default_model
from sovereign_stream.core import generate_code, probe_backend, run_request
from sovereign_stream.errors import BackendUnavailable, RequestCancelled, TransportError
from sovereign_stream.events import Cancelled, Complete, Delta, Error

logger = logging.getLogger(__name__)

EXIT_CANCELLED = 130
CLEAR_COMMAND = "/clear"


# ─────────────────────────────────────────────────────────────────────
# ARGUMENT PARSING
# ─────────────────────────────────────────────────────────────────────


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sovereign-stream",
        description="Stream responses from a local text-generation server.",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )
    parser.add_argument("--url", default=None, help="Server URL (HTTP or ws:// bridge)")
    parser.add_argument("--model", default=None, help="Model name")
    sub = parser.add_subparsers(dest="command")

    # models
    models_p = sub.add_parser("models", help="List available models")
    models_p.add_argument(
        "--json", action="store_true", dest="json_output", help="JSON output"
    )

    # status
    sub.add_parser("status", help="Check whether the backend is reachable")

    # ask
    ask_p = sub.add_parser("ask", help="Send a single prompt")
    ask_p.add_argument("prompt", help="Prompt text")
    ask_p.add_argument("--system", default=None, help="System prompt")
    ask_p.add_argument("--no-stream", action="store_true", help="Request a single JSON response")
    ask_p.add_argument("--code", action="store_true", help="Print only the first code block")
    ask_p.add_argument("--bridge", action="store_true", help="Use the daemon WebSocket bridge")

    # chat
    chat_p = sub.add_parser("chat", help="Interactive multi-turn chat")
    chat_p.add_argument("--bridge", action="store_true", help="Use the daemon WebSocket bridge")

    return parser


def _is_ws_url(url: str) -> bool:
    return url.startswith(("ws://", "wss://"))


def _make_transport(url: Optional[str], bridge: bool = False) -> StreamTransport:
    if bridge or (url and _is_ws_url(url)):
        return BridgeAdapter(ws_url=url or None)
    return OllamaAdapter(base_url=url)


# ─────────────────────────────────────────────────────────────────────
# COMMANDS
# ─────────────────────────────────────────────────────────────────────


async def _cmd_models(transport: StreamTransport, json_output: bool = False) -> int:
    """List available models. Returns exit code."""
    models = await transport.list_models()
    if json_output:
        json.dump({"models": models}, sys.stdout, indent=2)
        sys.stdout.write("\n")
    else:
        for name in models:
            print(name)
    if not models:
        print("No models found (is the server running?)", file=sys.stderr)
        return 1
    return 0


async def _cmd_status(transport: StreamTransport) -> int:
    if await transport.is_available():
        print("available")
        return 0
    print("unavailable", file=sys.stderr)
    return 1


async def _write_delta(event: Delta) -> None:
    sys.stdout.write(event.text)
    sys.stdout.flush()


async def _cmd_ask(
    transport: StreamTransport,
    prompt: str,
    model: str,
    system: Optional[str] = None,
    stream: bool = True,
    code_only: bool = False,
) -> int:
    """Single-shot request. Returns exit code."""
    payload = RequestPayload(model=model, prompt=prompt, system=system, stream=stream)

    if code_only:
        try:
            print(await generate_code(transport, payload))
        except TransportError as e:
            print(f"Error: {e.message}", file=sys.stderr)
            return 1
        except RequestCancelled:
            return EXIT_CANCELLED
        return 0

    terminal = await run_request(transport, payload, on_delta=_write_delta if stream else None)
    if isinstance(terminal, Complete):
        if not stream:
            sys.stdout.write(terminal.text)
        sys.stdout.write("\n")
        return 0
    if isinstance(terminal, Error):
        print(f"\nError: {terminal.message}", file=sys.stderr)
        return 1
    return EXIT_CANCELLED


async def _read_line(prompt: str) -> Optional[str]:
    try:
        return await asyncio.to_thread(input, prompt)
    except EOFError:
        return None


async def _cmd_chat(transport: StreamTransport, model: str) -> int:
    """Interactive chat; Ctrl-C cancels the running reply, Ctrl-D exits."""
    from sovereign_stream.session import ConversationSession

    session = ConversationSession(transport, model=model, system_prompt=DEFAULT_SYSTEM_PROMPT)
    loop = asyncio.get_running_loop()

    try:
        await _probe_or_warn(transport)
        while True:
            text = await _read_line("> ")
            if text is None:
                print()
                return 0
            text = text.strip()
            if not text:
                continue
            if text == CLEAR_COMMAND:
                session.clear()
                print("(history cleared)")
                continue

            request = await session.submit(text)
            if request is None:
                continue

            try:
                loop.add_signal_handler(signal.SIGINT, session.cancel)
            except (NotImplementedError, RuntimeError):
                pass  # No signal handlers on this platform; Ctrl-C exits instead.
            try:
                async for event in request.events():
                    if isinstance(event, Delta):
                        await _write_delta(event)
                    elif isinstance(event, Error):
                        print(f"\nError: {event.message}", file=sys.stderr)
                    elif isinstance(event, Cancelled):
                        print("\n(cancelled)")
                    else:
                        print()
            finally:
                try:
                    loop.remove_signal_handler(signal.SIGINT)
                except (NotImplementedError, RuntimeError):
                    pass
    finally:
        await session.close()


async def _probe_or_warn(transport: StreamTransport) -> None:
    try:
        await probe_backend(transport)
    except BackendUnavailable as e:
        print(f"Warning: {e}", file=sys.stderr)


# ─────────────────────────────────────────────────────────────────────
# ENTRY POINT
# ─────────────────────────────────────────────────────────────────────


def main():
    parser = _build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    bridge = getattr(args, "bridge", False)
    if bridge and args.url and not _is_ws_url(args.url):
        parser.error(f"--bridge needs a ws:// or wss:// --url, got {args.url}")

    # Logging
    level = logging.DEBUG if args.verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(name)s %(message)s", stream=sys.stderr)

    # Load env
    from dotenv import load_dotenv
    load_dotenv()

    model = args.model or get_default_model()
    transport = _make_transport(args.url, bridge=bridge)

    # Dispatch
    if args.command == "models":
        code = asyncio.run(_cmd_models(transport, json_output=args.json_output))
    elif args.command == "status":
        code = asyncio.run(_cmd_status(transport))
    elif args.command == "ask":
        code = asyncio.run(_cmd_ask(
            transport,
            prompt=args.prompt,
            model=model,
            system=args.system,
            stream=not args.no_stream,
            code_only=args.code,
        ))
    elif args.command == "chat":
        try:
            code = asyncio.run(_cmd_chat(transport, model=model))
        except KeyboardInterrupt:
            code = EXIT_CANCELLED
    else:
        parser.print_help()
        code = 1

    sys.exit(code)


if __name__ == "__main__":
    main()
