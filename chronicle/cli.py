"""Command line interface for chronicle."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from .commit import MessageGenerator
from .config import Config, config_file_path, load_config, update_setting
from .core import CommitOrchestrator, CycleOutcome
from .exceptions import ChronicleError
from .git import find_git_repo_root
from .host import ConsoleHost
from .secrets import GROQ_KEY_NAME, FileSecretStore, mask_secret
from .stream import EventSession, StreamHost

_FAILURE_OUTCOMES = {
    CycleOutcome.FAILED,
    CycleOutcome.PUSH_FAILED,
    CycleOutcome.CONFLICTS,
    CycleOutcome.NOT_A_REPOSITORY,
    CycleOutcome.BUSY,
}


def configure_logging(debug: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def _resolve_repo(repo_path: Optional[str]) -> Path:
    base = Path(repo_path or ".").expanduser().resolve(strict=False)
    return find_git_repo_root(base) or base


def _config_loader(args: argparse.Namespace) -> Callable[[], Config]:
    overrides: Dict[str, Any] = {}
    if getattr(args, "no_push", False):
        overrides["auto_push"] = False
    if getattr(args, "no_ai", False):
        overrides["use_ai_commit_messages"] = False

    def _load() -> Config:
        return load_config(overrides=dict(overrides))

    return _load


class CLI:
    """Argument parsing and dispatch for the ``chronicle`` command."""

    def __init__(self) -> None:
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="chronicle",
            description="Commit and push editor work automatically.",
        )
        parser.add_argument(
            "--debug", action="store_true", help="Enable debug logging"
        )
        sub = parser.add_subparsers(dest="command")

        commit_now = sub.add_parser("commit-now", help="Run one commit cycle now")
        session = sub.add_parser(
            "session", help="Read editor events as JSON lines from stdin"
        )
        for p in (commit_now, session):
            p.add_argument("--repo", help="Repository path (default: cwd)")
            p.add_argument(
                "--yes",
                action="store_true",
                help="Accept drafted messages without prompting",
            )
            p.add_argument("--no-push", action="store_true", help="Skip git push")
            p.add_argument(
                "--no-ai", action="store_true", help="Use rule-based messages only"
            )

        sub.add_parser("set-key", help="Store the Groq API key")
        sub.add_parser("test-key", help="Show whether a Groq API key is stored")

        cfg = sub.add_parser("config", help="Show or change settings")
        cfg.add_argument(
            "--set",
            metavar="KEY=VALUE",
            action="append",
            default=[],
            help="Persist a setting (repeatable)",
        )
        return parser

    def run(self, args: Optional[list[str]] = None) -> int:
        try:
            parsed = self.parser.parse_args(args)
        except SystemExit as exc:
            return int(exc.code or 0)
        configure_logging(parsed.debug)
        handlers = {
            "commit-now": self._commit_now,
            "session": self._session,
            "set-key": self._set_key,
            "test-key": self._test_key,
            "config": self._config,
        }
        handler = handlers.get(parsed.command)
        if handler is None:
            self.parser.print_help()
            return 2
        try:
            return handler(parsed)
        except ChronicleError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return 1
        except KeyboardInterrupt:
            return 130

    def _commit_now(self, args: argparse.Namespace) -> int:
        host = ConsoleHost(auto_accept=args.yes)
        orchestrator = CommitOrchestrator(
            host, FileSecretStore(), config_loader=_config_loader(args)
        )
        result = orchestrator.commit_now(_resolve_repo(args.repo))
        if result.outcome is CycleOutcome.NO_CHANGES:
            host.info("Nothing to commit.")
        return 1 if result.outcome in _FAILURE_OUTCOMES else 0

    def _session(self, args: argparse.Namespace) -> int:
        host = StreamHost(sys.stdin, sys.stdout, auto_accept=args.yes)
        orchestrator = CommitOrchestrator(
            host, FileSecretStore(), config_loader=_config_loader(args)
        )
        root = _resolve_repo(args.repo) if args.repo else None
        return EventSession(orchestrator, host, root).run()

    def _set_key(self, _args: argparse.Namespace) -> int:
        host = ConsoleHost()
        generator = MessageGenerator(host, FileSecretStore())
        return 0 if generator.store_secret_from_prompt() else 1

    def _test_key(self, _args: argparse.Namespace) -> int:
        host = ConsoleHost()
        key = FileSecretStore().get(GROQ_KEY_NAME)
        if key:
            host.info(f"Groq key: {mask_secret(key)}")
            return 0
        host.warn("No Groq key found")
        return 1

    def _config(self, args: argparse.Namespace) -> int:
        for assignment in args.set:
            name, sep, value = assignment.partition("=")
            if not sep:
                print(f"Expected KEY=VALUE, got {assignment!r}", file=sys.stderr)
                return 2
            update_setting(name.strip(), value.strip())
        config = load_config()
        print(f"Config file: {config_file_path()}")
        for name, value in config.to_dict().items():
            if isinstance(value, list):
                value = ",".join(value)
            print(f"  {name} = {value}")
        return 0


def main(argv: Optional[list[str]] = None) -> int:
    return CLI().run(argv)


if __name__ == "__main__":
    sys.exit(main())
