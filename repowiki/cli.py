"""CLI entrypoints for repowiki commands."""

from __future__ import annotations

import argparse
import sys

from . import __version__
from .errors import LockBusyError, RepoWikiError
from .logging import configure_logging, configure_worker_logging, get_logger
from .orchestrator import Orchestrator, StatusReport, UpdateOutcome


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_path_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        default=None,
        help="Path inside the repository (defaults to current directory).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repowiki",
        description="Keep a generated repository wiki in sync with git commits.",
    )
    parser.add_argument("--version", action="version", version=f"repowiki {__version__}")
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    enable_parser = subparsers.add_parser(
        "enable",
        help="Enable repowiki and install the post-commit hook.",
    )
    _add_verbose_option(enable_parser, suppress_default=True)
    _add_path_argument(enable_parser)

    disable_parser = subparsers.add_parser(
        "disable",
        help="Remove the post-commit hook; wiki files are preserved.",
    )
    _add_verbose_option(disable_parser, suppress_default=True)
    _add_path_argument(disable_parser)

    status_parser = subparsers.add_parser("status", help="Show repowiki state for a repository.")
    _add_verbose_option(status_parser, suppress_default=True)
    _add_path_argument(status_parser)

    generate_parser = subparsers.add_parser(
        "generate",
        help="Run a full wiki generation (may take several minutes).",
    )
    _add_verbose_option(generate_parser, suppress_default=True)
    _add_path_argument(generate_parser)

    update_parser = subparsers.add_parser(
        "update",
        help="Update the wiki for commits since the last processed one.",
    )
    _add_verbose_option(update_parser, suppress_default=True)
    _add_path_argument(update_parser)
    update_parser.add_argument(
        "--commit",
        default=None,
        help="Specific commit hash to process (defaults to HEAD).",
    )
    update_parser.add_argument(
        "--from-hook",
        action="store_true",
        help=argparse.SUPPRESS,
    )

    hooks_parser = subparsers.add_parser(
        "hooks",
        help="Entry point invoked by installed git hooks.",
    )
    _add_verbose_option(hooks_parser, suppress_default=True)
    hooks_parser.add_argument("hook_name", help="Name of the git hook that fired.")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP service.")
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def main(argv: list[str] | None = None, orchestrator: Orchestrator | None = None) -> None:
    """CLI entrypoint for repowiki commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    verbose = bool(args.verbose)
    orchestrator = orchestrator or Orchestrator()

    if args.command == "hooks":
        # No console output; the hook discards it anyway.
        configure_logging(verbose=verbose, console=False)
        if args.hook_name == "post-commit":
            orchestrator.run_hook()
        return

    if args.command == "update" and args.from_hook:
        _run_update_from_hook(orchestrator, args, verbose=verbose)
        return

    configure_logging(verbose=verbose)

    try:
        if args.command == "enable":
            root = orchestrator.enable(args.path)
            print(f"repowiki enabled in {root}")
            print("Run 'repowiki generate' to build the initial wiki.")
        elif args.command == "disable":
            root = orchestrator.disable(args.path)
            print(f"repowiki disabled in {root}")
            print("Wiki files are preserved.")
        elif args.command == "status":
            _print_status(orchestrator.status(args.path))
        elif args.command == "generate":
            print("Starting full wiki generation... (this may take several minutes)")
            orchestrator.run_generate(args.path)
            print("Wiki generation complete.")
        elif args.command == "update":
            outcome = orchestrator.run_update(args.path, commit=args.commit)
            _print_update(outcome)
        elif args.command == "serve":
            from .service import run_service

            run_service(host=args.host, port=args.port)
        else:  # pragma: no cover - argparse enforces choices
            parser.exit(1, "Unknown command\n")
    except LockBusyError as exc:
        parser.exit(1, f"Error: {exc}\n")
    except RepoWikiError as exc:
        parser.exit(1, f"Error: {exc}\nRun with --verbose for more details.\n")


def _run_update_from_hook(
    orchestrator: Orchestrator, args: argparse.Namespace, *, verbose: bool
) -> None:
    """Background worker path: every failure is logged, none is surfaced."""
    logger = get_logger("cli")
    try:
        root = orchestrator.resolve_root(args.path)
    except RepoWikiError:
        return
    configure_worker_logging(root, verbose=verbose)
    try:
        outcome = orchestrator.run_update(root, commit=args.commit)
    except LockBusyError as exc:
        logger.info("Skipping hook-triggered update: %s", exc)
    except Exception as exc:  # noqa: BLE001
        logger.error("Hook-triggered update failed: %s", exc)
        logger.debug("Traceback", exc_info=True)
    else:
        logger.info(
            "Hook-triggered update finished: %d cycle(s), baseline=%s",
            len(outcome.cycles),
            outcome.baseline or "-",
        )


def _print_update(outcome: UpdateOutcome) -> None:
    if not outcome.changed:
        print("No relevant file changes detected.")
        return
    for cycle in outcome.cycles:
        if not cycle.ran_engine:
            continue
        count = len(cycle.plan.files) if cycle.plan else 0
        if cycle.status == "full":
            print(f"Ran full wiki generation ({count} files changed) for {cycle.target[:8]}")
        else:
            print(f"Updated wiki for {count} changed files at {cycle.target[:8]}")
    if outcome.catch_up_exhausted:
        print("More commits arrived during the update; they will be processed on the next commit.")
    print("Wiki update complete.")


def _print_status(report: StatusReport) -> None:
    print(f"repowiki v{__version__}\n")
    if not report.configured:
        print("  Status:       not configured")
        print("  Run 'repowiki enable' to get started.")
        return
    print(f"  Status:       {'enabled' if report.enabled else 'disabled'}")
    if report.hook_installed:
        print("  Hook:         installed (.git/hooks/post-commit)")
    else:
        print("  Hook:         not installed")
    print(f"  Engine:       {report.engine_path or 'not found'}")
    if report.page_count:
        print(f"  Wiki path:    {report.wiki_path}/ ({report.page_count} pages)")
    else:
        print(f"  Wiki path:    {report.wiki_path}/ (not generated yet)")
    print(f"  Model:        {report.model}")
    print(f"  Auto-commit:  {report.auto_commit}")
    print(f"  Max turns:    {report.max_turns}")
    if report.last_run:
        print(f"  Last run:     {report.last_run}")
    if report.last_commit_hash:
        print(f"  Last commit:  {report.last_commit_hash}")
    if report.lock is not None:
        print(
            f"  Lock:         held by pid {report.lock.pid} since "
            f"{report.lock.created_at.isoformat()}"
        )


if __name__ == "__main__":
    main(sys.argv[1:])
