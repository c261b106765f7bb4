"""
Strand CLI

Thin front end over Repository: parse arguments, run one command,
print the result. Every command outputs structured JSON when --json is
passed; human-readable output is the default.

Usage:
    strand init
    strand add PATH...
    strand rm PATH...
    strand commit MESSAGE
    strand checkout REVISION
    strand checkout -- PATH...
    strand reset REVISION
    strand log [REVISION]
    strand status

Revisions: a commit hash (or unique prefix), HEAD, HEAD~n, or the tip
marker ('master' unless configured otherwise).
"""

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path

import strand as _strand_pkg

from .engine import PATH_SEPARATOR
from .errors import HeadDetached, InsufficientHistory, UnknownRevision
from .repo import Repository


def open_repo(args) -> Repository:
    return Repository.find(Path(args.path or "."))


def resolve_paths(args, paths: list[str]) -> list[str]:
    """Anchor user-supplied paths at the invocation directory, not the repository root."""
    base = Path(args.path or ".").resolve()
    return [str(base / p) for p in paths]


def format_time(ts: float) -> str:
    return datetime.fromtimestamp(ts).strftime("%Y-%m-%d %H:%M:%S")


def print_json(data):
    print(json.dumps(data, indent=2, default=str))


def get_verbosity(args) -> int:
    """Return verbosity level: 0=quiet, 1=normal, 2=verbose."""
    if getattr(args, 'json', False):
        return 1
    if getattr(args, 'verbose', False):
        return 2
    if getattr(args, 'quiet', False):
        return 0
    return 1


# ── Commands ──────────────────────────────────────────────────

def cmd_init(args):
    v = get_verbosity(args)
    path = Path(args.path or ".").resolve()
    repo = Repository.init(path, author=args.author)
    head = repo.head()

    if args.json:
        print_json({"root": str(repo.root), "head": head.hash})
    elif v == 0:
        print(head.hash)
    else:
        print("Project initialized")
        if v >= 2:
            print(f"  Root:        {repo.root}")
            print(f"  Root commit: {head.hash}")


def cmd_add(args):
    repo = open_repo(args)
    staged = repo.add(resolve_paths(args, args.paths))

    if args.json:
        print_json({"staged": staged})
    elif get_verbosity(args) > 0:
        print("Add completed successful")


def cmd_rm(args):
    repo = open_repo(args)
    deleted = repo.remove(resolve_paths(args, args.paths))

    if args.json:
        print_json({"deleted": sorted(deleted)})
    elif get_verbosity(args) > 0:
        print("Rm completed successful")


def cmd_commit(args):
    v = get_verbosity(args)
    repo = open_repo(args)
    commit = repo.commit(args.message)

    if args.json:
        print_json(commit.to_dict())
    elif v == 0:
        print(commit.hash)
    else:
        print("Files committed")
        if v >= 2:
            print(f"  Commit: {commit.hash}")
            print(f"  Parent: {commit.previous_commit}")


def cmd_checkout(args):
    v = get_verbosity(args)
    repo = open_repo(args)

    if args.paths_mode:
        paths = [t for t in args.targets if t != PATH_SEPARATOR]
        repo.checkout_paths(resolve_paths(args, paths))
        if args.json:
            print_json({"restored": paths})
        elif v > 0:
            print("Checkout completed successful")
        return

    if len(args.targets) != 1:
        raise ValueError("checkout takes one revision, or '--' followed by paths")
    head = repo.checkout(args.targets[0])

    if args.json:
        print_json({"head": head.hash, "detached": repo.is_head_detached()})
    elif v == 0:
        print(head.hash)
    else:
        print("Checkout completed successful")
        if v >= 2:
            print(f"  HEAD: {head.hash}")


def cmd_reset(args):
    v = get_verbosity(args)
    repo = open_repo(args)
    head = repo.reset(args.revision)

    if args.json:
        print_json({"head": head.hash})
    elif v == 0:
        print(head.hash)
    else:
        print("Reset successful")
        if v >= 2:
            print(f"  HEAD: {head.hash}")


def cmd_log(args):
    v = get_verbosity(args)
    repo = open_repo(args)
    commits = repo.log(args.revision)

    if args.json:
        print_json([c.to_dict() for c in commits])
    elif v == 0:
        for c in commits:
            print(c.hash)
    else:
        blocks = []
        for c in commits:
            blocks.append(
                f"Commit {c.hash}\n"
                f"Author: {c.author}\n"
                f"Date: {format_time(c.date)}\n"
                f"\n"
                f"{c.message}"
            )
        print("\n\n".join(blocks))


def cmd_status(args):
    v = get_verbosity(args)
    repo = open_repo(args)
    report = repo.status()

    if args.json:
        data = report.to_dict()
        data["clean"] = report.clean
        data["head"] = repo.head().hash
        data["storage"] = repo.store.stats()
        print_json(data)
        return
    if v == 0:
        for path in report.staged_new + report.staged_modified:
            print(f"A {path}")
        for path in report.unstaged_modified:
            print(f"M {path}")
        for path in report.unstaged_deleted:
            print(f"D {path}")
        for path in report.untracked:
            print(f"? {path}")
        return

    print(f"Current branch is '{repo.ctx.tip_name}'")
    if report.has_staged_changes:
        print("Ready to commit:")
        print()
        _print_section("New files:", report.staged_new)
        _print_section("Modified files:", report.staged_modified)
    if report.has_unstaged_changes:
        print("Changes not staged for commit:")
        print()
        _print_section("Modified files:", report.unstaged_modified)
        _print_section("Deleted files:", report.unstaged_deleted)
    if report.untracked:
        print("Untracked files:")
        print()
        _print_section(None, report.untracked)
    if report.clean:
        print("Everything up to date")


def _print_section(title: str | None, paths: list[str]):
    if not paths:
        return
    if title:
        print(f"    {title}")
    for path in paths:
        print(f"    {path}")
    print()


# ── Parser ────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="strand",
        description="Strand: single-line version control for a working directory",
    )
    parser.add_argument("--version", action="version",
                        version=f"%(prog)s {_strand_pkg.__version__}")
    parser.add_argument("--path", "-C", default=".", help="Repository path")
    parser.add_argument("--json", "-j", action="store_true", help="JSON output")

    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    verbosity.add_argument("--quiet", "-q", action="store_true", help="Quiet output")

    sub = parser.add_subparsers(dest="command", help="Available commands")

    # init
    p = sub.add_parser("init", help="Create an empty repository")
    p.add_argument("--author", default=None, help="Author recorded on commits")
    p.set_defaults(func=cmd_init)

    # add
    p = sub.add_parser("add", help="Stage files for the next commit")
    p.add_argument("paths", nargs="+", metavar="PATH")
    p.set_defaults(func=cmd_add)

    # rm
    p = sub.add_parser("rm", help="Stage deletion of files")
    p.add_argument("paths", nargs="+", metavar="PATH")
    p.set_defaults(func=cmd_rm)

    # commit
    p = sub.add_parser("commit", help="Record staged changes as a new commit")
    p.add_argument("message", help="Commit message")
    p.set_defaults(func=cmd_commit)

    # checkout
    p = sub.add_parser("checkout", help="Move HEAD to a revision, or restore files with '--'")
    p.add_argument("targets", nargs="+", metavar="REVISION | -- PATH")
    p.set_defaults(func=cmd_checkout)

    # reset
    p = sub.add_parser("reset", help="Move HEAD to a revision and abandon later commits")
    p.add_argument("revision")
    p.set_defaults(func=cmd_reset)

    # log
    p = sub.add_parser("log", help="Show history from HEAD (or REVISION) back to the root")
    p.add_argument("revision", nargs="?", default=None)
    p.set_defaults(func=cmd_log)

    # status
    p = sub.add_parser("status", help="Show staged, unstaged and untracked changes")
    p.set_defaults(func=cmd_status)

    return parser


def _error_hint(error: Exception) -> str | None:
    """Return a hint for common failures, or None."""
    if isinstance(error, HeadDetached):
        return "Hint: Use 'strand checkout master' to return to the tip."
    if isinstance(error, (UnknownRevision, InsufficientHistory)):
        return "Hint: Use 'strand log' to see available commits."
    return None


def main(argv: list[str] | None = None):
    argv = sys.argv[1:] if argv is None else argv
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    if args.command == "checkout":
        # argparse swallows '--', so look for it in the raw arguments
        args.paths_mode = PATH_SEPARATOR in argv[argv.index("checkout") + 1:]

    try:
        args.func(args)
    except Exception as e:
        if args.json:
            print_json({"error": str(e)})
        else:
            print(f"Error: {e}", file=sys.stderr)
            hint = _error_hint(e)
            if hint:
                print(f"  {hint}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
