"""
Snapshot codec.

Turns a RepositoryState into bytes and back. The format is UTF-8 JSON:

    {
      "format": 1,
      "state": {"commits": {...}, "head_hash": "...", "staging_area": {...}}
    }

``load`` validates enough of the document that a state it returns is
usable (HEAD and every parent/successor link point at known commits).
Anything else raises CodecError.
"""

import json

from .state import Commit, RepositoryState, StagingArea

FORMAT_VERSION = 1


class CodecError(ValueError):
    """Raised when bytes do not decode to a valid repository state."""


def save(state: RepositoryState) -> bytes:
    document = {"format": FORMAT_VERSION, "state": state.to_dict()}
    return json.dumps(document, indent=2, sort_keys=True).encode("utf-8")


def load(data: bytes) -> RepositoryState:
    try:
        document = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise CodecError(f"State is not valid JSON: {e}") from e

    if not isinstance(document, dict) or "state" not in document:
        raise CodecError("State document has no 'state' section")
    version = document.get("format")
    if version != FORMAT_VERSION:
        raise CodecError(f"Unsupported state format: {version!r}")

    try:
        state = RepositoryState.from_dict(document["state"])
    except (TypeError, AttributeError) as e:
        raise CodecError(f"Malformed state: {e}") from e

    _validate(state)
    return state


def _validate(state: RepositoryState):
    commits = state.commits
    if not isinstance(commits, dict) or not isinstance(state.staging_area, StagingArea):
        raise CodecError("State has malformed commits or staging area")
    if state.head_hash not in commits:
        raise CodecError(f"HEAD {state.head_hash!r} is not a known commit")
    for commit_hash, commit in commits.items():
        if not isinstance(commit, Commit):
            raise CodecError(f"Commit {commit_hash!r} is malformed")
        if commit.hash != commit_hash:
            raise CodecError(f"Commit stored under {commit_hash!r} has hash {commit.hash!r}")
        for link in (commit.previous_commit, commit.next_commit):
            if link and link not in commits:
                raise CodecError(f"Commit {commit_hash!r} links to unknown commit {link!r}")
