"""Branch naming policy: conversation id -> branch name and workspace path."""

import hashlib
import re
from dataclasses import dataclass
from pathlib import Path

DEFAULT_BASE_DIR = Path("/tmp/docs-agent")
DEFAULT_BRANCH_PREFIX = "docs-agent/"

# Directory name of the shared read-only checkout. Slugs always start with an
# alphanumeric character, so no conversation can map onto it.
MAIN_CHECKOUT_NAME = "_main"

MAX_SLUG_LENGTH = 64
_HASH_LENGTH = 16

_VERBATIM_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")
_HASHED_SUFFIX_PATTERN = re.compile(rf"-[0-9a-f]{{{_HASH_LENGTH}}}$")
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]+")


def _digest(conversation_id: str) -> str:
    return hashlib.sha256(conversation_id.encode("utf-8")).hexdigest()[:_HASH_LENGTH]


def conversation_slug(conversation_id: str) -> str:
    """
    Map a conversation id to a string safe for both git refs and directory names.

    Simple ids are kept verbatim. Anything else (chat transport ids carry
    ``:``, ``@``, ``;`` ...) is squashed to safe characters and suffixed with
    a digest of the full id, so two different ids never share a slug. Verbatim
    ids can never end in ``-<digest>``, which keeps the two forms apart.
    """
    if not conversation_id:
        raise ValueError("conversation_id must be a non-empty string")

    if (
        len(conversation_id) <= MAX_SLUG_LENGTH
        and _VERBATIM_PATTERN.match(conversation_id)
        and not _HASHED_SUFFIX_PATTERN.search(conversation_id)
    ):
        return conversation_id

    readable = _UNSAFE_CHARS.sub("-", conversation_id).strip("-_")
    readable = readable[: MAX_SLUG_LENGTH - _HASH_LENGTH - 1].rstrip("-_")
    if not readable or not readable[0].isalnum():
        readable = "conversation"
    return f"{readable}-{_digest(conversation_id)}"


@dataclass(frozen=True)
class BranchNamingPolicy:
    """Deterministic layout of conversation workspaces under one base directory."""

    base_dir: Path = DEFAULT_BASE_DIR
    prefix: str = DEFAULT_BRANCH_PREFIX

    def branch_name(self, conversation_id: str) -> str:
        return f"{self.prefix}{conversation_slug(conversation_id)}"

    def workspace_path(self, conversation_id: str) -> Path:
        return Path(self.base_dir) / conversation_slug(conversation_id)

    def main_checkout_path(self) -> Path:
        return Path(self.base_dir) / MAIN_CHECKOUT_NAME
