"""Shell command extraction from fenced code blocks."""

from __future__ import annotations

import re
import shlex
import shutil
from dataclasses import dataclass, field

from ai_coder.core.types import ExtractedCommand

SHELL_TAGS = frozenset({"bash", "sh", "shell", "zsh", "console"})
FENCE_RE = re.compile(r"^\s*(?P<fence>`{3,}|~{3,})\s*(?P<info>.*?)\s*$")
ENV_ASSIGN_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*=")
SAFE_PATH_TOKEN_RE = re.compile(r"^[A-Za-z0-9._~/-]+$")
PROMPT_MARKER = "$ "
MAX_PATH_TOKEN_LENGTH = 240
# Builtins never resolve on PATH.
SHELL_BUILTINS = frozenset({".", "alias", "cd", "export", "popd", "pushd", "set", "source", "unset"})


@dataclass
class _Block:
    fence: str
    tag: str
    lines: list[str] = field(default_factory=list)
    nested: int = 0
    poisoned: bool = False


@dataclass(frozen=True)
class FencedBlock:
    """Closed fenced block found in text."""

    tag: str
    body: str


def find_fenced_blocks(text: str) -> list[FencedBlock]:
    """Return closed, non-nested fenced blocks in order of their opening fence."""

    blocks: list[FencedBlock] = []
    current: _Block | None = None
    for line in text.splitlines():
        match = _match_fence(line)
        if current is None:
            if match is not None:
                info = match.group("info")
                current = _Block(fence=match.group("fence"), tag=info.split()[0].lower() if info else "")
            continue

        if match is None:
            current.lines.append(line)
            continue

        fence, info = match.group("fence"), match.group("info")
        if info:
            # An opening fence inside an open block: the outer block is discarded.
            current.nested += 1
            current.poisoned = True
            continue
        if current.nested:
            current.nested -= 1
            continue
        if fence[0] != current.fence[0] or len(fence) < len(current.fence):
            current.lines.append(line)
            continue
        if not current.poisoned:
            blocks.append(FencedBlock(tag=current.tag, body="\n".join(current.lines)))
        current = None

    # An unterminated block at the end of the text is dropped.
    return blocks


def _match_fence(line: str) -> re.Match[str] | None:
    match = FENCE_RE.match(line)
    # Inline code such as ```ls``` is not a fence.
    if match is not None and match.group("fence")[0] == "`" and "`" in match.group("info"):
        return None
    return match


def extract_commands(transcript: str) -> list[ExtractedCommand]:
    """Extract shell commands from ``transcript``.

    Blocks tagged with a shell language are always taken; untagged blocks are
    taken only when every command line looks like a shell command. Each
    non-blank, non-comment line becomes one command.
    """

    bodies: list[str] = []
    for block in find_fenced_blocks(transcript):
        lines = split_command_lines(block.body)
        if block.tag in SHELL_TAGS or (not block.tag and lines and all(map(looks_like_shell, lines))):
            bodies.extend(lines)
    return [ExtractedCommand(body=body, source_order=index) for index, body in enumerate(bodies)]


def split_command_lines(body: str) -> list[str]:
    """Split a block body into command lines.

    Backslash continuations are joined, a leading ``$ `` prompt marker is
    stripped, and blank or comment-only lines are dropped.
    """

    commands: list[str] = []
    pending = ""
    for raw in body.splitlines():
        line = raw.rstrip()
        if not pending and line.lstrip().startswith("#"):
            continue
        if pending:
            line = f"{pending} {line.strip()}"
            pending = ""
        if line.endswith("\\") and not line.endswith("\\\\"):
            pending = line[:-1].rstrip()
            continue
        stripped = line.strip()
        if stripped.startswith(PROMPT_MARKER):
            stripped = stripped[len(PROMPT_MARKER) :].strip()
        if not stripped or stripped.startswith("#"):
            continue
        commands.append(stripped)
    if pending.strip():
        commands.append(pending.strip())
    return commands


def looks_like_shell(line: str) -> bool:
    """Heuristic for untagged blocks: the command word is a builtin, a path or on ``PATH``."""

    words = _command_words(line)
    if not words:
        return False
    command = _command_word(words)
    if command is None:
        return False
    if command in SHELL_BUILTINS:
        return True
    return _is_path_like(command) or shutil.which(command) is not None


def _command_words(text: str) -> list[str]:
    try:
        return shlex.split(text)
    except ValueError:
        return []


def _command_word(words: list[str]) -> str | None:
    index = 0
    while index < len(words) and _is_env_assignment(words[index]):
        index += 1
    if index >= len(words):
        return None
    return words[index]


def _is_env_assignment(token: str) -> bool:
    if ENV_ASSIGN_RE.match(token) is None:
        return False
    _, value = token.split("=", 1)
    return bool(value) and "\n" not in value and "\r" not in value and "\t" not in value


def _is_path_like(token: str) -> bool:
    if len(token) > MAX_PATH_TOKEN_LENGTH:
        return False
    if "://" in token:
        return False
    if SAFE_PATH_TOKEN_RE.fullmatch(token) is None:
        return False
    return token.startswith(("./", "../", "/", "~/")) or "/" in token
