"""
File-system host functions shared by the bundled dialects.

All paths a script passes in are relative. Reads resolve against the mod's
source tree (the extracted archive) through the context's directory cursor;
writes resolve against the target tree (the game installation), optionally
under a fixed install prefix. Nothing outside the two roots is reachable.
"""

import logging
import re
import shutil
from pathlib import Path, PurePosixPath
from typing import Any, List, Tuple, Union

from ..runtime.catalog import FunctionCatalog
from ..runtime.context import InterpreterContext, normalize_path
from ..runtime.proxy import FunctionFailure, FunctionProxy, PromptKind, PromptRequest

logger = logging.getLogger(__name__)


def _text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _reason(exc: Exception) -> str:
    return getattr(exc, "strerror", None) or str(exc)


def _version_key(version: str) -> Tuple[Tuple[int, Union[int, str]], ...]:
    """Sort key for dotted version strings: numeric parts compare as numbers."""
    key = []
    for part in re.split(r"[.\-_]", version.strip()):
        if part.isdigit():
            key.append((0, int(part)))
        elif part:
            key.append((1, part.casefold()))
    # 1.2 == 1.2.0
    while key and key[-1] == (0, 0):
        key.pop()
    return tuple(key)


def compare_versions(left: str, right: str) -> int:
    """Return -1, 0 or 1 as `left` is older than, equal to or newer than `right`."""
    a, b = _version_key(left), _version_key(right)
    return (a > b) - (a < b)


class FileSystemFunctionProxy(FunctionProxy):
    """
    Handlers backed by the real file system.

    Subclasses choose which of these handlers their catalog exposes by
    returning them from `handlers()`.

    Args:
        catalog: The dialect's function catalog
        source_root: Directory holding the extracted mod
        target_root: Game installation directory
        game_version: Version string reported by GameVersion()
        install_prefix: Subdirectory of the target that receives all writes
    """

    def __init__(self, catalog: FunctionCatalog, source_root: Union[str, Path],
                 target_root: Union[str, Path], game_version: str = "0",
                 install_prefix: str = ""):
        self.source_root = Path(source_root)
        self.target_root = Path(target_root)
        self.game_version = game_version
        self.install_prefix = normalize_path(install_prefix)
        self.installed: List[PurePosixPath] = []
        super().__init__(catalog)

    # --- path helpers ---

    def source_path(self, ctx: InterpreterContext, path: str) -> Path:
        """Resolve a path inside the mod's source tree."""
        try:
            relative = ctx.resolve_path(path)
        except ValueError as exc:
            raise FunctionFailure(str(exc)) from None
        return self.source_root.joinpath(*relative.parts)

    def target_relative(self, path: str) -> PurePosixPath:
        try:
            return self.install_prefix / normalize_path(path)
        except ValueError as exc:
            raise FunctionFailure(str(exc)) from None

    def target_path(self, path: str) -> Path:
        """Resolve a path inside the target tree."""
        return self.target_root.joinpath(*self.target_relative(path).parts)

    # --- handlers ---

    def file_exists(self, ctx: InterpreterContext, path: str) -> bool:
        return self.source_path(ctx, path).exists()

    def copy(self, ctx: InterpreterContext, source: str, destination: str,
             overwrite: bool = True) -> None:
        src = self.source_path(ctx, source)
        dst = self.target_path(destination)
        if not src.exists():
            raise FunctionFailure(f"source not found: {source}")
        if dst.exists() and not overwrite:
            raise FunctionFailure(f"destination exists: {destination}")
        try:
            dst.parent.mkdir(parents=True, exist_ok=True)
            if src.is_dir():
                shutil.copytree(src, dst, dirs_exist_ok=True)
            else:
                shutil.copy2(src, dst)
        except (OSError, ValueError) as exc:
            raise FunctionFailure(f"cannot copy {source} to {destination}: {_reason(exc)}") from exc
        self.installed.append(self.target_relative(destination))
        logger.debug("copied %s -> %s", src, dst)

    def create_directory(self, ctx: InterpreterContext, path: str) -> None:
        target = self.target_path(path)
        try:
            target.mkdir(parents=True, exist_ok=True)
        except (OSError, ValueError) as exc:
            raise FunctionFailure(f"cannot create {path}: {_reason(exc)}") from exc

    def delete_file(self, ctx: InterpreterContext, path: str) -> None:
        target = self.target_path(path)
        if not target.is_file():
            raise FunctionFailure(f"no such file: {path}")
        try:
            target.unlink()
        except (OSError, ValueError) as exc:
            raise FunctionFailure(f"cannot delete {path}: {_reason(exc)}") from exc

    def set_directory(self, ctx: InterpreterContext, path: str) -> None:
        if not self.source_path(ctx, path).is_dir():
            raise FunctionFailure(f"no such directory in the mod: {path}")
        ctx.change_directory(path)

    def confirm(self, ctx: InterpreterContext, message: str) -> PromptRequest:
        return PromptRequest("Confirm", PromptKind.CONFIRM, message)

    def choose(self, ctx: InterpreterContext, message: str, options: str) -> PromptRequest:
        choices = tuple(o.strip() for o in options.split("|") if o.strip())
        if not choices:
            raise FunctionFailure("no options to choose from")
        return PromptRequest("Choose", PromptKind.CHOICE, message, choices)

    def get_game_version(self, ctx: InterpreterContext) -> str:
        return self.game_version

    def compare_version(self, ctx: InterpreterContext, left: str, right: str) -> int:
        return compare_versions(left, right)

    def warn(self, ctx: InterpreterContext, message: Any) -> None:
        ctx.add_warning(_text(message))

    def fail(self, ctx: InterpreterContext, message: Any) -> None:
        raise FunctionFailure(_text(message))
