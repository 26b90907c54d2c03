"""
State of Decay dialect.

Grammar version 2 with loops and keyword arguments. Besides the shared
file operations it can edit INI settings; edits are queued on the context
during the run and only written once the run has succeeded, so a failed or
cancelled install leaves the game's configuration untouched.
"""

import configparser
import logging
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Dict, List, Mapping

from ..runtime.context import InterpreterContext
from ..runtime.interpreter import ExecutionResult
from ..runtime.proxy import Handler
from . import Dialect, load_bundled_definition
from .filesystem import FileSystemFunctionProxy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IniEdit:
    """One queued INI change, relative to the target root."""
    path: PurePosixPath
    section: str
    key: str
    value: str


@dataclass
class StateOfDecayContext(InterpreterContext):
    """Context with a queue of INI edits applied after a successful run."""
    pending_ini_edits: List[IniEdit] = field(default_factory=list)


class StateOfDecayFunctionProxy(FileSystemFunctionProxy):
    """Host functions for State of Decay."""

    def handlers(self) -> Mapping[str, Handler]:
        return {
            "FileExists": self.file_exists,
            "Copy": self.copy,
            "CreateDirectory": self.create_directory,
            "DeleteFile": self.delete_file,
            "SetDirectory": self.set_directory,
            "EditIni": self.edit_ini,
            "Confirm": self.confirm,
            "Choose": self.choose,
            "GameVersion": self.get_game_version,
            "CompareVersion": self.compare_version,
            "Warn": self.warn,
            "Fail": self.fail,
        }

    def edit_ini(self, ctx: StateOfDecayContext, file: str, section: str,
                 key: str, value) -> None:
        path = self.target_relative(file)
        text = ("true" if value else "false") if isinstance(value, bool) else str(value)
        ctx.pending_ini_edits.append(IniEdit(path, section, key, text))


def apply_ini_edits(proxy: StateOfDecayFunctionProxy, context: StateOfDecayContext,
                    result: ExecutionResult) -> None:
    """Write queued INI edits if the run succeeded; discard them otherwise."""
    edits = context.pending_ini_edits
    if not edits:
        return
    if not result.succeeded:
        logger.info("discarding %d INI edit(s) after %s run", len(edits), result.status.value)
        edits.clear()
        return

    by_file: Dict[PurePosixPath, List[IniEdit]] = {}
    for edit in edits:
        by_file.setdefault(edit.path, []).append(edit)

    for relative, file_edits in by_file.items():
        path = proxy.target_root.joinpath(*relative.parts)
        parser = configparser.ConfigParser(interpolation=None)
        parser.optionxform = str  # keep key case
        try:
            if path.exists():
                parser.read(path, encoding="utf-8")
            for edit in file_edits:
                if not parser.has_section(edit.section):
                    parser.add_section(edit.section)
                parser.set(edit.section, edit.key, edit.value)
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                parser.write(f)
        except (OSError, ValueError, configparser.Error) as exc:
            logger.warning("could not apply INI edits to %s: %s", relative, exc)
            result.warnings.append(context.add_warning(
                f"EditIni(): could not update {relative}: {exc}", code="W501"
            ))
            continue
        logger.debug("applied %d INI edit(s) to %s", len(file_edits), relative)
    edits.clear()


def create_dialect() -> Dialect:
    """Build the State of Decay dialect from its bundled definition."""
    return Dialect(
        definition=load_bundled_definition("stateofdecay"),
        proxy_factory=StateOfDecayFunctionProxy,
        context_factory=StateOfDecayContext,
        finalize=apply_ini_edits,
    )
