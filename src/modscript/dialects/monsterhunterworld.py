"""
Monster Hunter: World dialect.

Grammar version 1 (no loops, no keyword arguments) and case-sensitive
variable names. Mods install into the game's `nativePC` directory, and a
failed copy only warns.
"""

from pathlib import Path
from typing import Mapping, Union

from ..runtime.catalog import FunctionCatalog
from ..runtime.proxy import Handler
from . import Dialect, load_bundled_definition
from .filesystem import FileSystemFunctionProxy

INSTALL_DIRECTORY = "nativePC"


class MonsterHunterWorldFunctionProxy(FileSystemFunctionProxy):
    """Host functions for Monster Hunter: World."""

    def __init__(self, catalog: FunctionCatalog, source_root: Union[str, Path],
                 target_root: Union[str, Path], game_version: str = "0"):
        super().__init__(catalog, source_root, target_root, game_version,
                         install_prefix=INSTALL_DIRECTORY)

    def handlers(self) -> Mapping[str, Handler]:
        return {
            "FileExists": self.file_exists,
            "Copy": self.copy,
            "CreateDirectory": self.create_directory,
            "Confirm": self.confirm,
            "Warn": self.warn,
            "Fail": self.fail,
        }


def create_dialect() -> Dialect:
    """Build the Monster Hunter: World dialect from its bundled definition."""
    return Dialect(
        definition=load_bundled_definition("monsterhunterworld"),
        proxy_factory=MonsterHunterWorldFunctionProxy,
    )
