"""Pytest bootstrap: puts local service src directories on `sys.path`.

Lets the tests run from a checkout without installing the package. Each
`services/*/src` directory is prepended so `chat_relay` resolves to the
working tree.
"""

from __future__ import annotations

from pathlib import Path
import sys
from typing import Iterable


def _extend_sys_path(paths: Iterable[Path]) -> None:
    """Prepend directories to `sys.path`, skipping ones already present.

    Args:
        paths: Directories to add.
    """

    for p in paths:
        str_path = str(p)
        if str_path not in sys.path:
            sys.path.insert(0, str_path)


def _collect_src_paths(root: Path) -> list[Path]:
    """Collect local src directories.

    Args:
        root: Repository root.

    Returns:
        Existing src directories of the services.
    """

    return sorted(p for p in (root / "services").glob("*/src") if p.is_dir())


_extend_sys_path(_collect_src_paths(Path(__file__).parent.resolve()))
