"""Updates the dependencies of every nested Go module."""

from __future__ import annotations

import argparse
import os
import subprocess
from concurrent.futures import ThreadPoolExecutor

TARGET_VERSION = "v1.2.0-rc.11"
GO_VERSION = "1.19"
_WORKERS = 5


def get_gomods(root: str = ".") -> list[str]:
    """Return every go.mod path under ``root``, relative to it."""
    found = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        rel_dir = os.path.relpath(dirpath, root).replace(os.sep, "/")
        for name in sorted(filenames):
            rel = name if rel_dir == "." else f"{rel_dir}/{name}"
            if "go.mod" in rel:
                found.append(rel)
    return found


def _module_path(gomod: str) -> str:
    with open(gomod, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line.startswith("module "):
                return line[len("module "):].strip().strip('"')
    raise RuntimeError(f"{gomod} has no module directive")


def _parent_module(directory: str) -> str:
    current = os.path.dirname(os.path.abspath(directory))
    while True:
        candidate = os.path.join(current, "go.mod")
        if os.path.isfile(candidate):
            return _module_path(candidate)
        parent = os.path.dirname(current)
        if parent == current:
            raise RuntimeError(f"no enclosing go.mod found above {directory}")
        current = parent


def update_module(gomod_path: str) -> None:
    """Upgrade the dependencies of the module at ``gomod_path``.

    The enclosing module (found in a parent directory) is pinned to
    TARGET_VERSION, then the module is tidied.
    """
    directory = os.path.dirname(gomod_path) or "."
    print("update of", gomod_path, "@", directory)

    library = _parent_module(directory)
    subprocess.run(["go", "get", "-u", "./..."], cwd=directory, check=True)
    try:
        subprocess.run(
            ["go", "get", "-u", f"{library}@{TARGET_VERSION}"], cwd=directory, check=True
        )
    except (subprocess.CalledProcessError, OSError) as err:
        raise RuntimeError(f"failed to update {gomod_path}: {err}") from err
    subprocess.run(["go", "mod", "tidy", f"-go={GO_VERSION}"], cwd=directory, check=True)


def main(argv=None) -> int:
    """Update every nested module under the root, five at a time."""
    parser = argparse.ArgumentParser(
        prog="update-examples-deps",
        description="Upgrade dependencies of nested Go modules.",
    )
    parser.add_argument("root", nargs="?", default=".", help="repository root")
    args = parser.parse_args(argv)

    paths = [os.path.join(args.root, rel) for rel in get_gomods(args.root) if "/" in rel]
    with ThreadPoolExecutor(max_workers=_WORKERS) as pool:
        list(pool.map(update_module, paths))
    return 0