"""Merges the requirements of nested go.mod files into one listing."""

from __future__ import annotations

import argparse
import os
from typing import Iterator


def _walk(root: str, rel: str = "") -> Iterator[tuple[str, str]]:
    directory = os.path.join(root, rel) if rel else root
    try:
        names = sorted(os.listdir(directory))
    except OSError:
        return
    for name in names:
        path = f"{rel}/{name}" if rel else name
        full = os.path.join(root, path)
        yield path, full
        if os.path.isdir(full) and not os.path.islink(full):
            yield from _walk(root, path)


def get_gomods(root: str = ".") -> list[str]:
    """Return go.mod paths under ``root``, relative to it, in lexical walk order."""
    return [
        path
        for path, full in _walk(root)
        if "/vendor/" not in path and "go.mod" in path and os.path.isfile(full)
    ]


def _scan_lines(text: str) -> list[str]:
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def consolidate(root: str = ".") -> str:
    """Collect the nested go.mod files into one text and delete them.

    The go.mod at ``root`` itself is left alone. ``module`` and ``go``
    directives are dropped; every non-empty file gets a comment header.
    """
    parts = []
    for name in get_gomods(root):
        if "/" not in name:
            continue
        full = os.path.join(root, name)
        with open(full, encoding="utf-8") as f:
            text = f.read()
        kept = "".join(
            line + "\n"
            for line in _scan_lines(text)
            if not line.startswith(("go ", "module "))
        )
        if kept:
            parts.append(f"// {name}\n{kept}\n")
        os.remove(full)
    return "".join(parts)


def main(argv=None) -> int:
    """Print the consolidated requirements of nested go.mod files."""
    parser = argparse.ArgumentParser(
        prog="consolidate-gomods",
        description="Merge nested go.mod files into one listing, removing them.",
    )
    parser.add_argument("root", nargs="?", default=".", help="repository root")
    args = parser.parse_args(argv)
    print(consolidate(args.root))
    return 0