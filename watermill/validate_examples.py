"""Runs example programs and checks that they print the expected output."""

from __future__ import annotations

import argparse
import fnmatch
import os
import queue
import re
import subprocess
import threading
from dataclasses import dataclass
from typing import Iterator, Optional, Pattern

import yaml
from termcolor import colored

_CONFIG_PATTERN = ".validate_example*.yml"


@dataclass
class ExampleConfig:
    """How to run an example and what output proves it works."""

    validation_cmd: str = ""
    teardown_cmd: str = ""
    timeout: int = 0
    expected_output: str = ""

    @classmethod
    def load_from(cls, path: str) -> "ExampleConfig":
        """Read a config from a YAML file; unknown keys are ignored."""
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(f"{path}: config must be a mapping")
        return cls(
            validation_cmd=str(data.get("validation_cmd") or ""),
            teardown_cmd=str(data.get("teardown_cmd") or ""),
            timeout=int(data.get("timeout") or 0),
            expected_output=str(data.get("expected_output") or ""),
        )


def _watch_output(
    stream, pattern: Optional[Pattern[str]], expected: str, dir_name: str, results: queue.Queue
) -> None:
    try:
        for raw in stream:
            line = raw.rstrip("\r\n")
            print(f"[{colored(dir_name, 'cyan')}] > {line}")
            if pattern is not None and pattern.search(line):
                results.put(line)
                return
    except (OSError, ValueError):
        pass
    results.put(RuntimeError(f"could not find expected output: {expected}"))


def _teardown(config: ExampleConfig, example_dir: str) -> None:
    args = config.teardown_cmd.split()
    if not args:
        return
    try:
        subprocess.run(args, cwd=example_dir, check=False)
    except OSError:
        pass


def _run_validation(config: ExampleConfig, example_dir: str, dir_name: str) -> str:
    args = config.validation_cmd.split()
    if not args:
        raise RuntimeError("could not start validation, err: empty validation command")

    try:
        pattern: Optional[Pattern[str]] = re.compile(config.expected_output)
    except re.error:
        pattern = None

    print(f"running: {args}")
    try:
        proc = subprocess.Popen(
            args,
            cwd=example_dir,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors="replace",
        )
    except OSError as err:
        raise RuntimeError(f"could not start validation, err: {err}") from err

    try:
        results: queue.Queue = queue.Queue()
        threading.Thread(
            target=_watch_output,
            args=(proc.stdout, pattern, config.expected_output, dir_name, results),
            daemon=True,
        ).start()
        try:
            outcome = results.get(timeout=max(config.timeout, 0))
        except queue.Empty:
            raise RuntimeError("validation command timed out") from None
        if isinstance(outcome, Exception):
            raise outcome
        return outcome
    finally:
        try:
            proc.kill()
        except OSError as err:
            print(f"could not kill process in {dir_name}, err: {err}")
        proc.wait()


def validate(path: str) -> str:
    """Run the example described by the config at ``path``.

    Returns the output line that matched the expected output; raises
    RuntimeError when loading, starting or matching fails or time runs out.
    """
    try:
        config = ExampleConfig.load_from(path)
    except (OSError, ValueError, TypeError, yaml.YAMLError) as err:
        raise RuntimeError(f"could not load config, err: {err}") from err

    example_dir = os.path.dirname(path) or "."
    dir_name = os.path.basename(os.path.abspath(example_dir))

    print("\n\n", end="")
    print("Validating example:", dir_name)
    print("Waiting for output: ", colored(config.expected_output, "green"))

    try:
        return _run_validation(config, example_dir, dir_name)
    finally:
        _teardown(config, example_dir)


def _find_configs(root: str) -> Iterator[str]:
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for name in sorted(filenames):
            if fnmatch.fnmatchcase(name, _CONFIG_PATTERN):
                yield os.path.join(dirpath, name)


def main(argv=None) -> int:
    """Validate every example found under the given root directory."""
    parser = argparse.ArgumentParser(
        prog="validate-examples",
        description="Run examples and check their output.",
    )
    parser.add_argument("root", nargs="?", default="../../", help="directory to search for examples")
    args = parser.parse_args(argv)

    for config_path in _find_configs(args.root):
        example_dir = os.path.dirname(config_path)
        print(f"validating {example_dir}")
        try:
            validate(config_path)
        except Exception as err:
            raise RuntimeError(f"validation for {example_dir} failed, err: {err}") from err
    return 0