import os
import subprocess
from unittest import mock

import pytest

from watermill.update_examples_deps import get_gomods, main, update_module


def _write(path, text):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)


@pytest.fixture
def repo(tmp_path):
    _write(tmp_path / "go.mod", "module example.com/lib\n\ngo 1.18\n")
    _write(tmp_path / "a" / "go.mod", "module a\n")
    _write(tmp_path / "b" / "c" / "go.mod", "module bc\n")
    return tmp_path


def test_get_gomods_includes_root_and_nested(repo):
    _write(repo / "vendor" / "x" / "go.mod", "module x\n")
    assert get_gomods(str(repo)) == ["go.mod", "a/go.mod", "b/c/go.mod", "vendor/x/go.mod"]


def test_update_module_runs_go_commands(repo):
    directory = str(repo / "a")
    with mock.patch("subprocess.run") as run:
        update_module(os.path.join(directory, "go.mod"))
    assert run.call_args_list == [
        mock.call(["go", "get", "-u", "./..."], cwd=directory, check=True),
        mock.call(["go", "get", "-u", "example.com/lib@v1.2.0-rc.11"], cwd=directory, check=True),
        mock.call(["go", "mod", "tidy", "-go=1.19"], cwd=directory, check=True),
    ]


def test_update_module_wraps_library_update_failure(repo):
    failure = subprocess.CalledProcessError(1, ["go", "get"])
    with mock.patch("subprocess.run", side_effect=[None, failure, None]) as run:
        with pytest.raises(RuntimeError, match="failed to update"):
            update_module(str(repo / "a" / "go.mod"))
    assert run.call_count == 2


def test_update_module_propagates_first_failure(repo):
    failure = subprocess.CalledProcessError(1, ["go", "get"])
    with mock.patch("subprocess.run", side_effect=failure) as run:
        with pytest.raises(subprocess.CalledProcessError):
            update_module(str(repo / "a" / "go.mod"))
    assert run.call_count == 1


def test_update_module_without_enclosing_module(tmp_path):
    _write(tmp_path / "lonely" / "go.mod", "module lonely\n")
    with mock.patch("subprocess.run") as run:
        with pytest.raises(RuntimeError, match="no enclosing go.mod"):
            update_module(str(tmp_path / "lonely" / "go.mod"))
    assert run.call_count == 0


def test_main_skips_root_module(repo):
    with mock.patch("subprocess.run") as run:
        assert main([str(repo)]) == 0
    directories = {call.kwargs["cwd"] for call in run.call_args_list}
    assert directories == {str(repo / "a"), str(repo / "b" / "c")}
    assert run.call_count == 6