"""
Tests for the go toolchain client (subprocess is mocked).
"""

import json
from unittest.mock import MagicMock, patch

import pytest

from gomodpack.errors import ModuleIdentityError, ProcessFailureError
from gomodpack.infra.go_client import GoClient, decode_json_stream

FOO = {"Path": "example.com/foo", "Main": True, "Dir": "/src/foo", "GoMod": "/src/foo/go.mod"}
BAR = {"Path": "example.com/bar", "Main": True, "Dir": "/src/bar", "GoMod": "/src/bar/go.mod"}


@pytest.fixture
def run():
    with patch("gomodpack.infra.go_client.shutil.which", return_value="/usr/local/go/bin/go"), \
            patch("gomodpack.infra.go_client.subprocess.run") as mock_run:
        yield mock_run


def output(stdout, returncode=0, stderr=""):
    return MagicMock(returncode=returncode, stdout=stdout, stderr=stderr)


def test_decode_json_stream():
    text = json.dumps(FOO, indent="\t") + "\n" + json.dumps(BAR, indent="\t") + "\n"
    assert decode_json_stream(text) == [FOO, BAR]
    assert decode_json_stream("  \n") == []


def test_list_module(run):
    run.return_value = output(json.dumps(FOO, indent="\t"))
    module = GoClient().list_module(cwd="/src/foo")
    assert module.path == "example.com/foo"
    assert module.go_mod == "/src/foo/go.mod"
    args, kwargs = run.call_args
    assert args[0] == ["/usr/local/go/bin/go", "list", "-m", "-json"]
    assert kwargs["cwd"] == "/src/foo"


def test_list_module_workspace_takes_first(run, caplog):
    run.return_value = output(json.dumps(FOO) + json.dumps(BAR))
    module = GoClient().list_module()
    assert module.path == "example.com/foo"
    assert "multiple module" in caplog.text


@pytest.mark.parametrize("data", [
    {"Path": "", "Dir": "/src", "GoMod": "/src/go.mod"},
    {"Path": "example.com/foo", "Dir": "", "GoMod": "/src/go.mod"},
    {"Path": "example.com/foo", "Dir": "/src"},
])
def test_list_module_missing_field(run, data):
    run.return_value = output(json.dumps(data))
    with pytest.raises(ModuleIdentityError):
        GoClient().list_module()


def test_list_module_empty(run):
    run.return_value = output("")
    with pytest.raises(ModuleIdentityError):
        GoClient().list_module()


def test_go_failure(run):
    run.return_value = output("", returncode=1, stderr="go: cannot find main module")
    with pytest.raises(ProcessFailureError) as excinfo:
        GoClient().list_module()
    assert "cannot find main module" in excinfo.value.detail


def test_go_missing():
    with patch("gomodpack.infra.go_client.shutil.which", return_value=None):
        with pytest.raises(ProcessFailureError):
            GoClient(executable="go-does-not-exist").env("GOPATH")


def test_env(run):
    run.return_value = output(json.dumps({"GOMODCACHE": "/home/me/go/pkg/mod", "GOPATH": "/home/me/go"}))
    env = GoClient().env("GOMODCACHE", "GOPATH")
    assert env == {"GOMODCACHE": "/home/me/go/pkg/mod", "GOPATH": "/home/me/go"}
    assert run.call_args[0][0][1:] == ["env", "-json", "GOMODCACHE", "GOPATH"]
