import os

import pytest

from credcrypt._output import output

TEST_KEY = "8872ebc11db3ea2ed08cc629d199b1648872ebc11db3ea2ed08cc629d199b164"
OTHER_KEY = "200a0e90e538d17390c8c4bc3bc71e44200a0e90e538d17390c8c4bc3bc71e44"


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in ("MASTER_KEY", "VISUAL", "EDITOR"):
        monkeypatch.delitem(os.environ, name, raising=False)


@pytest.fixture(autouse=True)
def reset_output():
    backend, enable_debug = output.backend, output.enable_debug
    yield
    output.backend, output.enable_debug = backend, enable_debug


@pytest.fixture
def key():
    return bytes.fromhex(TEST_KEY)


@pytest.fixture
def other_key():
    return bytes.fromhex(OTHER_KEY)
