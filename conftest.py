"""
Pytest configuration for the VAM-RPC agent tests.

Points the support directory at a per-test temp dir so no test touches
~/Library/Application Support.
"""

import pytest


@pytest.fixture(autouse=True)
def isolated_support_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("VAM_RPC_HOME", str(tmp_path / "support"))
    monkeypatch.delenv("VAM_RPC_DEBUG", raising=False)
    monkeypatch.delenv("VAM_RPC_ART_DEBUG", raising=False)
    return tmp_path / "support"
