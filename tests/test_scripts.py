"""
Tests that the maintenance scripts load against the installed package.
"""

import importlib.util
import sys
from pathlib import Path

import pytest

SCRIPTS_DIR = Path(__file__).resolve().parent.parent / "scripts"


def load_script(name):
    spec = importlib.util.spec_from_file_location(f"script_{name}", SCRIPTS_DIR / f"{name}.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.mark.parametrize(
    "name, entry_point",
    [("database_setup", "PostgreSQLSetup"), ("generate_dummy_data", "DummyDataGenerator")],
)
def test_script_imports_without_touching_sys_path(name, entry_point):
    before = list(sys.path)
    module = load_script(name)
    assert hasattr(module, entry_point)
    assert sys.path == before
