"""
Pytest configuration and shared fixtures for usbtree tests.
"""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Generator

import pytest
import yaml

from usbtree.descriptors.strings import StringTable
from tests.descriptor_data import CDC_ACM_FUNCTION, KEYBOARD_INTERFACE


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_config(temp_dir: Path) -> Path:
    """Create a sample configuration file."""
    config_path = temp_dir / "usbtree.yaml"
    config_data = {
        "logging": {
            "level": "debug",
        },
        "decoder": {
            "configuration_id": 2,
            "language_id": 0x0407,
        },
        "output": {
            "format": "json",
            "indent": 4,
        },
    }
    with open(config_path, "w") as f:
        yaml.dump(config_data, f)
    return config_path


@pytest.fixture
def keyboard_bytes() -> bytes:
    """Boot keyboard interface block."""
    return KEYBOARD_INTERFACE


@pytest.fixture
def cdc_bytes() -> bytes:
    """CDC-ACM control + data interfaces."""
    return CDC_ACM_FUNCTION


@pytest.fixture
def keyboard_file(temp_dir: Path) -> Path:
    """Keyboard interface written to a binary file."""
    path = temp_dir / "keyboard.bin"
    path.write_bytes(KEYBOARD_INTERFACE)
    return path


@pytest.fixture
def strings() -> StringTable:
    """String table with the keyboard's interface name."""
    return StringTable({2: "Boot Keyboard"})
