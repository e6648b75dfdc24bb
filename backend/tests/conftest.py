"""Root conftest — shared test configuration."""

import os

import pytest

# Ensure tests never touch the working directory's data/ or uploads/
os.environ.setdefault("DATA_DIR", "/tmp/listing-vault-test/data")
os.environ.setdefault("IMAGES_DIR", "/tmp/listing-vault-test/images")
os.environ.setdefault("LOG_FORMAT", "text")


@pytest.fixture
def records_path(tmp_path):
    return tmp_path / "data" / "properties.json"


@pytest.fixture
def images_dir(tmp_path):
    return tmp_path / "uploads" / "images"
