"""Test configuration and fixtures for the product catalog API."""

import os

# Must be set before the app module is imported.
os.environ["PRODUCT_STORE"] = "memory"
os.environ.setdefault("CORS_ORIGINS", "*")

import pytest
from fastapi.testclient import TestClient

from main import app


@pytest.fixture(autouse=True)
def cloudinary_env(monkeypatch):
    """Provide fake Cloudinary credentials and the default folder."""
    monkeypatch.setenv("CLOUDINARY_CLOUD_NAME", "demo")
    monkeypatch.setenv("CLOUDINARY_API_KEY", "123456")
    monkeypatch.setenv("CLOUDINARY_API_SECRET", "shh")
    monkeypatch.delenv("CLOUDINARY_FOLDER", raising=False)


@pytest.fixture(name="client")
def client_fixture():
    """Create a test client with a fresh in-memory store."""
    with TestClient(app) as client:
        yield client
