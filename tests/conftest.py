"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from tryll.store import Store


@pytest.fixture
def data_dir(tmp_path):
    """Empty data directory for project documents."""
    path = tmp_path / "datasets"
    path.mkdir()
    return path


@pytest.fixture
def store(data_dir):
    """Store over an empty data directory, history enabled."""
    return Store(data_dir)


@pytest.fixture
def mobs(store):
    """Project "minecraft" with one "Mobs" category holding creeper and zombie."""
    store.create_project("minecraft")
    store.create_category("minecraft", "Mobs")
    store.add_chunk(
        "minecraft",
        "Mobs",
        {
            "id": "creeper",
            "text": "A creeper explodes when close to the player.",
            "metadata": {"page_title": "Creeper", "source": "https://minecraft.wiki/w/Creeper", "hp": 20},
        },
    )
    store.add_chunk("minecraft", "Mobs", {"id": "zombie", "text": "Zombies burn in daylight."})
    return store
