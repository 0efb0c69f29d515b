from __future__ import annotations

from app.inventory import add_items, remove_items


def test_add_items_keeps_order_and_duplicates() -> None:
    inv = ["Torch"]
    add_items(inv, ["Rope", "Torch"])
    assert inv == ["Torch", "Rope", "Torch"]


def test_remove_items_removes_first_exact_match_only() -> None:
    inv = ["Health Potion", "Rope", "Health Potion"]
    removed = remove_items(inv, ["Health Potion"])
    assert removed == ["Health Potion"]
    assert inv == ["Rope", "Health Potion"]


def test_remove_missing_item_is_noop() -> None:
    inv = ["Rope"]
    removed = remove_items(inv, ["Lantern", "rope"])
    assert removed == []
    assert inv == ["Rope"]


def test_add_then_remove_restores_length() -> None:
    inv = ["Rope", "Map"]
    add_items(inv, ["Silver Key"])
    remove_items(inv, ["Silver Key"])
    assert len(inv) == 2
    assert inv == ["Rope", "Map"]
