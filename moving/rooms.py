"""Room/item selection for the move details step.

One nested dict is the only source of truth: room-key -> item-name ->
quantity.  A room present with an empty item map has just been toggled on
and is waiting for its first item.  Counts are always recomputed from the
map, never cached.
"""

from __future__ import annotations

from typing import Mapping

ROOM_CATALOG: dict[str, dict[str, str]] = {
    "kitchen": {
        "Refrigerator": "Large appliance",
        "Stove/Oven": "Large appliance",
        "Dishwasher": "Large appliance",
        "Microwave": "Small appliance",
        "Kitchen Table": "Furniture",
        "Kitchen Chairs": "Furniture",
        "Kitchen Cabinets": "Furniture",
        "Small Appliances": "Small items",
        "Dishes & Cookware": "Boxes",
    },
    "living-room": {
        "Sofa": "Large furniture",
        "Coffee Table": "Furniture",
        "TV Stand": "Furniture",
        "Television": "Electronics",
        "Armchair": "Furniture",
        "Bookshelf": "Furniture",
        "Side Table": "Furniture",
        "Lamps": "Small items",
        "Decorations": "Small items",
    },
    "bedroom": {
        "Bed Frame": "Large furniture",
        "Mattress": "Large furniture",
        "Dresser": "Furniture",
        "Nightstand": "Furniture",
        "Wardrobe": "Large furniture",
        "Mirror": "Fragile",
        "Clothes": "Boxes",
        "Bedding": "Boxes",
    },
    "bathroom": {
        "Washing Machine": "Large appliance",
        "Dryer": "Large appliance",
        "Bathroom Cabinet": "Furniture",
        "Mirror": "Fragile",
        "Toiletries": "Boxes",
        "Towels": "Boxes",
    },
    "storage": {
        "Storage Boxes": "Boxes",
        "Tools": "Boxes",
        "Seasonal Items": "Boxes",
        "Sports Equipment": "Large items",
        "Garden Equipment": "Large items",
        "Cleaning Supplies": "Boxes",
    },
}


class RoomSelection:
    """Which items, in which rooms, the customer wants moved."""

    def __init__(self, catalog: Mapping[str, Mapping[str, str]] = ROOM_CATALOG) -> None:
        self._catalog = catalog
        self._rooms: dict[str, dict[str, int]] = {}

    def _check(self, room: str, item: str | None = None) -> None:
        if room not in self._catalog:
            raise ValueError(f"Unknown room: {room!r}")
        if item is not None and item not in self._catalog[room]:
            raise ValueError(f"Unknown item {item!r} for room {room!r}")

    # ── Mutations ─────────────────────────────────────────────

    def toggle_room(self, room: str) -> bool:
        """Activate or deactivate a room. Returns the new active flag."""
        self._check(room)
        if room in self._rooms:
            del self._rooms[room]
            return False
        self._rooms[room] = {}
        return True

    def set_quantity(self, room: str, item: str, quantity: int) -> None:
        """Set an item's quantity; 0 removes it, and the room with its last item."""
        self._check(room, item)
        if quantity < 0:
            raise ValueError("Quantity cannot be negative")

        if quantity > 0:
            self._rooms.setdefault(room, {})[item] = quantity
            return

        items = self._rooms.get(room)
        if items is None:
            return
        items.pop(item, None)
        if not items:
            del self._rooms[room]

    def increment(self, room: str, item: str) -> int:
        quantity = self.quantity(room, item) + 1
        self.set_quantity(room, item, quantity)
        return quantity

    def decrement(self, room: str, item: str) -> int:
        quantity = max(self.quantity(room, item) - 1, 0)
        self.set_quantity(room, item, quantity)
        return quantity

    def clear(self) -> None:
        self._rooms.clear()

    # ── Derived values ────────────────────────────────────────

    def quantity(self, room: str, item: str) -> int:
        return self._rooms.get(room, {}).get(item, 0)

    def is_active(self, room: str) -> bool:
        return room in self._rooms

    @property
    def active_rooms(self) -> list[str]:
        return list(self._rooms)

    def room_count(self, room: str) -> int:
        return sum(self._rooms.get(room, {}).values())

    def total_count(self) -> int:
        return sum(self.room_count(room) for room in self._rooms)

    # ── Serialization ─────────────────────────────────────────

    def to_payload(self) -> dict[str, dict[str, int]]:
        """Rooms that hold at least one item; pending empty rooms are left out."""
        return {room: dict(items) for room, items in self._rooms.items() if items}

    @classmethod
    def from_payload(
        cls,
        payload: Mapping[str, Mapping[str, int]],
        catalog: Mapping[str, Mapping[str, str]] = ROOM_CATALOG,
    ) -> "RoomSelection":
        selection = cls(catalog)
        for room, items in payload.items():
            for item, quantity in items.items():
                selection.set_quantity(room, item, quantity)
        return selection
