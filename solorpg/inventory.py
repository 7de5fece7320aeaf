"""Item catalog and equipment effects.

Item effects are compact strings, comma-separated for several effects:

    "heal:10"                        consumable heal
    "roll_bonus:2,damage_bonus:3"    magic weapon
    "damage_reduction:4"             armor
    "modifier:strength:1"            attribute modifier

The narrator can only drop items that exist in DROPPABLE_ITEMS; unknown ids
in an <item_drop> tag are ignored by create_inventory_item().
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from typing import Literal

from pydantic import BaseModel, ConfigDict

from solorpg.models import InventoryItem, ItemType

logger = logging.getLogger(__name__)

EQUIPMENT_ROLL_BONUS_CAP = 5

EquipmentSlot = Literal["weapon", "armor"]


class ItemDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    type: ItemType
    description: str
    effect: str | None = None
    default_quantity: int = 1
    equipment_slot: EquipmentSlot | None = None


class ItemEffect(BaseModel):
    type: str
    value: int = 0
    attr: str | None = None


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

STARTING_ITEMS: tuple[ItemDefinition, ...] = (
    ItemDefinition(id="healing_potion", name="Healing Potion", type="consumable",
                   effect="heal:10", description="Restores 10 HP when used", default_quantity=2),
    ItemDefinition(id="lesser_healing_potion", name="Lesser Healing Potion", type="consumable",
                   effect="heal:5", description="Restores 5 HP when used", default_quantity=3),
    ItemDefinition(id="rope", name="Rope (50ft)", type="equipment", effect="roll_bonus:1",
                   description="+1 to agility rolls when climbing or tying"),
    ItemDefinition(id="lucky_charm", name="Lucky Charm", type="equipment", effect="roll_bonus:1",
                   description="+1 to any roll (narrative luck)"),
    ItemDefinition(id="iron_rations", name="Iron Rations", type="consumable",
                   description="One day of food. No mechanical effect.", default_quantity=5),
    ItemDefinition(id="torch", name="Torch", type="consumable",
                   description="Light source. No mechanical effect.", default_quantity=3),
    ItemDefinition(id="thieves_tools", name="Thieves' Tools", type="equipment", effect="roll_bonus:2",
                   description="+2 to agility rolls when picking locks or disarming traps"),
    ItemDefinition(id="shield", name="Shield", type="equipment", effect="roll_bonus:1",
                   description="+1 to agility rolls when defending"),
    # Weapons
    ItemDefinition(id="shortsword", name="Shortsword", type="equipment", effect="damage_bonus:2",
                   equipment_slot="weapon", description="+2 to damage rolls in combat"),
    ItemDefinition(id="dagger", name="Dagger", type="equipment", effect="damage_bonus:1",
                   equipment_slot="weapon", description="+1 to damage rolls"),
    ItemDefinition(id="staff", name="Staff", type="equipment", effect="damage_bonus:1",
                   equipment_slot="weapon", description="+1 to damage rolls"),
    # Armor
    ItemDefinition(id="leather_armor", name="Leather Armor", type="equipment",
                   effect="damage_reduction:2", equipment_slot="armor",
                   description="Reduces incoming damage by 2"),
    ItemDefinition(id="chainmail", name="Chainmail", type="equipment",
                   effect="damage_reduction:4", equipment_slot="armor",
                   description="Reduces incoming damage by 4"),
)

DROPPABLE_ITEMS: tuple[ItemDefinition, ...] = STARTING_ITEMS + (
    ItemDefinition(id="greater_healing_potion", name="Greater Healing Potion", type="consumable",
                   effect="heal:20", description="Restores 20 HP when used"),
    ItemDefinition(id="magic_sword", name="Magic Sword", type="equipment",
                   effect="roll_bonus:2,damage_bonus:3", equipment_slot="weapon",
                   description="+2 to attack rolls, +3 to damage"),
    ItemDefinition(id="plate_armor", name="Plate Armor", type="equipment",
                   effect="damage_reduction:6", equipment_slot="armor",
                   description="Heavy armor, reduces damage by 6"),
    ItemDefinition(id="amulet_protection", name="Amulet of Protection", type="equipment",
                   effect="roll_bonus:1", description="+1 to any defensive roll"),
    ItemDefinition(id="gold_coins", name="Gold Coins", type="other",
                   description="Currency. Narrative use only.", default_quantity=10),
)

_CATALOG: dict[str, ItemDefinition] = {item.id: item for item in DROPPABLE_ITEMS}


def get_item_definition(item_id: str) -> ItemDefinition | None:
    return _CATALOG.get(item_id)


def create_inventory_item(item_id: str, quantity: int = 0) -> InventoryItem | None:
    """New inventory entry for a catalog item. Non-positive quantity -> default."""
    definition = get_item_definition(item_id)
    if definition is None:
        logger.warning("Unknown item id %r", item_id)
        return None
    return InventoryItem(
        id=uuid.uuid4().hex,
        item_id=definition.id,
        name=definition.name,
        type=definition.type,
        quantity=quantity if quantity > 0 else definition.default_quantity,
        effect=definition.effect,
        description=definition.description,
    )


def add_items(inventory: Iterable[InventoryItem], item_id: str, quantity: int) -> list[InventoryItem]:
    """Return a new inventory with `quantity` more of `item_id` (stacked by item id)."""
    items = [item.model_copy() for item in inventory]
    for i, item in enumerate(items):
        if item.item_id == item_id:
            items[i] = item.model_copy(update={"quantity": item.quantity + quantity})
            return items
    created = create_inventory_item(item_id, quantity)
    if created is not None:
        items.append(created)
    return items


# ---------------------------------------------------------------------------
# Effects
# ---------------------------------------------------------------------------

def _to_int(raw: str | None) -> int | None:
    try:
        return int(raw) if raw is not None else None
    except ValueError:
        return None


def parse_item_effect(effect: str) -> ItemEffect | None:
    """"heal:10" -> ItemEffect(type="heal", value=10). Unknown kinds -> None."""
    if not effect:
        return None
    kind, *rest = effect.split(":")
    if kind in ("heal", "roll_bonus", "damage_bonus", "damage_reduction"):
        value = _to_int(rest[0] if rest else None)
        return ItemEffect(type=kind, value=value) if value is not None else None
    if kind == "modifier" and len(rest) >= 2:
        value = _to_int(rest[1])
        return ItemEffect(type=kind, attr=rest[0], value=value) if value is not None else None
    return None


def parse_item_effects(effect: str | None) -> list[ItemEffect]:
    if not effect:
        return []
    parsed = (parse_item_effect(part.strip()) for part in effect.split(","))
    return [p for p in parsed if p is not None]


def format_equipment_effects(effect: str | None) -> list[str]:
    results: list[str] = []
    for parsed in parse_item_effects(effect):
        if not parsed.value:
            continue
        if parsed.type == "damage_bonus":
            results.append(f"+{parsed.value} damage")
        elif parsed.type == "damage_reduction":
            results.append(f"-{parsed.value} damage taken")
        elif parsed.type == "roll_bonus":
            results.append(f"+{parsed.value} to rolls")
        elif parsed.type == "modifier" and parsed.attr:
            results.append(f"+{parsed.value} {parsed.attr.capitalize()}")
    return results


def _equipped_effect(item_id: str | None, inventory: Iterable[InventoryItem], kind: str) -> int:
    if not item_id:
        return 0
    item = next((i for i in inventory if i.item_id == item_id), None)
    if item is None:
        return 0
    for parsed in parse_item_effects(item.effect):
        if parsed.type == kind and parsed.value:
            return parsed.value
    return 0


def armor_damage_reduction(equipped_armor: str | None, inventory: Iterable[InventoryItem]) -> int:
    return _equipped_effect(equipped_armor, inventory, "damage_reduction")


def weapon_damage_bonus(equipped_weapon: str | None, inventory: Iterable[InventoryItem]) -> int:
    return _equipped_effect(equipped_weapon, inventory, "damage_bonus")


def equipment_roll_bonus(inventory: Iterable[InventoryItem]) -> int:
    """Sum of roll bonuses over carried equipment, capped at +5."""
    bonus = 0
    for item in inventory:
        if item.type != "equipment":
            continue
        bonus += sum(p.value for p in parse_item_effects(item.effect) if p.type == "roll_bonus")
    return min(bonus, EQUIPMENT_ROLL_BONUS_CAP)
