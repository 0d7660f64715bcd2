"""Catalog content loaded into a fresh repository.

Enemies, equipment and starter items are read-only catalog entries.
Narrator-generated items are added to the item catalog as they drop.
"""

from __future__ import annotations

from crawl_engine.models.enums import Difficulty, EquipmentSlot, StatType
from crawl_engine.models.records import Enemy, Equipment, Item


ENEMIES: tuple[Enemy, ...] = (
    Enemy(id=1, name="Goblin", difficulty=Difficulty.EASY, health=30, attack=5, defense=2,
          sprite_path="sprites/goblin.png"),
    Enemy(id=2, name="Giant Rat", difficulty=Difficulty.EASY, health=20, attack=4, defense=1,
          sprite_path="sprites/giant_rat.png"),
    Enemy(id=3, name="Orc", difficulty=Difficulty.MEDIUM, health=50, attack=10, defense=5,
          sprite_path="sprites/orc.png"),
    Enemy(id=4, name="Troll", difficulty=Difficulty.HARD, health=90, attack=16, defense=9,
          sprite_path="sprites/troll.png"),
    Enemy(id=5, name="Dragon", difficulty=Difficulty.BOSS, health=200, attack=25, defense=15,
          sprite_path="sprites/dragon.png"),
)

EQUIPMENT: tuple[Equipment, ...] = (
    Equipment(id=1, slot=EquipmentSlot.WEAPON, name="Short Sword", bonus=10, rarity=1,
              description="A basic short sword.", sprite_path="sprites/short_sword.png"),
    Equipment(id=2, slot=EquipmentSlot.WEAPON, name="Long Bow", bonus=15, rarity=2,
              description="A long-range bow.", sprite_path="sprites/long_bow.png"),
    Equipment(id=3, slot=EquipmentSlot.WEAPON, name="Staff of Fire", bonus=20, rarity=3,
              description="A magical staff that shoots fire.",
              sprite_path="sprites/staff_of_fire.png"),
    Equipment(id=4, slot=EquipmentSlot.ARMOUR, name="Leather Armour", bonus=20, rarity=1,
              description="Basic leather armour.", sprite_path="sprites/leather_armour.png"),
    Equipment(id=5, slot=EquipmentSlot.ARMOUR, name="Chainmail", bonus=40, rarity=2,
              description="Sturdy chainmail armour.", sprite_path="sprites/chainmail.png"),
    Equipment(id=6, slot=EquipmentSlot.ARMOUR, name="Plate Armour", bonus=60, rarity=3,
              description="Heavy plate armour.", sprite_path="sprites/plate_armour.png"),
    Equipment(id=7, slot=EquipmentSlot.SHIELD, name="Wooden Shield", bonus=5, rarity=1,
              description="A basic wooden shield.", sprite_path="sprites/wooden_shield.png"),
    Equipment(id=8, slot=EquipmentSlot.SHIELD, name="Iron Shield", bonus=10, rarity=2,
              description="A sturdy iron shield.", sprite_path="sprites/iron_shield.png"),
    Equipment(id=9, slot=EquipmentSlot.SHIELD, name="Dragon Shield", bonus=20, rarity=3,
              description="A shield made from dragon scales.",
              sprite_path="sprites/dragon_shield.png"),
)

ITEMS: tuple[Item, ...] = (
    Item(id=1, name="Small Health Potion", stat_modified=StatType.HEALTH, stat_value=50,
         rarity=1, description="Restores 50 health points.",
         sprite_path="sprites/health_potion.png"),
    Item(id=2, name="Large Health Potion", stat_modified=StatType.HEALTH, stat_value=100,
         rarity=5, description="Restores 100 health points.",
         sprite_path="sprites/large_health_potion.png"),
)


__all__ = ["ENEMIES", "EQUIPMENT", "ITEMS"]
