from __future__ import annotations

import random


FRUITS = [
    "Apple", "Banana", "Orange", "Grape", "Strawberry",
    "Watermelon", "Pineapple", "Mango", "Kiwi", "Peach",
    "Pear", "Cherry", "Blueberry", "Raspberry", "Lemon",
    "Lime", "Coconut", "Papaya", "Apricot", "Plum",
]


def pick_fruit(rng: random.Random | None = None, fruits: list[str] | None = None) -> str:
    """Uniformly pick one fruit."""
    return (rng or random).choice(fruits or FRUITS)
