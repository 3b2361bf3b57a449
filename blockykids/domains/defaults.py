"""
Default level packs, one per domain.

Documents are plain dicts in the same shape the persistence layer
sends, so they go through the normal loader.
"""

from __future__ import annotations
from functools import lru_cache
from typing import Any

from ..level_schema.levels import Level, load_levels

ROBOT_LEVELS: list[dict[str, Any]] = [
    {
        "domain": "robot", "id": 1, "name": "First Steps", "difficulty": "easy",
        "description": "Move the robot to the flag.",
        "hints": ["Use move_forward four times"],
        "allowedBlocks": ["move_forward"],
        "width": 5, "height": 3,
        "robot": {"x": 0, "y": 1, "direction": "east"},
        "goal": {"type": "position", "x": 4, "y": 1},
    },
    {
        "domain": "robot", "id": 2, "name": "Turning Corners", "difficulty": "easy",
        "description": "Reach the top-right corner.",
        "hints": ["Go right first, then turn left and go up"],
        "allowedBlocks": ["move_forward", "turn_left", "turn_right"],
        "width": 4, "height": 4,
        "robot": {"x": 0, "y": 3, "direction": "east"},
        "goal": {"type": "position", "x": 3, "y": 0},
    },
    {
        "domain": "robot", "id": 3, "name": "Star Collector", "difficulty": "medium",
        "description": "Collect every star on the way to the goal.",
        "hints": ["Step onto a star, then use collect_star"],
        "allowedBlocks": ["move_forward", "turn_left", "turn_right", "collect_star"],
        "width": 5, "height": 3,
        "robot": {"x": 0, "y": 1, "direction": "east"},
        "stars": [{"x": 1, "y": 1}, {"x": 2, "y": 1}, {"x": 3, "y": 1}],
        "goal": {"type": "position", "x": 4, "y": 1, "requireAllStars": True},
    },
    {
        "domain": "robot", "id": 4, "name": "Loop Road", "difficulty": "medium",
        "description": "A long road: let a loop do the walking.",
        "hints": ["repeat_times runs the blocks inside it again and again"],
        "allowedBlocks": ["move_forward", "collect_star", "repeat_times"],
        "width": 8, "height": 1,
        "robot": {"x": 0, "y": 0, "direction": "east"},
        "stars": [{"x": 7, "y": 0}],
        "goal": {"type": "position", "x": 7, "y": 0},
    },
]

SPRITE_LEVELS: list[dict[str, Any]] = [
    {
        "domain": "sprite", "id": 1, "name": "Walk the Cat", "difficulty": "easy",
        "description": "Move the cat to the right side of the stage.",
        "hints": ["move_right moves 50 pixels at a time"],
        "sprites": [{"id": "cat", "emoji": "🐱", "x": 50, "y": 150}],
        "goal": {"type": "position", "x": 400, "tolerance": 50},
    },
    {
        "domain": "sprite", "id": 2, "name": "Fly Up", "difficulty": "easy",
        "description": "Help the bird fly to the top.",
        "hints": ["move_up makes y smaller"],
        "sprites": [{"id": "bird", "emoji": "🐦", "x": 250, "y": 280}],
        "goal": {"type": "position", "y": 50, "tolerance": 50},
    },
    {
        "domain": "sprite", "id": 3, "name": "Jump!", "difficulty": "easy",
        "description": "Make the frog jump.",
        "hints": ["Use jump"],
        "sprites": [{"id": "frog", "emoji": "🐸", "x": 200, "y": 200}],
        "goal": {"type": "action", "action": "jump"},
    },
    {
        "domain": "sprite", "id": 4, "name": "Zigzag", "difficulty": "medium",
        "description": "Zigzag across the stage.",
        "hints": ["Combine move_right with move_up and move_down"],
        "sprites": [{"id": "bee", "emoji": "🐝", "x": 50, "y": 200}],
        "goal": {"type": "position", "x": 400, "tolerance": 100},
    },
    {
        "domain": "sprite", "id": 5, "name": "Spin Around", "difficulty": "medium",
        "description": "Turn all the way around.",
        "hints": ["rotate(90) four times is a full turn"],
        "sprites": [{"id": "star", "emoji": "⭐", "x": 200, "y": 200}],
        "goal": {"type": "rotation", "degrees": 360},
    },
    {
        "domain": "sprite", "id": 6, "name": "Say Hello", "difficulty": "easy",
        "description": "Let the dog say something.",
        "hints": ["Use say"],
        "sprites": [{"id": "dog", "emoji": "🐶", "x": 200, "y": 200}],
        "goal": {"type": "speech"},
    },
    {
        "domain": "sprite", "id": 7, "name": "Free Stage", "difficulty": "free",
        "description": "Animate anything you like.",
        "sprites": [{"id": "cat", "emoji": "🐱", "x": 200, "y": 200}],
        "goal": {"type": "free"},
    },
]

MUSIC_LEVELS: list[dict[str, Any]] = [
    {
        "domain": "music", "id": 1, "name": "First Note", "difficulty": "easy",
        "description": "Play the note C.",
        "hints": ["play_note('C4') or do()"],
        "goal": {"type": "notes", "required": ["C4"], "minNotes": 1},
    },
    {
        "domain": "music", "id": 2, "name": "Do Re Mi", "difficulty": "easy",
        "description": "Play C, D and E in order.",
        "hints": ["Order matters"],
        "goal": {"type": "sequence", "required": ["C4", "D4", "E4"]},
    },
    {
        "domain": "music", "id": 3, "name": "Full Scale", "difficulty": "medium",
        "description": "Play at least eight notes.",
        "hints": ["do re mi fa sol la si do_tinggi"],
        "goal": {"type": "notes", "minNotes": 8},
    },
    {
        "domain": "music", "id": 4, "name": "Rhythm Loop", "difficulty": "medium",
        "description": "Play a note at least three times with a loop.",
        "hints": ["Put play_note inside repeat_times"],
        "goal": {"type": "repeat", "minNotes": 3},
    },
    {
        "domain": "music", "id": 5, "name": "Free Jam", "difficulty": "free",
        "description": "Compose your own tune.",
        "goal": {"type": "free", "minActions": 5},
    },
]

SORTING_LEVELS: list[dict[str, Any]] = [
    {
        "domain": "sorting", "id": 1, "name": "Three Potions", "difficulty": "easy",
        "description": "Sort the potions from small to large.",
        "hints": ["swap(0, 1) swaps the first two potions"],
        "potions": [3, 1, 2],
        "goal": {"type": "sortedWithBudget", "order": "ascending", "maxSwaps": 5},
    },
    {
        "domain": "sorting", "id": 2, "name": "Four Potions", "difficulty": "medium",
        "description": "Sort four potions.",
        "hints": ["Find the smallest potion and move it to the front"],
        "potions": [4, 2, 3, 1],
        "goal": {"type": "sortedWithBudget", "order": "ascending", "maxSwaps": 8},
    },
    {
        "domain": "sorting", "id": 3, "name": "Bubble Sort", "difficulty": "hard",
        "description": "Write a bubble sort with loops and comparisons.",
        "hints": [
            "Compare neighbours with get(i) and get(i + 1)",
            "Swap them when they are in the wrong order",
            "Repeat the pass for every potion",
        ],
        "allowedBlocks": ["alchemist_swap", "alchemist_get", "alchemist_length", "for_loop", "for_loop_nested", "if_compare", "compare_values"],
        "potions": [5, 3, 1, 4, 2],
        "goal": {"type": "sortedWithBudget", "order": "ascending"},
    },
]

COMBAT_LEVELS: list[dict[str, Any]] = [
    {
        "domain": "combat", "id": 1, "name": "Closest Goblin", "difficulty": "easy",
        "description": "Select the goblin closest to the hero.",
        "hints": ["Use distance_to() to compare distances"],
        "allowedBlocks": ["combat_select_target", "combat_attack", "combat_distance", "for_each_enemy", "if_compare", "compare_values"],
        "enemies": [
            {"id": "goblin1", "name": "Goblin", "x": 6, "y": 4, "hp": 30, "attack": 5, "range": 1},
            {"id": "goblin2", "name": "Goblin", "x": 4, "y": 2, "hp": 30, "attack": 5, "range": 1},
        ],
        "goal": {"type": "targetSelection", "expectedTarget": "goblin2"},
    },
    {
        "domain": "combat", "id": 2, "name": "Weakest Orc", "difficulty": "medium",
        "description": "Select the orc with the least hit points.",
        "hints": ["get_hp() tells you how strong an enemy is"],
        "allowedBlocks": ["combat_select_target", "combat_attack", "combat_get_hp", "for_each_enemy", "if_compare", "compare_values"],
        "enemies": [
            {"id": "orc1", "name": "Orc", "x": 5, "y": 3, "hp": 80, "attack": 15, "range": 1},
            {"id": "orc2", "name": "Orc", "x": 5, "y": 5, "hp": 20, "attack": 15, "range": 1},
            {"id": "orc3", "name": "Orc", "x": 3, "y": 1, "hp": 60, "attack": 15, "range": 1},
        ],
        "goal": {"type": "targetSelection", "expectedTarget": "orc2"},
    },
    {
        "domain": "combat", "id": 3, "name": "Skeleton Range", "difficulty": "hard",
        "description": "Your reach is short: pick the skeleton you can actually hit.",
        "hints": ["in_range() checks the hero's attack range"],
        "allowedBlocks": ["combat_select_target", "combat_attack", "combat_distance", "combat_in_range", "for_each_enemy", "if_compare", "compare_values"],
        "hero": {"id": "hero", "name": "Pahlawan", "x": 2, "y": 4, "hp": 100, "attack": 25, "range": 2},
        "enemies": [
            {"id": "skeleton1", "name": "Skeleton", "x": 6, "y": 4, "hp": 40, "attack": 10, "range": 2},
            {"id": "skeleton2", "name": "Skeleton", "x": 3, "y": 5, "hp": 40, "attack": 10, "range": 2},
            {"id": "skeleton3", "name": "Skeleton", "x": 2, "y": 0, "hp": 40, "attack": 10, "range": 2},
        ],
        "goal": {"type": "targetSelection", "expectedTarget": "skeleton2"},
    },
]

BUILDING_LEVELS: list[dict[str, Any]] = [
    {
        "domain": "building", "id": 1, "name": "First Block", "difficulty": "easy",
        "description": "Place one block anywhere.",
        "hints": ["Use place_block"],
        "goal": {"type": "structureMatch", "minBlocks": 1},
    },
    {
        "domain": "building", "id": 2, "name": "Red Tower", "difficulty": "easy",
        "description": "Stack three red blocks.",
        "hints": ["Place a block, then move_y(1)"],
        "availableColors": ["#e74c3c"],
        "goal": {
            "type": "structureMatch",
            "matchColors": True,
            "target": [
                {"x": 0, "y": 0, "z": 0, "color": "#e74c3c"},
                {"x": 0, "y": 1, "z": 0, "color": "#e74c3c"},
                {"x": 0, "y": 2, "z": 0, "color": "#e74c3c"},
            ],
        },
    },
    {
        "domain": "building", "id": 3, "name": "Green Wall", "difficulty": "medium",
        "description": "Build a row of four green blocks.",
        "hints": ["set_color('hijau') first", "A loop saves blocks"],
        "availableColors": ["#e74c3c", "#2ecc71", "#3498db"],
        "goal": {
            "type": "structureMatch",
            "matchColors": True,
            "target": [{"x": x, "y": 0, "z": 0, "color": "#2ecc71"} for x in range(4)],
        },
    },
]

PIXEL_LEVELS: list[dict[str, Any]] = [
    {
        "domain": "pixel", "id": 1, "name": "Horizontal Line", "difficulty": "easy",
        "description": "Draw five pixels in a row.",
        "hints": ["draw, then move_right"],
        "goal": {"type": "pixels", "cells": [[x, 0] for x in range(5)]},
    },
    {
        "domain": "pixel", "id": 2, "name": "Vertical Line", "difficulty": "easy",
        "description": "Draw five pixels in a column.",
        "hints": ["draw, then move_down"],
        "goal": {"type": "pixels", "cells": [[0, y] for y in range(5)]},
    },
    {
        "domain": "pixel", "id": 3, "name": "Letter L", "difficulty": "medium",
        "description": "Draw the letter L.",
        "hints": ["Go down first, then right"],
        "goal": {"type": "pixels", "cells": [[0, 0], [0, 1], [0, 2], [0, 3], [1, 3], [2, 3]]},
    },
    {
        "domain": "pixel", "id": 4, "name": "Little Box", "difficulty": "hard",
        "description": "Fill a 3x3 square.",
        "hints": ["The cursor cannot move left or up, so plan the path"],
        "goal": {"type": "pixels", "cells": [[x, y] for y in range(3) for x in range(3)]},
    },
]

MATH_LEVELS: list[dict[str, Any]] = [
    {
        "domain": "math", "id": 1, "name": "Addition", "difficulty": "easy",
        "description": "Print 5 + 3.",
        "hints": ["print(5 + 3)"],
        "goal": {"type": "output", "expected": ["8"]},
    },
    {
        "domain": "math", "id": 2, "name": "Subtraction", "difficulty": "easy",
        "description": "Print 10 - 4.",
        "hints": ["print(10 - 4)"],
        "goal": {"type": "output", "expected": ["6"]},
    },
    {
        "domain": "math", "id": 3, "name": "Multiplication", "difficulty": "easy",
        "description": "Print 6 x 7.",
        "hints": ["print(6 * 7)"],
        "goal": {"type": "output", "expected": ["42"]},
    },
    {
        "domain": "math", "id": 4, "name": "Variables", "difficulty": "medium",
        "description": "Store 10 in x and print it.",
        "hints": ["x = 10", "print(x)"],
        "goal": {"type": "output", "expected": ["10"]},
    },
]

DEFAULT_LEVELS: dict[str, list[dict[str, Any]]] = {
    "robot": ROBOT_LEVELS,
    "building": BUILDING_LEVELS,
    "sorting": SORTING_LEVELS,
    "combat": COMBAT_LEVELS,
    "music": MUSIC_LEVELS,
    "sprite": SPRITE_LEVELS,
    "pixel": PIXEL_LEVELS,
    "math": MATH_LEVELS,
}


@lru_cache(maxsize=None)
def _load(domain: str) -> tuple[Level, ...]:
    return tuple(load_levels(DEFAULT_LEVELS[domain]))


def default_levels(domain: str) -> list[Level]:
    """Loaded default pack for a domain. Raises KeyError for unknown domains."""
    if domain not in DEFAULT_LEVELS:
        raise KeyError(f"No default levels for domain '{domain}'")
    return list(_load(domain))
