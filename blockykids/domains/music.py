"""
Music domain - Composing a melody note by note.

The world is the timeline of played notes and rests; goals look at
the ordered list of notes in the action log.
"""

from __future__ import annotations
from dataclasses import dataclass

from ..compiler.program import ArgSpec, BlockSpec
from ..engine_core.action import Action, ActionResult, ActionType
from ..engine_core.capabilities import CapabilityRegistry, as_number, as_text, primitive
from ..engine_core.diagnostics import InvalidArgumentError
from ..engine_core.goals import Verdict, check_free
from ..engine_core.state import ActionLog, WorldState
from ..level_schema.levels import FreeGoal, MusicLevel, NotesGoal, RepeatGoal, SequenceGoal
from .base import Domain

# Note name -> frequency in Hz
NOTES = {
    "C4": 261.63,
    "D4": 293.66,
    "E4": 329.63,
    "F4": 349.23,
    "G4": 392.00,
    "A4": 440.00,
    "B4": 493.88,
    "C5": 523.25,
}

# Solfege shortcuts, generated as source helpers: do(), re(), ...
SOLFEGE = {
    "do": "C4",
    "re": "D4",
    "mi": "E4",
    "fa": "F4",
    "sol": "G4",
    "la": "A4",
    "si": "B4",
    "do_tinggi": "C5",
}


def normalize_note(value) -> str:
    """Accept C4, c4 or a solfege name; reject anything else."""
    text = as_text(value).strip()
    if text.lower() in SOLFEGE:
        return SOLFEGE[text.lower()]
    if text.upper() in NOTES:
        return text.upper()
    raise InvalidArgumentError(f"Unknown note {value!r}; use one of {', '.join(NOTES)}")


@dataclass(frozen=True)
class MusicWorld(WorldState):
    notes_played: tuple[str, ...] = ()
    beats: float = 0


def initial_world(level: MusicLevel) -> MusicWorld:
    return MusicWorld()


def _handle_play_note(state: MusicWorld, action: Action) -> ActionResult:
    note = action.payload.note
    if note not in NOTES:
        return ActionResult.failure(f"Unknown note {note!r}", "UNKNOWN_NOTE")
    return ActionResult.success_with_state(
        state.with_changes(notes_played=state.notes_played + (note,), beats=state.beats + 1),
        [f"Played {note}"],
    )


def _handle_rest(state: MusicWorld, action: Action) -> ActionResult:
    beats = action.payload.beats or 0
    return ActionResult.success_with_state(state.with_changes(beats=state.beats + beats), [f"Rest {beats} beat(s)"])


HANDLERS = {
    ActionType.PLAY_NOTE: _handle_play_note,
    ActionType.REST: _handle_rest,
}


class MusicCapabilities(CapabilityRegistry):
    domain = "music"

    @primitive("play_note", aliases=("mainkan", "musicPlayNote"))
    def play_note(self, note):
        """Play one note."""
        self.record(Action.play_note(normalize_note(note)))

    @primitive("rest", aliases=("istirahat", "musicRest"))
    def rest(self, beats=1):
        """Stay silent for a number of beats."""
        beats = as_number(beats, "beats")
        if beats <= 0:
            raise InvalidArgumentError(f"A rest must last at least part of a beat, got {beats}")
        self.record(Action.rest(beats))


def check_goal(level: MusicLevel, state: MusicWorld, log: ActionLog) -> Verdict:
    goal = level.goal
    notes = log.notes()
    details = {"notes": notes}

    if isinstance(goal, FreeGoal):
        return check_free(log, goal.min_actions)

    if isinstance(goal, SequenceGoal):
        expected = list(goal.required)
        if notes[:len(expected)] == expected:
            return Verdict.passed("You played the melody!", expected=expected, **details)
        return Verdict.failed(
            f"Play the notes in this order: {' '.join(expected)}",
            expected=expected,
            **details,
        )

    if isinstance(goal, NotesGoal):
        missing = [n for n in goal.required if n not in notes]
        if missing:
            return Verdict.failed(f"Still missing: {', '.join(missing)}", missing=missing, **details)
        if goal.min_notes is not None and len(notes) < goal.min_notes:
            return Verdict.failed(f"Play at least {goal.min_notes} notes", **details)
        return Verdict.passed("All the notes are there!", **details)

    if isinstance(goal, RepeatGoal):
        counted = [n for n in notes if goal.note is None or n == goal.note]
        if len(counted) >= goal.min_notes:
            return Verdict.passed(f"{len(counted)} notes, nice rhythm!", **details)
        what = f"{goal.note} " if goal.note else ""
        return Verdict.failed(f"Play {what}at least {goal.min_notes} times; a loop helps", **details)

    return Verdict.failed(f"Unsupported goal '{goal.type}'", **details)


def source_prelude(level: MusicLevel) -> str:
    return "\n".join(f'def {name}(): play_note("{note}")' for name, note in SOLFEGE.items())


MUSIC = Domain(
    name="music",
    title="Music Maker",
    level_type=MusicLevel,
    world_type=MusicWorld,
    registry_type=MusicCapabilities,
    initial_world=initial_world,
    handlers=HANDLERS,
    check_goal=check_goal,
    pacing_table={
        ActionType.PLAY_NOTE: 0.5,
        ActionType.REST: 0.5,
    },
    logged_actions=frozenset({ActionType.PLAY_NOTE}),
    blocks=(
        BlockSpec("music_play_note", "play_note", (ArgSpec("NOTE", "C4"),)),
        BlockSpec("music_rest", "rest", (ArgSpec("BEATS", 1),)),
    ),
    source_prelude=source_prelude,
    helper_names=frozenset(SOLFEGE),
)
