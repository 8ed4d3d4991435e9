"""ID and value generators (CUID document ids, display names)."""

import random

from cuid2 import cuid_wrapper

cuid_generator = cuid_wrapper()

_BUILD_TYPES = (
    "Aggressive", "Defensive", "Rush", "Anchor", "Precision",
    "Flanking", "Support", "Slayer", "Lockdown", "Roaming",
    "Shutdown", "Denial", "Counter", "Zone", "Reactive",
    "Passive", "Punish", "Pressure", "Control", "Tempo",
)
_PLAYSTYLES = (
    "Silent", "Swift", "Methodical", "Calculated", "Ruthless",
    "Tactical", "Coordinated", "Disciplined", "Unpredictable", "Patient",
    "Precise", "Rapid", "Strategic", "Dominant", "Elusive",
)
_FLAIR = (
    "Main Character", "Touch Grass", "W Key", "Skill Issue", "Tilt Proof",
    "Chair Camper", "Sweat Lord", "Dad Build", "Bot Lobby", "Zero Chill",
)
_PREFIXES = (
    "Sweat'", "Flawless'", "Clutch'", "Sharp'", "Quick'",
    "Primed'", "Elite'", "Peak'", "Optimal'", "Perfect'",
)
_ADJECTIVES = (
    "Brave", "Fierce", "Shadowed", "Burning", "Silent",
    "Radiant", "Ascendant", "Awoken", "Risen", "Luminous",
    "Eternal", "Unstoppable", "Celestial", "Forgotten", "Paracausal",
)
_NOUNS = (
    "Guardian", "Warlock", "Hunter", "Titan", "Lightbearer",
    "Sentinel", "Harbinger", "Wayfarer", "Chronicler", "Revenant",
    "Stormcaller", "Voidwalker", "Gunslinger", "Warden", "Champion",
)


def generate_cuid() -> str:
    """Generate a collision-resistant unique identifier (CUID2).

    Returns:
        A new CUID string.
    """
    result = cuid_generator()
    if not isinstance(result, str):
        raise TypeError(
            f"Expected str from cuid_generator, got {type(result).__name__}"
        )
    return result


def generate_loadout_name(rng: random.Random | None = None) -> str:
    """Generate a display name for a new loadout snapshot.

    Always contains a build type; a prefix, a playstyle and a flair term are
    each added by chance.

    Args:
        rng: Optional random source (tests pass a seeded one).

    Returns:
        Space-separated name, e.g. "Clutch' Anchor Patient Dad Build".
    """
    r = rng or random.Random()
    parts: list[str] = []
    if r.random() < 0.4:
        parts.append(r.choice(_PREFIXES))
    parts.append(r.choice(_BUILD_TYPES))
    if r.random() < 0.7:
        parts.append(r.choice(_PLAYSTYLES))
    if r.random() < 0.6:
        parts.append(r.choice(_FLAIR))
    return " ".join(parts)


def generate_session_name(rng: random.Random | None = None) -> str:
    """Generate a two-word display name for a recording session."""
    r = rng or random.Random()
    return f"{r.choice(_ADJECTIVES)} {r.choice(_NOUNS)}"
