"""
Interaction taxonomy — affinity weights per InteractionType.

  search  30  explicit intent, typed by the user
  save    50  strongest positive signal
  click   10  opened the event card
  view     1  impression
  unsave -50  reverses a save's contribution to the same category
  vote     0  votes only feed the veto filter
"""

from services.personalization.interactions.types import InteractionType

# ---------------------------------------------------------------------------
# Raw affinity contribution per InteractionType
# ---------------------------------------------------------------------------

AFFINITY_WEIGHTS: dict[InteractionType, float] = {
    InteractionType.VIEW: 1.0,
    InteractionType.CLICK: 10.0,
    InteractionType.SEARCH: 30.0,
    InteractionType.SAVE: 50.0,
    InteractionType.UNSAVE: -50.0,
    InteractionType.VOTE: 0.0,
}

# Sets for O(1) polarity checks
_POSITIVE_TYPES: frozenset[InteractionType] = frozenset({
    InteractionType.VIEW,
    InteractionType.CLICK,
    InteractionType.SEARCH,
    InteractionType.SAVE,
})

_NEGATIVE_TYPES: frozenset[InteractionType] = frozenset({
    InteractionType.UNSAVE,
})


def get_affinity_weight(interaction_type: InteractionType) -> float:
    """Return the raw affinity weight for an interaction type."""
    return AFFINITY_WEIGHTS[interaction_type]


def is_positive_interaction(interaction_type: InteractionType) -> bool:
    """True when the interaction adds to a dimension's affinity."""
    return interaction_type in _POSITIVE_TYPES


def is_negative_interaction(interaction_type: InteractionType) -> bool:
    """True when the interaction subtracts from a dimension's affinity."""
    return interaction_type in _NEGATIVE_TYPES
