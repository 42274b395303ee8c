from .occurrence import (
    EffectiveOccurrence,
    OccurrenceAvailability,
    OccurrenceKind,
    OccurrenceRef,
)

__all__ = ["EffectiveOccurrence", "OccurrenceAvailability", "OccurrenceKind", "OccurrenceRef"]
