"""
Service layer that orchestrates adapters and domain logic.
"""

from .event_placement import CommittedEventStore, EventPlacementService
from .suggestion_engine import SuggestionEngine

__all__ = ["CommittedEventStore", "EventPlacementService", "SuggestionEngine"]
