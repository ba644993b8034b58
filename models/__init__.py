from .contact import Contact, RawContact, WorkHistoryEntry
from .merge_candidate import MergeCandidate
from .connection_path import ConnectionPath, ConnectionScore
from .prospect import Prospect
from .person_record import PersonRecord
from .graph_hit import GraphHit
from .ai_match import AIMatch, AIMatchResponse

__all__ = [
    "Contact",
    "RawContact",
    "WorkHistoryEntry",
    "MergeCandidate",
    "ConnectionPath",
    "ConnectionScore",
    "Prospect",
    "PersonRecord",
    "GraphHit",
    "AIMatch",
    "AIMatchResponse",
]
