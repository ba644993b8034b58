# Namespace for pipeline steps
from .resolve_and_merge import ResolveAndMergeContacts  # noqa: F401
from .score_prospects import LoadProspects, FindAndScoreProspects  # noqa: F401
from .enrich_contacts import LoadContactsPendingEnrichment, EnrichContacts  # noqa: F401
from .match_prospects_ai import MatchProspectsWithAI  # noqa: F401
