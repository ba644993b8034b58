from .llm import LLMClientPort
from .repos import ContactsRepoPort, ProspectsRepoPort
from .providers import NetworkGraphPort, PersonEnrichmentPort

__all__ = [
    "LLMClientPort",
    "ContactsRepoPort",
    "ProspectsRepoPort",
    "NetworkGraphPort",
    "PersonEnrichmentPort",
]
