"""Port interfaces - Layer boundary contracts.

    IdentityStorePort         - users and their stored roles
    ConversationRegistryPort  - conversations and participant sets
    LabelStorePort            - label catalog and conversation assignments
"""

from src.ports.conversation_registry import ConversationRegistryPort
from src.ports.identity_store import IdentityStorePort
from src.ports.label_store import LabelStorePort

__all__ = [
    "ConversationRegistryPort",
    "IdentityStorePort",
    "LabelStorePort",
]
