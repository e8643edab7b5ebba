"""Member-related enums."""

from enum import Enum


class Pathway(str, Enum):
    """Discipleship pipelines a member can be on."""

    NEWCOMER = "NEWCOMER"
    NEW_BELIEVER = "NEW_BELIEVER"


class MemberStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INTEGRATED = "INTEGRATED"  # Finished the last stage of their pathway
    INACTIVE = "INACTIVE"


class NoteKind(str, Enum):
    """Who produced a note: a staff user or the system itself."""

    USER = "USER"
    SYSTEM = "SYSTEM"


class MessageChannel(str, Enum):
    SMS = "SMS"
    EMAIL = "EMAIL"


class MessageDirection(str, Enum):
    INBOUND = "INBOUND"
    OUTBOUND = "OUTBOUND"


class ResourceType(str, Enum):
    PDF = "PDF"
    VIDEO = "VIDEO"
    LINK = "LINK"
    DOC = "DOC"
