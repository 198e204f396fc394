"""
Actor roles enumeration.

Defines the operational roles of the shipment pipeline.
"""

import enum


class ActorRole(str, enum.Enum):
    """
    Actor role enumeration.

    Roles:
        ADMIN: Supervises the whole pipeline; owns every region phase
        ORIGIN_AGENT: Buys, receives, checks and packs goods in the origin country
        HUB_AGENT: Receives and repacks shipments in the hub country
        DESTINATION_AGENT: Clears and delivers shipments in the destination country
    """
    ADMIN = "ADMIN"
    ORIGIN_AGENT = "ORIGIN_AGENT"
    HUB_AGENT = "HUB_AGENT"
    DESTINATION_AGENT = "DESTINATION_AGENT"
