"""
Campaign Lifecycle - Service Package

Status machine plus the read/write adapters closure uses to talk to the
campaign, organizer and contract modules.
"""
from .status_machine import (
    CampaignStatusMachine,
    CampaignStatusTransitionError,
    can_transition_to,
)
from .directory import CampaignDirectory, OrganizerDirectory, ContractRegistry

__all__ = [
    "CampaignStatusMachine",
    "CampaignStatusTransitionError",
    "can_transition_to",
    "CampaignDirectory",
    "OrganizerDirectory",
    "ContractRegistry",
]
