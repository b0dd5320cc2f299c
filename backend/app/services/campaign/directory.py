"""
Campaign Directory

Narrow adapters over the campaign, organizer and contract tables.
These are the only entry points closure uses into modules it does not own.

Writes are flushed, never committed: the caller owns the transaction.
"""
from datetime import datetime
from typing import Union

from sqlalchemy.orm import Session

from app.models.closure import CampaignInfo
from app.models.db_models import (
    CampaignDB,
    CampaignContractDB,
    CampaignStatus,
    OrganizerDB,
)
from .status_machine import CampaignStatusMachine


class CampaignNotFoundError(LookupError):
    """Raised when a campaign id does not resolve."""
    pass


class OrganizerNotFoundError(LookupError):
    """Raised when an organizer id does not resolve."""
    pass


class CampaignDirectory:
    """Campaign lookup and status updates."""

    def __init__(self, db: Session):
        self.db = db
        self.state_machine = CampaignStatusMachine()

    def get_campaign_for_closure(self, campaign_id: str) -> CampaignInfo:
        campaign = self.db.query(CampaignDB).filter(CampaignDB.id == campaign_id).first()
        if not campaign:
            raise CampaignNotFoundError(f"Campaign not found: {campaign_id}")

        return CampaignInfo(
            id=campaign.id,
            title=campaign.title,
            goal=campaign.goal or 0.0,
            organizer_id=campaign.organizer_id,
            status=campaign.status,
            start_date=campaign.start_date,
            end_date=campaign.end_date,
        )

    def update_status(self, campaign_id: str, status: Union[CampaignStatus, str]) -> CampaignStatus:
        """
        Move a campaign to a new status through the state machine.

        Raises:
            CampaignNotFoundError: Unknown campaign
            CampaignStatusTransitionError: Illegal transition
        """
        campaign = self.db.query(CampaignDB).filter(CampaignDB.id == campaign_id).first()
        if not campaign:
            raise CampaignNotFoundError(f"Campaign not found: {campaign_id}")

        new_status = self.state_machine.transition(campaign.status, status)
        campaign.status = new_status.value
        campaign.updated_at = datetime.utcnow()
        self.db.flush()
        return new_status


class OrganizerDirectory:
    """Organizer display-name lookup."""

    def __init__(self, db: Session):
        self.db = db

    def get_organizer_name(self, organizer_id: str) -> str:
        organizer = self.db.query(OrganizerDB).filter(OrganizerDB.id == organizer_id).first()
        if not organizer or not organizer.name:
            raise OrganizerNotFoundError(f"Organizer not found: {organizer_id}")
        return organizer.name


class ContractRegistry:
    """Signed-contract check."""

    def __init__(self, db: Session):
        self.db = db

    def has_contract(self, campaign_id: str) -> bool:
        with self.db.begin_nested():
            count = self.db.query(CampaignContractDB).filter(
                CampaignContractDB.campaign_id == campaign_id
            ).count()
        return count > 0
