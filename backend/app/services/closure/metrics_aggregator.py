"""
Closure Metrics Aggregator

Collects everything the scoring engine needs for one campaign.

Hard dependencies (abort on failure):
- donation metrics
- receipt metrics
- activity metrics

Best-effort dependencies (degrade to safe defaults, never abort):
- alert metrics → zero counts
- contract check → no contract
"""

import logging

from app.models.closure import AlertMetrics, CampaignInfo, ClosureMetrics
from .exceptions import DependencyError


logger = logging.getLogger(__name__)


class ClosureMetricsAggregator:
    """
    Builds ClosureMetrics from collaborator data sources.

    Usage:
        aggregator = ClosureMetricsAggregator(repository, contract_registry)
        metrics = aggregator.aggregate(campaign_info, organizer_name)
    """

    def __init__(self, repository, contract_registry):
        self.repository = repository
        self.contract_registry = contract_registry

    def aggregate(self, campaign: CampaignInfo, organizer_name: str) -> ClosureMetrics:
        """
        Gather donation, receipt, activity and alert metrics for a campaign.

        Raises:
            DependencyError: If a hard dependency fails
        """
        campaign_id = campaign.id

        try:
            donations = self.repository.get_donation_metrics(campaign_id)
        except Exception as e:
            raise DependencyError(f"Failed to get donation metrics for campaign {campaign_id}: {e}") from e

        try:
            receipts = self.repository.get_receipt_metrics(campaign_id)
        except Exception as e:
            raise DependencyError(f"Failed to get receipt metrics for campaign {campaign_id}: {e}") from e

        try:
            activities = self.repository.get_activity_metrics(campaign_id)
        except Exception as e:
            raise DependencyError(f"Failed to get activity metrics for campaign {campaign_id}: {e}") from e

        alerts = self._alert_metrics(campaign_id)
        has_contract = self._has_contract(campaign_id)

        return ClosureMetrics(
            campaign_goal=campaign.goal,
            campaign_start=campaign.start_date,
            campaign_end=campaign.end_date,
            has_contract=has_contract,
            campaign_title=campaign.title,
            organizer_name=organizer_name,
            organizer_id=campaign.organizer_id,
            total_raised=donations.total_raised,
            total_donors=donations.total_donors,
            total_donations=donations.total_donations,
            total_expenses=receipts.total_expenses,
            total_receipts=receipts.total_receipts,
            receipts_with_documents=receipts.receipts_with_documents,
            total_activities=activities.total_activities,
            average_days_between_activities=activities.average_days_between_activities,
            alerts_count=alerts.alerts_count,
            alerts_resolved=alerts.alerts_resolved,
        )

    def _alert_metrics(self, campaign_id: str) -> AlertMetrics:
        try:
            return self.repository.get_alert_metrics(campaign_id)
        except Exception as e:
            logger.warning(f"Alert metrics unavailable for campaign {campaign_id}, assuming none: {e}")
            return AlertMetrics()

    def _has_contract(self, campaign_id: str) -> bool:
        try:
            return bool(self.contract_registry.has_contract(campaign_id))
        except Exception as e:
            logger.warning(f"Contract check failed for campaign {campaign_id}, assuming no contract: {e}")
            return False
