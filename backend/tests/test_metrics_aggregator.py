"""
Closure Metrics Aggregator Tests

Tests verify:
1. Metric groups are merged into one ClosureMetrics
2. Hard dependencies (donations, receipts, activities) abort with DependencyError
3. Best-effort dependencies (alerts, contract) degrade to safe defaults
4. Repository queries against real tables
"""
from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest

from app.models.closure import (
    ActivityMetrics,
    AlertMetrics,
    CampaignInfo,
    DonationMetrics,
    ReceiptMetrics,
)
from app.models.db_models import AlertStatus, DonationStatus
from app.services.campaign import ContractRegistry
from app.services.closure import ClosureMetricsAggregator, ClosureRepository, DependencyError
from app.services.closure.repository import DEFAULT_DAYS_BETWEEN_ACTIVITIES, average_days_between


@pytest.fixture
def campaign():
    return CampaignInfo(
        id="camp_001",
        title="Comedor Infantil",
        goal=1000.0,
        organizer_id="org_001",
        status="active",
        start_date=datetime(2026, 1, 1),
        end_date=datetime(2026, 4, 1),
    )


@pytest.fixture
def mock_repository():
    repository = MagicMock()
    repository.get_donation_metrics.return_value = DonationMetrics(
        total_raised=750.0, total_donors=12, total_donations=20,
    )
    repository.get_receipt_metrics.return_value = ReceiptMetrics(
        total_expenses=600.0, total_receipts=4, receipts_with_documents=3,
    )
    repository.get_activity_metrics.return_value = ActivityMetrics(
        total_activities=5, average_days_between_activities=9.5,
    )
    repository.get_alert_metrics.return_value = AlertMetrics(alerts_count=2, alerts_resolved=1)
    return repository


@pytest.fixture
def mock_contracts():
    contracts = MagicMock()
    contracts.has_contract.return_value = True
    return contracts


# =============================================================================
# AGGREGATION
# =============================================================================

class TestAggregate:

    def test_merges_all_metric_groups(self, mock_repository, mock_contracts, campaign):
        metrics = ClosureMetricsAggregator(mock_repository, mock_contracts).aggregate(campaign, "Fundacion Sonrisas")

        assert metrics.campaign_goal == 1000.0
        assert metrics.campaign_start == campaign.start_date
        assert metrics.campaign_end == campaign.end_date
        assert metrics.organizer_name == "Fundacion Sonrisas"
        assert metrics.organizer_id == "org_001"
        assert metrics.total_raised == 750.0
        assert metrics.total_donors == 12
        assert metrics.receipts_with_documents == 3
        assert metrics.average_days_between_activities == 9.5
        assert metrics.alerts_count == 2
        assert metrics.alerts_resolved == 1
        assert metrics.has_contract is True

    @pytest.mark.parametrize("method", [
        "get_donation_metrics",
        "get_receipt_metrics",
        "get_activity_metrics",
    ])
    def test_hard_dependency_failure_aborts(self, mock_repository, mock_contracts, campaign, method):
        getattr(mock_repository, method).side_effect = RuntimeError("connection reset")

        with pytest.raises(DependencyError, match="camp_001") as exc_info:
            ClosureMetricsAggregator(mock_repository, mock_contracts).aggregate(campaign, "Org")

        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_alert_failure_degrades_to_zero(self, mock_repository, mock_contracts, campaign):
        mock_repository.get_alert_metrics.side_effect = RuntimeError("alerts table missing")

        metrics = ClosureMetricsAggregator(mock_repository, mock_contracts).aggregate(campaign, "Org")

        assert metrics.alerts_count == 0
        assert metrics.alerts_resolved == 0
        assert metrics.total_raised == 750.0

    def test_contract_failure_degrades_to_no_contract(self, mock_repository, mock_contracts, campaign):
        mock_contracts.has_contract.side_effect = RuntimeError("contracts service down")

        metrics = ClosureMetricsAggregator(mock_repository, mock_contracts).aggregate(campaign, "Org")

        assert metrics.has_contract is False


# =============================================================================
# CADENCE
# =============================================================================

class TestAverageDaysBetween:

    def test_default_with_fewer_than_two_dates(self):
        assert average_days_between([]) == DEFAULT_DAYS_BETWEEN_ACTIVITIES
        assert average_days_between([datetime(2026, 1, 1)]) == DEFAULT_DAYS_BETWEEN_ACTIVITIES

    def test_sorts_before_averaging(self):
        dates = [datetime(2026, 1, 21), datetime(2026, 1, 1), datetime(2026, 1, 11)]
        assert average_days_between(dates) == pytest.approx(10.0)

    def test_fractional_days(self):
        dates = [datetime(2026, 1, 1), datetime(2026, 1, 1, 12)]
        assert average_days_between(dates) == pytest.approx(0.5)


# =============================================================================
# REPOSITORY QUERIES
# =============================================================================

class TestRepositoryMetrics:

    def test_only_completed_donations_count(self, db, seed_campaign, add_donation):
        campaign_id = seed_campaign()
        add_donation(campaign_id, 100.0, donor_id="donor_a")
        add_donation(campaign_id, 50.0, donor_id="donor_a")
        add_donation(campaign_id, 25.0, donor_id="donor_b")
        add_donation(campaign_id, 999.0, donor_id="donor_c", status=DonationStatus.REFUNDED)

        metrics = ClosureRepository(db).get_donation_metrics(campaign_id)

        assert metrics.total_raised == 175.0
        assert metrics.total_donors == 2
        assert metrics.total_donations == 3

    def test_receipts_with_documents_ignores_empty_urls(self, db, seed_campaign, add_receipt):
        campaign_id = seed_campaign()
        add_receipt(campaign_id, 100.0)
        add_receipt(campaign_id, 50.0, document_url="")
        add_receipt(campaign_id, 25.0, document_url=None)

        metrics = ClosureRepository(db).get_receipt_metrics(campaign_id)

        assert metrics.total_expenses == 175.0
        assert metrics.total_receipts == 3
        assert metrics.receipts_with_documents == 1

    def test_activity_cadence(self, db, seed_campaign, add_activity, fixed_now):
        campaign_id = seed_campaign()
        for offset in (0, 7, 14):
            add_activity(campaign_id, fixed_now - timedelta(days=offset))

        metrics = ClosureRepository(db).get_activity_metrics(campaign_id)

        assert metrics.total_activities == 3
        assert metrics.average_days_between_activities == pytest.approx(7.0)

    def test_alerts_and_contract(self, db, seed_campaign, add_alert, add_contract):
        campaign_id = seed_campaign()
        add_alert(campaign_id)
        add_alert(campaign_id, status=AlertStatus.RESOLVED)
        add_contract(campaign_id)

        alerts = ClosureRepository(db).get_alert_metrics(campaign_id)

        assert alerts.alerts_count == 2
        assert alerts.alerts_resolved == 1
        assert ContractRegistry(db).has_contract(campaign_id) is True

    def test_empty_campaign(self, db, seed_campaign):
        campaign_id = seed_campaign()
        repository = ClosureRepository(db)

        assert repository.get_donation_metrics(campaign_id) == DonationMetrics()
        assert repository.get_receipt_metrics(campaign_id) == ReceiptMetrics()
        assert repository.get_activity_metrics(campaign_id).average_days_between_activities == 30.0
        assert repository.get_alert_metrics(campaign_id) == AlertMetrics()
        assert ContractRegistry(db).has_contract(campaign_id) is False
