"""
Migration: Add campaign closure tables.

Creates 2 new tables:
1. campaign_closure_reports - One frozen closure record per campaign
2. closure_document_jobs - Outbox for audit document generation

The unique index on campaign_closure_reports.campaign_id is what guarantees
at most one closure report per campaign under concurrent requests.
"""
from sqlalchemy import create_engine, text
import os

# Use same DB URL pattern as main app
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql://{os.getenv('USER', 'postgres')}@localhost:5432/donations"
)


def table_exists(conn, table_name: str) -> bool:
    """Check if a table exists in the database."""
    result = conn.execute(text("""
        SELECT EXISTS (
            SELECT FROM information_schema.tables
            WHERE table_name = :table_name
        )
    """), {"table_name": table_name})
    return result.fetchone()[0]


def run_migration():
    """Create campaign closure tables."""
    engine = create_engine(DATABASE_URL)

    with engine.connect() as conn:
        # =================================================================
        # TABLE 1: campaign_closure_reports
        # =================================================================
        if table_exists(conn, "campaign_closure_reports"):
            print("campaign_closure_reports table already exists")
        else:
            conn.execute(text("""
                CREATE TABLE campaign_closure_reports (
                    id VARCHAR(36) PRIMARY KEY,
                    campaign_id VARCHAR(36) NOT NULL REFERENCES campaigns(id),
                    closure_type VARCHAR(50) NOT NULL,
                    closure_reason TEXT,
                    closed_by VARCHAR(36),
                    total_raised FLOAT NOT NULL DEFAULT 0,
                    total_donors INTEGER NOT NULL DEFAULT 0,
                    total_donations INTEGER NOT NULL DEFAULT 0,
                    campaign_goal FLOAT NOT NULL,
                    goal_percentage FLOAT NOT NULL DEFAULT 0,
                    total_expenses FLOAT NOT NULL DEFAULT 0,
                    total_receipts INTEGER NOT NULL DEFAULT 0,
                    receipts_with_documents INTEGER NOT NULL DEFAULT 0,
                    total_activities INTEGER NOT NULL DEFAULT 0,
                    average_days_between_activities FLOAT NOT NULL DEFAULT 30,
                    transparency_score FLOAT NOT NULL DEFAULT 0,
                    transparency_breakdown JSON,
                    alerts_count INTEGER NOT NULL DEFAULT 0,
                    alerts_resolved INTEGER NOT NULL DEFAULT 0,
                    has_contract BOOLEAN NOT NULL DEFAULT FALSE,
                    report_pdf_url TEXT,
                    report_hash VARCHAR(64),
                    closed_at TIMESTAMP NOT NULL,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """))
            conn.execute(text("""
                CREATE UNIQUE INDEX ix_campaign_closure_reports_campaign_id
                ON campaign_closure_reports(campaign_id)
            """))
            print("Created campaign_closure_reports table")

        # =================================================================
        # TABLE 2: closure_document_jobs
        # =================================================================
        if table_exists(conn, "closure_document_jobs"):
            print("closure_document_jobs table already exists")
        else:
            conn.execute(text("""
                CREATE TABLE closure_document_jobs (
                    id VARCHAR(36) PRIMARY KEY,
                    campaign_id VARCHAR(36) NOT NULL REFERENCES campaigns(id),
                    report_id VARCHAR(36) NOT NULL REFERENCES campaign_closure_reports(id),
                    scheduled_for TIMESTAMP NOT NULL,
                    executed_at TIMESTAMP,
                    status VARCHAR(20) DEFAULT 'pending',
                    attempts INTEGER NOT NULL DEFAULT 0,
                    error_message TEXT,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """))
            conn.execute(text("""
                CREATE INDEX ix_closure_document_jobs_campaign_id ON closure_document_jobs(campaign_id)
            """))
            conn.execute(text("""
                CREATE INDEX ix_closure_document_jobs_status ON closure_document_jobs(status)
            """))
            print("Created closure_document_jobs table")

        conn.commit()
        print("\nCampaign closure migration completed successfully!")


def rollback_migration():
    """Drop campaign closure tables (jobs first, they reference reports)."""
    engine = create_engine(DATABASE_URL)

    with engine.connect() as conn:
        for table in ["closure_document_jobs", "campaign_closure_reports"]:
            conn.execute(text(f"DROP TABLE IF EXISTS {table}"))
            print(f"Dropped {table} table")

        conn.commit()
        print("\nCampaign closure rollback completed!")


if __name__ == "__main__":
    import sys
    if len(sys.argv) > 1 and sys.argv[1] == "rollback":
        rollback_migration()
    else:
        run_migration()
