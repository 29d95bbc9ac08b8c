from datetime import datetime, timezone

import pytest

from cm_core_lib.config import DataStoreSettings
from cm_core_lib.models import CaseRecord


@pytest.fixture
def now():
    return datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def store_settings():
    return DataStoreSettings(
        base_url="https://example.supabase.co",
        api_key="test-key",
        page_size=2,
    )


@pytest.fixture
def sample_cases():
    return [
        CaseRecord(
            id="1",
            title="Hospital equipment procurement markup",
            estimated_losses=1_000_000_000,
            asset_recovery=250_000_000,
            severity_score=8.5,
            case_status="closed",
            government_level="provincial",
            corruption_type=["embezzlement", "bribery"],
            sector="Health",
            regions_affected=["Jawa Barat", "Banten"],
            created_at=datetime(2024, 3, 2, tzinfo=timezone.utc),
            published_date=datetime(2024, 3, 3, tzinfo=timezone.utc),
        ),
        CaseRecord(
            id="2",
            title="Village fund misuse",
            estimated_losses=500_000_000,
            severity_score=4.0,
            case_status="investigation",
            government_level="village",
            corruption_type=["embezzlement"],
            sector="Rural Development",
            regions_affected=["Jawa Barat"],
            created_at=datetime(2024, 3, 10, tzinfo=timezone.utc),
            published_date=datetime(2024, 3, 11, tzinfo=timezone.utc),
        ),
        CaseRecord(
            id="3",
            title="Port licensing bribes",
            estimated_losses=2_000_000_000,
            asset_recovery=100_000_000,
            case_status="trial",
            government_level="national",
            corruption_type=["bribery"],
            sector="Health",
            created_at=datetime(2024, 2, 20, tzinfo=timezone.utc),
            published_date=datetime(2024, 2, 21, tzinfo=timezone.utc),
        ),
    ]
