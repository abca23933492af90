"""
Pytest fixtures for the fiscal dashboard tests.

Provides small in-memory tables shaped like the three backing tables, a
MemorySource serving them, and a loader config that never sleeps between
retries.  No network access is required by any test.
"""
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from engine.source import MemorySource
from utils.config import LoaderConfig


@pytest.fixture()
def capital_rows():
    """Capital appropriation rows: two agencies plus one blank agency."""
    return [
        {"Agency Name": "Department of Transportation", "Description": "Bridge repair",
         "Program Name": "Highways", "Reference Number": "T-1",
         "Financing Source": "Capital Projects Fund",
         "Appropriations Recommended 2026-27": "$1,500,000",
         "Reappropriations Recommended 2026-27": "250000"},
        {"Agency Name": "Department of Health", "Description": None,
         "Program Name": "Lab modernization", "Reference Number": "H-1",
         "Financing Source": None,
         "Appropriations Recommended 2026-27": "400,000",
         "Reappropriations Recommended 2026-27": None},
        {"Agency Name": "Department of Transportation", "Description": "Rail yard",
         "Program Name": "Rail", "Reference Number": "T-2",
         "Financing Source": "General Fund",
         "Appropriations Recommended 2026-27": 2_000_000,
         "Reappropriations Recommended 2026-27": ""},
        {"Agency Name": "  ", "Description": "Orphan line",
         "Program Name": None, "Reference Number": None,
         "Financing Source": None,
         "Appropriations Recommended 2026-27": "n/a",
         "Reappropriations Recommended 2026-27": None},
    ]


@pytest.fixture()
def grant_rows():
    return [
        {"id": 1, "year": 2024, "agency_name": "Parks", "Grant Amount": "$50,000",
         "Grantee": "[Town of Ithaca]", "Description of Grant": "Playground",
         "Approval Date": "2024-03-01", "Sponsor": "Smith"},
        {"id": 2, "year": 2024, "agency_name": "Parks", "Grant Amount": "$125,000",
         "Grantee": "Friends of the Park", "Description of Grant": None,
         "Approval Date": None, "Sponsor": None},
        {"id": 3, "year": 2023, "agency_name": "Education", "Grant Amount": "75000",
         "Grantee": "[]", "Description of Grant": "Library books",
         "Approval Date": "2023-09-12", "Sponsor": "Jones"},
    ]


@pytest.fixture()
def revenue_rows():
    """Revenue rows; fiscal-year cells are in millions of dollars."""
    return [
        {"id": 1, "Detail_Receipt": "Personal income tax", "FP_Category": "Taxes",
         "Fund_Group": "General Fund", "2021-22": "50000.5", "2022-23": "52,000.25"},
        {"id": 2, "Detail_Receipt": "Motor fuel tax", "FP_Category": "Taxes",
         "Fund_Group": "Special Revenue", "2021-22": "500", "2022-23": None},
        {"id": 3, "Detail_Receipt": None, "FP_Category": None,
         "Fund_Group": "General Fund", "2021-22": "1.5", "2022-23": "2"},
    ]


@pytest.fixture()
def memory_source(capital_rows, grant_rows, revenue_rows):
    return MemorySource({
        "budget_2027_capital_aprops": capital_rows,
        "Discretionary": grant_rows,
        "Revenue": revenue_rows,
    })


@pytest.fixture()
def fast_config():
    """Small pages, one retry, no backoff delay."""
    return LoaderConfig(page_size=2, page_timeout=5.0, max_retries=1, backoff_factor=0.0)
