"""
Shared fixtures. The fakes themselves live in ``fakes.py``.
"""

from typing import Any
from uuid import uuid4

import pytest

from fakes import FakeFetcher


@pytest.fixture
def nonprofit_profile() -> dict[str, Any]:
    return {
        "id": str(uuid4()),
        "name": "Harbor Literacy Project",
        "profile_type": "nonprofit",
        "organization_type": "501(c)(3)",
        "city": "Oakland",
        "state": "CA",
        "focus_areas": ["education", "youth"],
        "keywords": "reading, tutoring",
    }


@pytest.fixture
def student_profile() -> dict[str, Any]:
    return {
        "id": str(uuid4()),
        "name": "Maya Torres",
        "profile_type": "high_school",
        "state": "TX",
        "first_gen_college": True,
        "ethnicity": "Hispanic",
        "intended_major": "Engineering",
        "target_colleges": ["Rice University"],
    }


@pytest.fixture
def individual_profile() -> dict[str, Any]:
    return {
        "id": str(uuid4()),
        "name": "Dana Reyes",
        "profile_type": "individual",
        "state": "OH",
        "low_income": "yes",
    }


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()
