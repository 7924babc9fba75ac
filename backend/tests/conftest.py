"""Shared fixtures: a sample brief, the offline generator and an API client."""

from __future__ import annotations

import copy

import pytest
from httpx import ASGITransport, AsyncClient

from superarchitect.api.dependencies import get_generator
from superarchitect.api.main import app
from superarchitect.api.routes.runs import clear_runs
from superarchitect.api.routes.sessions import clear_sessions
from superarchitect.generators.mock import MockGenerator
from superarchitect.models.contracts import Brief, Dimensions, FlatConfiguration

BRIEF_PAYLOAD = {
    "project_name": "Courtyard House",
    "space_type": "Residential",
    "sub_spaces": ["Apartment"],
    "custom_preference": "Warm, shaded, lots of greenery",
    "dimensions": {"length": 20, "width": 12, "height": 3.2, "unit": "meters"},
    "structural_constraints": "Keep the existing party walls",
    "location": "Chennai, India",
    "flat_configuration": {"bhk": 2, "num_bathrooms": 2, "num_balconies": 1},
}


@pytest.fixture
def brief_payload() -> dict:
    return copy.deepcopy(BRIEF_PAYLOAD)


@pytest.fixture
def brief() -> Brief:
    return Brief(
        project_name="Courtyard House",
        space_type="Residential",
        sub_spaces=("Apartment",),
        custom_preference="Warm, shaded, lots of greenery",
        dimensions=Dimensions(length=20, width=12, height=3.2),
        structural_constraints="Keep the existing party walls",
        location="Chennai, India",
        flat_configuration=FlatConfiguration(bhk=2, num_bathrooms=2, num_balconies=1),
    )


@pytest.fixture
def mock_generator() -> MockGenerator:
    return MockGenerator()


@pytest.fixture
async def client(mock_generator):
    """AsyncClient over the ASGI app with the offline generator injected."""
    app.dependency_overrides[get_generator] = lambda: mock_generator
    clear_runs()
    clear_sessions()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
    clear_runs()
    clear_sessions()
