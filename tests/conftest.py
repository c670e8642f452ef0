import json

import pytest
from httpx import ASGITransport, AsyncClient

from careplan.api.main import app
from careplan.services import clinics as clinics_service
from careplan.services import reference_data
from careplan.services.clinics import ClinicDirectory
from careplan.services.metrics import metrics
from careplan.services.reference_data import ReferenceTable

REFERENCE_HEADER = (
    "Outcome,Grouping category,Group,Percentage,Confidence Interval,Title,Description,Year"
)

# Eligible rows (2019, "Age groups with 65+"): 18-44 -> 4.0, 45-64 -> 14.0, 65+ -> 20.0
REFERENCE_CSV = "\n".join(
    [
        REFERENCE_HEADER,
        "Diabetes,Total,18 and over,10.0,9.5-10.5,Diagnosed diabetes,Adults ever told,2019",
        "Diabetes,Age groups with 65+,18-44,4.0,3.5-4.5,Diagnosed diabetes,Adults ever told,2019",
        "Diabetes,Age groups with 65+,45-64,14.0,13.1-14.9,Diagnosed diabetes,Adults ever told,2019",
        "Diabetes,Age groups with 65+,65+,20.0,19.0-21.0,Diagnosed diabetes,Adults ever told,2019",
        "Diabetes,Age groups with 75+,65-74,18.0,17.0-19.0,Diagnosed diabetes,Adults ever told,2019",
        "Diabetes,Age groups with 65+,18-44,90.0,89.0-91.0,Diagnosed diabetes,Adults ever told,2018",
    ]
) + "\n"

CLINICS = [
    {"OBJECTID": 1, "NAME": "Midtown Primary Care", "LAT": 40.75, "LON": -73.98,
     "SPECIALTY": "Primary Care"},
    {"OBJECTID": 2, "NAME": "Harlem Heart Center", "LAT": 40.81, "LON": -73.94,
     "SPECIALTY": "Cardiology"},
    {"OBJECTID": 3, "NAME": "Queens Family Clinic", "LAT": 40.72, "LON": -73.79,
     "SPECIALTY": "Family Medicine, Cardiology"},
]


@pytest.fixture
def write_csv(tmp_path):
    """Write *text* to a fresh CSV file and return its path."""
    counter = iter(range(1_000))

    def _write(text: str):
        path = tmp_path / f"reference_{next(counter)}.csv"
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture(autouse=True)
def reference_table(write_csv, monkeypatch):
    """Point the process-wide reference table at the fixture CSV."""
    table = ReferenceTable(write_csv(REFERENCE_CSV))
    monkeypatch.setattr(reference_data, "reference_table", table)
    return table


@pytest.fixture(autouse=True)
def clinic_directory(tmp_path, monkeypatch):
    path = tmp_path / "clinics.json"
    path.write_text(json.dumps(CLINICS), encoding="utf-8")
    directory = ClinicDirectory(path)
    monkeypatch.setattr(clinics_service, "clinic_directory", directory)
    return directory


@pytest.fixture(autouse=True)
def _reset_metrics():
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
