import os
import random
import sys
import tempfile
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Add the project root to sys.path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app_factory import create_app
from utils import database
from utils.ai_drafting import ClinicalDraftService, MockProvider
from utils.care_service import CareService


@pytest.fixture
def test_db():
    """Point the data layer at a temporary SQLite file"""
    fd, temp_path = tempfile.mkstemp(suffix='.db')
    os.close(fd)

    original_path = database.DB_PATH
    database.set_db_path(temp_path)
    database.init_db()

    yield temp_path

    database.set_db_path(original_path)
    os.unlink(temp_path)


@pytest.fixture
def draft_service():
    """Drafting service that only ever uses deterministic mock responses"""
    return ClinicalDraftService({}, default_provider='mock', mock=MockProvider(rng=random.Random(7)))


@pytest.fixture
def service(test_db, draft_service):
    return CareService(draft_service)


@pytest.fixture
def app():
    fd, temp_path = tempfile.mkstemp(suffix='.db')
    os.close(fd)
    original_path = database.DB_PATH

    app = create_app('testing', {'DB_PATH': temp_path})

    yield app

    database.set_db_path(original_path)
    os.unlink(temp_path)


@pytest.fixture
def client(app):
    """Create a test client"""
    with app.test_client() as client:
        yield client


@pytest.fixture
def doctor_id(service):
    return service.register_doctor("Dr. Sarah Chen", "Endocrinology")


@pytest.fixture
def patient_id(service):
    return service.register_patient("John Doe", "Type 2 Diabetes", "john@example.com")


@pytest.fixture
def assigned_patient_id(service, patient_id, doctor_id):
    result = service.assign_patient_to_doctor(patient_id, doctor_id)
    assert result.is_ok
    return patient_id


@pytest.fixture
def mock_groq_client():
    """Mock Groq client for testing"""
    mock = MagicMock()
    mock.chat.completions.create.return_value = MagicMock(
        choices=[MagicMock(message=MagicMock(content="Test response"))]
    )
    return mock


@pytest.fixture
def structured_draft():
    """A clinical draft in the format the decision-support prompt asks for"""
    return """## PATIENT HISTORY SUMMARY
- Type 2 diabetes diagnosed 2019
- Metformin 500mg twice daily

## SYMPTOM ANALYSIS
- Fatigue and thirst for 3 days

## CLINICAL RECOMMENDATIONS FOR PROVIDER

### Immediate Assessment & Management:
- Check fasting blood glucose
- Review hydration status

### Differential Diagnosis Considerations:
- Hyperglycemia
- Urinary tract infection

### Treatment Plan Options:
- Adjust metformin dose

### Follow-up & Monitoring:
- Follow up in 1 week

### Patient Communication Points:
- Explain warning signs of ketoacidosis
"""
