import random
from unittest.mock import MagicMock, patch

import pytest
import requests

from utils.ai_drafting import (
    ClinicalDraftService,
    DraftingError,
    DraftRequestError,
    GroqProvider,
    MockProvider,
    NovitaProvider,
    create_clinical_decision_prompt,
    validate_query_request,
)
from utils.groq_integration import GroqIntegrationError


@pytest.mark.parametrize("query_text, condition, code", [
    (None, "Diabetes", "INVALID_QUERY_TEXT"),
    (42, "Diabetes", "INVALID_QUERY_TEXT"),
    ("Headache", "", "INVALID_CONDITION"),
    ("Headache", ["Diabetes"], "INVALID_CONDITION"),
    ("   ", "Diabetes", "EMPTY_QUERY"),
])
def test_validate_query_request_rejects(query_text, condition, code):
    is_valid, error, error_code = validate_query_request(query_text, condition)

    assert not is_valid
    assert error
    assert error_code == code


def test_validate_query_request_accepts():
    assert validate_query_request("Headache", "Diabetes") == (True, None, None)


def test_clinical_prompt_contains_inputs_and_headings():
    prompt = create_clinical_decision_prompt("Feeling dizzy", "Hypertension")

    assert 'PATIENT PRESENTATION: "Feeling dizzy"' in prompt
    assert "PATIENT INFORMATION: Hypertension" in prompt
    assert "## SYMPTOM ANALYSIS" in prompt
    assert "### Patient Communication Points:" in prompt


def test_mock_provider_picks_condition_responses():
    mock = MockProvider(rng=random.Random(1))

    diabetes = mock.generate("Sugar is high", "Type 2 Diabetes")
    pressure = mock.generate("Dizzy", "High Blood Pressure")
    general = mock.generate("Rash", "Eczema")

    assert "diabetes" in diabetes.lower()
    assert any(r in pressure for r in mock.responses['hypertension'])
    assert any(r in general for r in mock.responses['general'])
    assert general.endswith('**Note: This is an AI-generated response for your "Rash" query. '
                            'Always consult your healthcare provider for medical decisions.**')


def test_mock_provider_custom_responses():
    mock = MockProvider()
    mock.add_custom_response("Asthma", "Keep your rescue inhaler nearby.")

    assert "asthma" in mock.get_available_conditions()
    assert mock.generate("Wheezing", "asthma").startswith("Keep your rescue inhaler nearby.")


def test_groq_provider_wraps_integration_errors():
    provider = GroqProvider("test_key")

    with patch('utils.ai_drafting.get_groq_response', side_effect=GroqIntegrationError("boom")):
        with pytest.raises(DraftingError):
            provider.generate("Headache", "Migraine")


def test_groq_provider_sends_clinical_prompt():
    provider = GroqProvider("test_key", model="test-model")

    with patch('utils.ai_drafting.get_groq_response', return_value="## SYMPTOM ANALYSIS\n- ok") as mock_call:
        assert provider.generate("Headache", "Migraine") == "## SYMPTOM ANALYSIS\n- ok"

    args, kwargs = mock_call.call_args
    assert '"Headache"' in args[0]
    assert kwargs['model'] == "test-model"


def test_novita_provider_posts_chat_completion():
    provider = NovitaProvider("novita_key")
    response = MagicMock()
    response.json.return_value = {'choices': [{'message': {'content': 'Clinical draft'}}]}

    with patch('utils.ai_drafting.requests.post', return_value=response) as mock_post:
        assert provider.generate("Headache", "Migraine") == 'Clinical draft'

    _, kwargs = mock_post.call_args
    assert kwargs['headers']['Authorization'] == 'Bearer novita_key'
    assert kwargs['json']['model'] == 'baichuan/baichuan-m2-32b'
    assert kwargs['json']['messages'][1]['role'] == 'user'


def test_novita_provider_http_error():
    provider = NovitaProvider("novita_key")

    with patch('utils.ai_drafting.requests.post', side_effect=requests.ConnectionError("down")):
        with pytest.raises(DraftingError):
            provider.generate("Headache", "Migraine")


def test_novita_provider_malformed_body():
    provider = NovitaProvider("novita_key")
    response = MagicMock()
    response.json.return_value = {'choices': []}

    with patch('utils.ai_drafting.requests.post', return_value=response):
        with pytest.raises(DraftingError):
            provider.generate("Headache", "Migraine")


def test_process_query_metadata(draft_service):
    result = draft_service.process_query("  Headache since morning  ", "  Migraine  ")

    metadata = result['metadata']
    assert metadata['provider'] == 'mock'
    assert metadata['condition'] == 'Migraine'
    assert metadata['queryLength'] == len("Headache since morning")
    assert metadata['responseId'].startswith('query_')
    assert metadata['timestamp']
    assert 'Headache since morning' in result['response']


def test_process_query_truncates_inputs(draft_service):
    result = draft_service.process_query("x" * 1500, "y" * 150)

    assert result['metadata']['queryLength'] == 1000
    assert result['metadata']['condition'] == "y" * 100


def test_process_query_invalid_request(draft_service):
    with pytest.raises(DraftRequestError) as exc_info:
        draft_service.process_query("", "Diabetes")

    assert exc_info.value.code == 'INVALID_QUERY_TEXT'


def test_unconfigured_provider_uses_mock():
    service = ClinicalDraftService({'groq': GroqProvider(None)}, default_provider='groq')

    result = service.process_query("Headache", "Migraine")

    assert result['metadata']['provider'] == 'mock-groq'


def test_failing_provider_falls_back_to_mock():
    failing = MagicMock()
    failing.is_available.return_value = True
    failing.generate.side_effect = DraftingError("rate limited")
    service = ClinicalDraftService({'novita': failing}, default_provider='novita')

    result = service.process_query("Headache", "Migraine")

    assert result['metadata']['provider'] == 'mock-novita-fallback'
    assert 'AI-generated response' in result['response']


def test_explicit_provider_overrides_default():
    groq = MagicMock()
    groq.is_available.return_value = True
    groq.generate.return_value = "Groq draft"
    service = ClinicalDraftService({'groq': groq}, default_provider='mock')

    assert service.process_query("Headache", "Migraine", provider='GROQ')['response'] == "Groq draft"
    assert service.process_query("Headache", "Migraine")['metadata']['provider'] == 'mock'


def test_unknown_default_provider_becomes_mock():
    service = ClinicalDraftService({}, default_provider='openai')

    assert service.default_provider == 'mock'


def test_get_providers():
    service = ClinicalDraftService({'groq': GroqProvider("key"), 'novita': NovitaProvider(None)},
                                   default_provider='groq')

    providers = {p['name']: p for p in service.get_providers()}

    assert set(providers) == {'groq', 'novita', 'mock'}
    assert providers['groq']['available'] is True
    assert providers['groq']['default'] is True
    assert providers['novita']['available'] is False
    assert providers['mock']['available'] is True


def test_from_environment():
    env = MagicMock(groq_api_key=None, novita_api_key="novita_key", ai_provider='novita')

    service = ClinicalDraftService.from_environment(env)

    assert service.default_provider == 'novita'
    assert service.providers['novita'].is_available()
    assert not service.providers['groq'].is_available()
