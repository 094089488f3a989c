import random
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

import requests

from utils.groq_integration import GroqIntegrationError, get_groq_response

logger = logging.getLogger(__name__)

MAX_QUERY_LENGTH = 1000
MAX_CONDITION_LENGTH = 100

CLINICAL_SYSTEM_PROMPT = (
    "You are a clinical decision support AI assistant providing comprehensive analysis "
    "exclusively for healthcare providers. Your responses are structured clinical guidance "
    "tools for medical professionals, not for direct patient communication."
)


class DraftingError(Exception):
    """Raised by a provider that could not produce a draft."""


class DraftRequestError(ValueError):
    """Raised for an invalid drafting request; carries an error code."""

    def __init__(self, message: str, code: str):
        super().__init__(message)
        self.code = code


def create_clinical_decision_prompt(query_text: str, patient_condition: str) -> str:
    return f"""You are a clinical decision support AI assistant providing comprehensive analysis for healthcare providers only.

PATIENT INFORMATION: {patient_condition}
PATIENT PRESENTATION: "{query_text}"

Generate a structured clinical decision support response in the following format:

## PATIENT HISTORY SUMMARY
- Key medical conditions and current status
- Current medications and recent changes
- Relevant past medical events and complications

## SYMPTOM ANALYSIS
- Primary symptoms reported by patient
- Symptom onset, duration, and characteristics
- Clinical significance and urgency assessment

## CLINICAL RECOMMENDATIONS FOR PROVIDER

### Immediate Assessment & Management:
- Vital signs and clinical examination priorities
- Diagnostic tests or monitoring required
- Safety precautions and red flag symptoms

### Differential Diagnosis Considerations:
- Most likely diagnosis based on presentation
- Alternative diagnoses to consider

### Treatment Plan Options:
- First-line treatment recommendations
- Medication adjustments or considerations

### Follow-up & Monitoring:
- Recommended follow-up timeline
- When to escalate care

### Patient Communication Points:
- Key explanations to provide patient
- Warning signs to discuss

This is for healthcare provider use only - not for direct patient communication."""


def validate_query_request(query_text: Any, condition: Any) -> Tuple[bool, Optional[str], Optional[str]]:
    """
    Validate the inputs of a drafting request.

    Returns:
        Tuple[bool, Optional[str], Optional[str]]: (is_valid, error message, error code)
    """
    if not query_text or not isinstance(query_text, str):
        return False, 'Invalid or missing queryText', 'INVALID_QUERY_TEXT'

    if not condition or not isinstance(condition, str):
        return False, 'Invalid or missing condition', 'INVALID_CONDITION'

    if not query_text.strip():
        return False, 'Query text cannot be empty', 'EMPTY_QUERY'

    return True, None, None


class MockProvider:
    """Canned condition-keyed responses for development and tests."""

    name = 'mock'
    description = 'Mock AI responses for testing only'
    model = None

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()
        self.responses: Dict[str, List[str]] = {
            'diabetes': [
                "Based on your diabetes-related query, I recommend maintaining regular blood sugar monitoring and following your prescribed medication schedule. However, please consult with your healthcare provider for personalized advice.",
                "For diabetes management, focus on a balanced diet with controlled carbohydrate intake, regular exercise, and consistent medication timing. Always discuss any changes with your doctor.",
            ],
            'hypertension': [
                "For blood pressure management, consider lifestyle modifications such as reducing sodium intake, regular exercise, stress management, and medication compliance as prescribed by your doctor.",
                "Hypertension management typically involves dietary changes, regular monitoring, appropriate medication, and lifestyle adjustments. Please work closely with your healthcare provider.",
            ],
            'general': [
                "Thank you for your health inquiry. While I can provide general information, it's important to consult with your healthcare provider for personalized medical advice and proper diagnosis.",
                "I understand your health concern. For accurate diagnosis and treatment recommendations, please discuss your symptoms with your assigned healthcare professional.",
            ],
        }

    def is_available(self) -> bool:
        return True

    def generate(self, query_text: str, condition: str) -> str:
        condition_lower = condition.lower()
        responses = self.responses['general']
        if 'diabetes' in condition_lower:
            responses = self.responses['diabetes']
        elif 'hypertension' in condition_lower or 'blood pressure' in condition_lower:
            responses = self.responses['hypertension']
        else:
            for key, custom in self.responses.items():
                if key in condition_lower and custom:
                    responses = custom
                    break

        chosen = self.rng.choice(responses)
        return (f'{chosen}\n\n**Note: This is an AI-generated response for your "{query_text}" query. '
                f'Always consult your healthcare provider for medical decisions.**')

    def add_custom_response(self, condition: str, response: str) -> None:
        self.responses.setdefault(condition.lower(), []).append(response)

    def get_available_conditions(self) -> List[str]:
        return list(self.responses.keys())


class GroqProvider:
    name = 'groq'
    description = 'Groq-hosted Llama clinical decision support'

    def __init__(self, api_key: Optional[str], model: str = "llama-3.3-70b-versatile"):
        self.api_key = api_key
        self.model = model

    def is_available(self) -> bool:
        return bool(self.api_key)

    def generate(self, query_text: str, condition: str) -> str:
        try:
            return get_groq_response(
                create_clinical_decision_prompt(query_text, condition),
                model=self.model,
                system_prompt=CLINICAL_SYSTEM_PROMPT,
            )
        except GroqIntegrationError as e:
            raise DraftingError(str(e)) from e


class NovitaProvider:
    """Novita's OpenAI-compatible chat completions endpoint."""

    name = 'novita'
    description = 'Novita AI Clinical Decision Support (Baichuan M2-32B)'
    base_url = 'https://api.novita.ai/openai/v1/chat/completions'

    def __init__(self, api_key: Optional[str], model: str = 'baichuan/baichuan-m2-32b', timeout: int = 60):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout

    def is_available(self) -> bool:
        return bool(self.api_key)

    def generate(self, query_text: str, condition: str) -> str:
        payload = {
            'model': self.model,
            'messages': [
                {'role': 'system', 'content': CLINICAL_SYSTEM_PROMPT},
                {'role': 'user', 'content': create_clinical_decision_prompt(query_text, condition)},
            ],
            'max_tokens': 1500,
            'temperature': 0.3,
        }
        headers = {
            'Authorization': f'Bearer {self.api_key}',
            'Content-Type': 'application/json',
        }
        try:
            response = requests.post(self.base_url, json=payload, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            return response.json()['choices'][0]['message']['content']
        except requests.RequestException as e:
            logger.error(f"Novita AI clinical decision support error: {e}")
            raise DraftingError('Failed to generate clinical decision support response') from e
        except (KeyError, IndexError, ValueError) as e:
            logger.error(f"Unexpected Novita response shape: {e}")
            raise DraftingError('Malformed clinical decision support response') from e


class ClinicalDraftService:
    """
    Routes drafting requests to an AI provider.

    An unavailable provider (no API key) is served by the mock and reported as
    ``mock-<provider>``; a provider failure falls back to the mock and is
    reported as ``mock-<provider>-fallback``.
    """

    def __init__(self, providers: Dict[str, Any], default_provider: str = 'groq',
                 mock: Optional[MockProvider] = None):
        self.mock = mock or MockProvider()
        self.providers = dict(providers)
        self.providers.setdefault('mock', self.mock)
        self.default_provider = default_provider if default_provider in self.providers else 'mock'

    @classmethod
    def from_environment(cls, env) -> 'ClinicalDraftService':
        providers = {
            'groq': GroqProvider(env.groq_api_key),
            'novita': NovitaProvider(env.novita_api_key),
        }
        return cls(providers, default_provider=env.ai_provider)

    def process_query(self, query_text: Any, condition: Any, provider: Optional[str] = None) -> Dict[str, Any]:
        """
        Validate, sanitise and draft a response.

        Returns:
            Dict: {'response': str, 'metadata': {...}}

        Raises:
            DraftRequestError: if the inputs are invalid
        """
        is_valid, error, code = validate_query_request(query_text, condition)
        if not is_valid:
            raise DraftRequestError(error, code)

        sanitized_query = query_text.strip()[:MAX_QUERY_LENGTH]
        sanitized_condition = condition.strip()[:MAX_CONDITION_LENGTH]
        provider_name = (provider or self.default_provider).lower()

        response_text, response_provider = self._generate(provider_name, sanitized_query, sanitized_condition)

        logger.info(f"AI query processed: {response_provider} | Condition: {sanitized_condition} | "
                    f"Query length: {len(sanitized_query)}")

        return {
            'response': response_text,
            'metadata': {
                'provider': response_provider,
                'condition': sanitized_condition,
                'queryLength': len(sanitized_query),
                'timestamp': datetime.now(timezone.utc).isoformat(),
                'responseId': f"query_{uuid4().hex[:12]}",
            },
        }

    def generate_draft(self, query_text: str, condition: str) -> str:
        return self.process_query(query_text, condition)['response']

    def _generate(self, provider_name: str, query_text: str, condition: str) -> Tuple[str, str]:
        service = self.providers.get(provider_name)
        if service is None or provider_name == 'mock':
            return self.mock.generate(query_text, condition), 'mock'

        if not service.is_available():
            logger.info(f"Using mock {provider_name} response (no API key configured)")
            return self.mock.generate(query_text, condition), f'mock-{provider_name}'

        try:
            return service.generate(query_text, condition), provider_name
        except DraftingError as e:
            logger.warning(f"{provider_name} API failed, falling back to mock response: {e}")
            return self.mock.generate(query_text, condition), f'mock-{provider_name}-fallback'

    def get_providers(self) -> List[Dict[str, Any]]:
        providers = []
        for name, service in self.providers.items():
            providers.append({
                'name': name,
                'description': getattr(service, 'description', ''),
                'model': getattr(service, 'model', None),
                'available': service.is_available(),
                'default': name == self.default_provider,
            })
        return providers
