import re
import logging
from dataclasses import asdict, dataclass
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

FALLBACK_TITLE = 'AI Clinical Response'
EMPTY_RESPONSE = 'No response available'

ACTION_MARKERS = ('-', '•', '✅')


@dataclass
class ClinicalSection:
    title: str
    content: str
    icon: Optional[str] = None
    priority: Optional[str] = None  # low | medium | high | urgent

    def to_dict(self) -> Dict[str, Optional[str]]:
        return asdict(self)


# (pattern, title, icon, priority), in display order
SECTION_PATTERNS = [
    (re.compile(r'## PATIENT HISTORY SUMMARY([\s\S]*?)(?=## |$)', re.IGNORECASE),
     'Patient History Summary', '📋', 'medium'),
    (re.compile(r'## SYMPTOM ANALYSIS([\s\S]*?)(?=## |$)', re.IGNORECASE),
     'Symptom Analysis', '🔍', 'high'),
    (re.compile(r'### Immediate Assessment.*?Management[:\s]*([\s\S]*?)(?=### |$)', re.IGNORECASE),
     'Immediate Assessment & Management', '⚡', 'urgent'),
    (re.compile(r'### Differential Diagnosis.*?Considerations[:\s]*([\s\S]*?)(?=### |$)', re.IGNORECASE),
     'Differential Diagnosis', '🎯', 'high'),
    (re.compile(r'### Treatment Plan.*?Options[:\s]*([\s\S]*?)(?=### |$)', re.IGNORECASE),
     'Treatment Plan Options', '💊', 'high'),
    (re.compile(r'### Follow-up.*?Monitoring[:\s]*([\s\S]*?)(?=### |$)', re.IGNORECASE),
     'Follow-up & Monitoring', '📅', 'medium'),
    (re.compile(r'### Patient Communication.*?Points[:\s]*([\s\S]*?)(?=### |$)', re.IGNORECASE),
     'Patient Communication Points', '💬', 'medium'),
]


def parse_clinical_response(response) -> List[ClinicalSection]:
    """
    Split an AI clinical draft into its known headed sections.

    Falls back to a single section holding the raw text when no heading matches.
    """
    text = str(response) if response else EMPTY_RESPONSE

    sections = []
    for pattern, title, icon, priority in SECTION_PATTERNS:
        match = pattern.search(text)
        if match:
            sections.append(ClinicalSection(title=title, content=match.group(1).strip(),
                                            icon=icon, priority=priority))

    if not sections:
        logger.debug("No structured sections found in clinical response, using raw text")
        sections.append(ClinicalSection(title=FALLBACK_TITLE, content=text, icon='🤖', priority='medium'))

    return sections


def extract_action_items(content: str) -> List[str]:
    items = []
    for line in content.split('\n'):
        trimmed = line.strip()
        if trimmed.startswith(ACTION_MARKERS):
            items.append(re.sub(r'^[-•✅]\s*', '', trimmed))
    return items
