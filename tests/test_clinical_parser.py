from utils.clinical_parser import (
    EMPTY_RESPONSE,
    FALLBACK_TITLE,
    extract_action_items,
    parse_clinical_response,
)


def test_parse_structured_draft(structured_draft):
    sections = parse_clinical_response(structured_draft)

    assert [s.title for s in sections] == [
        'Patient History Summary',
        'Symptom Analysis',
        'Immediate Assessment & Management',
        'Differential Diagnosis',
        'Treatment Plan Options',
        'Follow-up & Monitoring',
        'Patient Communication Points',
    ]
    by_title = {s.title: s for s in sections}
    assert by_title['Immediate Assessment & Management'].priority == 'urgent'
    assert by_title['Symptom Analysis'].content == '- Fatigue and thirst for 3 days'
    assert 'Check fasting blood glucose' in by_title['Immediate Assessment & Management'].content
    assert 'Hyperglycemia' not in by_title['Immediate Assessment & Management'].content
    assert by_title['Patient Communication Points'].content == '- Explain warning signs of ketoacidosis'


def test_parse_partial_draft():
    sections = parse_clinical_response("## SYMPTOM ANALYSIS\n- Cough\n\nSome trailing text")

    assert len(sections) == 1
    assert sections[0].title == 'Symptom Analysis'
    assert sections[0].icon == '🔍'


def test_parse_unstructured_text_falls_back():
    sections = parse_clinical_response("Drink water and rest.")

    assert len(sections) == 1
    assert sections[0].title == FALLBACK_TITLE
    assert sections[0].content == "Drink water and rest."


def test_parse_empty_response():
    for empty in (None, ""):
        sections = parse_clinical_response(empty)
        assert sections[0].title == FALLBACK_TITLE
        assert sections[0].content == EMPTY_RESPONSE


def test_section_to_dict():
    section = parse_clinical_response("plain")[0]

    assert section.to_dict() == {'title': FALLBACK_TITLE, 'content': 'plain', 'icon': '🤖', 'priority': 'medium'}


def test_extract_action_items():
    content = "Intro line\n- Check glucose\n  • Review meds\n✅ Book follow-up\nNot an item"

    assert extract_action_items(content) == ['Check glucose', 'Review meds', 'Book follow-up']
    assert extract_action_items("") == []
