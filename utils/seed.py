import logging
from typing import Dict, List

from utils.care_service import CareService

logger = logging.getLogger(__name__)

DEMO_DOCTORS = [
    {"name": "Dr. Sarah Chen", "specialization": "Endocrinology"},
    {"name": "Dr. James Wilson", "specialization": "Cardiology"},
    {"name": "Dr. Amara Okafor", "specialization": "General Practice"},
]

DEMO_PATIENTS = [
    {"name": "Sarah Johnson", "condition": "Type 2 Diabetes", "email": "sarah.johnson@example.com", "doctor": 0},
    {"name": "Michael Thompson", "condition": "Hypertension", "email": "michael.thompson@example.com", "doctor": 1},
    {"name": "Elena Rodriguez", "condition": "Gestational Diabetes", "email": "elena.rodriguez@example.com", "doctor": None},
]


def seed_demo_data(service: CareService) -> Dict[str, List[str]]:
    """
    Register demo doctors and patients unless they already exist.

    Patients are matched by email, so running this twice is harmless.

    Returns:
        Dict[str, List[str]]: ids of the doctors and patients created
    """
    created = {"doctors": [], "patients": []}

    existing_doctors = {doctor.name: doctor.id for doctor in service.get_all_doctors()}
    doctor_ids = []
    for doctor in DEMO_DOCTORS:
        doctor_id = existing_doctors.get(doctor["name"])
        if doctor_id is None:
            doctor_id = service.register_doctor(doctor["name"], doctor["specialization"])
            created["doctors"].append(doctor_id)
        doctor_ids.append(doctor_id)

    for patient in DEMO_PATIENTS:
        if service.find_patient_by_email(patient["email"]) is not None:
            continue
        patient_id = service.register_patient(patient["name"], patient["condition"], patient["email"])
        created["patients"].append(patient_id)
        if patient["doctor"] is not None:
            result = service.assign_patient_to_doctor(patient_id, doctor_ids[patient["doctor"]])
            if not result.is_ok:
                logger.warning(f"Could not assign demo patient {patient_id}: {result.error}")

    logger.info(f"Seeded {len(created['doctors'])} doctors and {len(created['patients'])} patients")
    return created
