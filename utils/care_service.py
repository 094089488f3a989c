import logging
from typing import List, Optional

from models import Doctor, MedicalQuery, Patient, QueryStatus, Result, SystemStats
from utils import database
from utils.ai_drafting import ClinicalDraftService, DraftRequestError

logger = logging.getLogger(__name__)

HEALTH_MESSAGE = "TrustCareConnect backend is running!"


class CareService:
    """
    The backend's remote-procedure surface: patients, doctors and medical queries.

    Lookups return the record or None; updates return a Result whose error
    message is shown to the user as-is.
    """

    def __init__(self, drafter: Optional[ClinicalDraftService] = None, drafts_enabled: bool = True):
        self.drafter = drafter
        self.drafts_enabled = drafts_enabled and drafter is not None

    # Patients

    def register_patient(self, name: str, condition: str, email: str) -> str:
        return database.insert_patient(name.strip(), condition.strip(), email.strip())

    def get_patient(self, patient_id: str) -> Optional[Patient]:
        return database.get_patient(patient_id)

    def find_patient_by_email(self, email: str) -> Optional[Patient]:
        return database.find_patient_by_email(email)

    def get_unassigned_patients(self) -> List[Patient]:
        return database.list_patients(unassigned_only=True)

    def get_doctor_patients(self, doctor_id: str) -> List[Patient]:
        return database.list_patients(assigned_doctor_id=doctor_id)

    def assign_patient_to_doctor(self, patient_id: str, doctor_id: str) -> Result[None]:
        patient = database.get_patient(patient_id)
        if patient is None:
            return Result.err("Patient not found")
        if database.get_doctor(doctor_id) is None:
            return Result.err("Doctor not found")
        if patient.assigned_doctor_id == doctor_id:
            return Result.ok()
        if patient.assigned_doctor_id is not None:
            return Result.err("Patient is already assigned to another doctor")

        database.set_patient_doctor(patient_id, doctor_id)
        logger.info(f"Assigned patient {patient_id} to doctor {doctor_id}")
        return Result.ok()

    def unassign_patient(self, patient_id: str, doctor_id: str) -> Result[None]:
        patient = database.get_patient(patient_id)
        if patient is None:
            return Result.err("Patient not found")
        if patient.assigned_doctor_id != doctor_id:
            return Result.err("Patient is not assigned to this doctor")

        database.set_patient_doctor(patient_id, None)
        logger.info(f"Unassigned patient {patient_id} from doctor {doctor_id}")
        return Result.ok()

    # Doctors

    def register_doctor(self, name: str, specialization: str) -> str:
        return database.insert_doctor(name.strip(), specialization.strip())

    def get_doctor(self, doctor_id: str) -> Optional[Doctor]:
        return database.get_doctor(doctor_id)

    def get_all_doctors(self) -> List[Doctor]:
        return database.list_doctors()

    # Queries

    def submit_query(self, patient_id: str, title: str, description: str) -> Result[str]:
        patient = database.get_patient(patient_id)
        if patient is None:
            return Result.err("Patient not found")
        if not patient.assigned_doctor_id:
            return Result.err("Patient must be assigned to a doctor before submitting queries")

        title = (title or '').strip()
        description = (description or '').strip()
        if not title or not description:
            return Result.err("Title and description are required")

        draft = self._draft_for(description, patient.condition)
        query_id = database.insert_query(patient_id, title, description, ai_draft_response=draft)
        return Result.ok(query_id)

    def get_query(self, query_id: str) -> Optional[MedicalQuery]:
        return database.get_query(query_id)

    def get_patient_queries(self, patient_id: str) -> List[MedicalQuery]:
        return database.list_queries(patient_id=patient_id)

    def get_doctor_queries(self, doctor_id: str) -> List[MedicalQuery]:
        return database.list_queries(doctor_id=doctor_id)

    def get_pending_queries(self) -> List[MedicalQuery]:
        return database.list_queries(status=QueryStatus.PENDING)

    def take_query(self, query_id: str, doctor_id: str) -> Result[None]:
        query = database.get_query(query_id)
        if query is None:
            return Result.err("Query not found")
        if database.get_doctor(doctor_id) is None:
            return Result.err("Doctor not found")
        if query.status != QueryStatus.PENDING:
            return Result.err("Query is not pending")

        patient = database.get_patient(query.patient_id)
        if patient is None or patient.assigned_doctor_id != doctor_id:
            return Result.err("Patient is not assigned to you")

        database.update_query(query_id, doctor_id=doctor_id, status=QueryStatus.DOCTOR_REVIEW)
        logger.info(f"Doctor {doctor_id} took query {query_id}")
        return Result.ok()

    def respond_to_query(self, query_id: str, doctor_id: str, response: str) -> Result[None]:
        query = database.get_query(query_id)
        if query is None:
            return Result.err("Query not found")

        response = (response or '').strip()
        if not response:
            return Result.err("Response cannot be empty")
        if query.status == QueryStatus.COMPLETED:
            return Result.err("Query has already been completed")

        if query.doctor_id is None:
            # an untaken query may be answered directly by the patient's doctor
            patient = database.get_patient(query.patient_id)
            if patient is None or patient.assigned_doctor_id != doctor_id:
                return Result.err("Query is not assigned to you")
        elif query.doctor_id != doctor_id:
            return Result.err("Query is not assigned to you")

        database.update_query(query_id, doctor_id=doctor_id, response=response, status=QueryStatus.COMPLETED)
        logger.info(f"Doctor {doctor_id} responded to query {query_id}")
        return Result.ok()

    def regenerate_draft(self, query_id: str) -> Result[str]:
        query = database.get_query(query_id)
        if query is None:
            return Result.err("Query not found")
        if query.status == QueryStatus.COMPLETED:
            return Result.err("Query has already been completed")
        if not self.drafts_enabled:
            return Result.err("AI drafting is disabled")

        patient = database.get_patient(query.patient_id)
        condition = patient.condition if patient else 'general'
        draft = self._draft_for(query.description, condition)
        if draft is None:
            return Result.err("Could not generate an AI draft")

        database.update_query(query_id, ai_draft_response=draft)
        return Result.ok(draft)

    # System

    def get_stats(self) -> SystemStats:
        return database.get_counts()

    def health_check(self) -> str:
        return HEALTH_MESSAGE

    def _draft_for(self, description: str, condition: str) -> Optional[str]:
        if not self.drafts_enabled:
            return None
        try:
            return self.drafter.generate_draft(description, condition or 'general')
        except DraftRequestError as e:
            logger.warning(f"Skipping AI draft: {e}")
            return None
